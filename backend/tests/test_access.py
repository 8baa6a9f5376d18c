"""Tests for roles, principals and the access gate."""

import uuid

import pytest

from app.core.access import (
    ADMIN_ONLY,
    AUTHENTICATED,
    MODERATION,
    RequestPrincipal,
    Role,
    RoleRequirement,
    check_access,
)
from app.core.exceptions import UnauthorizedError
from app.schemas.common import PaginatedResponse, clamp_pagination


class TestRoleRequirement:
    """Tests for the any / one_of requirement variants."""

    @pytest.mark.parametrize("role", list(Role))
    def test_any_admits_every_role(self, role):
        assert AUTHENTICATED.allows(role)

    def test_moderation(self):
        assert MODERATION.allows(Role.MODERATOR)
        assert MODERATION.allows(Role.ADMIN)
        assert not MODERATION.allows(Role.USER)

    def test_admin_only(self):
        assert ADMIN_ONLY.allows(Role.ADMIN)
        assert not ADMIN_ONLY.allows(Role.MODERATOR)

    def test_one_of_needs_a_role(self):
        with pytest.raises(ValueError):
            RoleRequirement.one_of()


class TestCheckAccess:
    def test_returns_principal(self):
        principal = RequestPrincipal(user_id=uuid.uuid4(), role=Role.ADMIN)
        assert check_access(principal, ADMIN_ONLY) is principal

    def test_rejects_role(self):
        principal = RequestPrincipal(user_id=uuid.uuid4())
        with pytest.raises(UnauthorizedError) as exc_info:
            check_access(principal, MODERATION)
        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "unauthorized"


class TestRequestPrincipal:
    def test_owns_compares_ids(self):
        user_id = uuid.uuid4()
        principal = RequestPrincipal(user_id=user_id)

        assert principal.owns(user_id)
        assert principal.owns(uuid.UUID(str(user_id)))
        assert not principal.owns(str(user_id))
        assert not principal.owns(uuid.uuid4())

    def test_is_moderator(self):
        assert RequestPrincipal(uuid.uuid4(), Role.ADMIN).is_moderator
        assert RequestPrincipal(uuid.uuid4(), Role.MODERATOR).is_moderator
        assert not RequestPrincipal(uuid.uuid4(), Role.USER).is_moderator


class TestPagination:
    """Tests for paging metadata and caller input normalization."""

    def test_page_metadata(self):
        page = PaginatedResponse[int].build([1, 2], total_items=5, limit=2, offset=2)

        assert page.current_page == 1
        assert page.total_pages == 3
        assert page.has_more is True
        assert page.items_per_page == 2

    def test_empty_listing(self):
        page = PaginatedResponse[int].build([], total_items=0, limit=10, offset=0)

        assert page.total_pages == 0
        assert page.has_more is False

    def test_zero_limit_is_rejected(self):
        with pytest.raises(ValueError):
            PaginatedResponse[int].build([], total_items=0, limit=0, offset=0)

    @pytest.mark.parametrize(
        "limit, offset, expected",
        [
            (0, 0, (10, 0)),
            (-3, -1, (10, 0)),
            (25, 40, (25, 40)),
            (1000, 0, (100, 0)),
        ],
    )
    def test_clamp(self, limit, offset, expected):
        assert clamp_pagination(limit, offset) == expected
