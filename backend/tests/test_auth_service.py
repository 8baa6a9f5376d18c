"""Tests for AuthService one-time codes: verification and password reset."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from app.core.exceptions import (
    AlreadyVerifiedError,
    CodeExpiredError,
    CodeUsedError,
    InvalidCodeError,
    NotFoundError,
    UnauthenticatedError,
)
from app.models import CodePurpose, OneTimeCode
from app.services.auth_service import AuthService, generate_code

NEW_PASSWORD = "brandnew42"


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def auth(db) -> AuthService:
    return AuthService(db)


class TestGenerateCode:
    def test_six_digits(self):
        for _ in range(50):
            code = generate_code()
            assert len(code) == 6
            assert code.isdigit()
            assert code[0] != "0"


class TestVerification:
    """Tests for e-mail verification codes."""

    async def test_verify_account(self, auth, db, author, sent_codes):
        otp = await auth.request_code("ALICE@example.com", CodePurpose.VERIFY_EMAIL)

        user = await auth.verify_account(author.email, otp.id, sent_codes[-1])

        assert user.is_verified is True
        assert (await db.get(OneTimeCode, otp.id)).is_used

    async def test_code_stored_as_hash(self, auth, author, sent_codes):
        otp = await auth.request_code(author.email, CodePurpose.VERIFY_EMAIL)

        assert otp.code_hash != sent_codes[-1]
        assert otp.purpose == "verify-email"

    async def test_wrong_code_keeps_the_right_one_usable(self, auth, author, sent_codes):
        otp = await auth.request_code(author.email, CodePurpose.VERIFY_EMAIL)

        with pytest.raises(InvalidCodeError):
            await auth.verify_account(author.email, otp.id, "000000")

        user = await auth.verify_account(author.email, otp.id, sent_codes[-1])
        assert user.is_verified is True

    async def test_unknown_token(self, auth, author, sent_codes):
        await auth.request_code(author.email, CodePurpose.VERIFY_EMAIL)

        with pytest.raises(InvalidCodeError):
            await auth.verify_account(author.email, uuid.uuid4(), sent_codes[-1])

    async def test_expired_code(self, auth, db, author, sent_codes):
        otp = await auth.request_code(author.email, CodePurpose.VERIFY_EMAIL)
        otp.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        await db.flush()

        with pytest.raises(CodeExpiredError):
            await auth.verify_account(author.email, otp.id, sent_codes[-1])

    async def test_new_code_supersedes_the_old_one(self, auth, author, sent_codes):
        first = await auth.request_code(author.email, CodePurpose.VERIFY_EMAIL)
        first_code = sent_codes[-1]
        second = await auth.request_code(author.email, CodePurpose.VERIFY_EMAIL)

        with pytest.raises(CodeUsedError):
            await auth.verify_account(author.email, first.id, first_code)

        user = await auth.verify_account(author.email, second.id, sent_codes[-1])
        assert user.is_verified is True

    async def test_verified_account_cannot_ask_again(self, auth, create_user):
        user = await create_user("verified", is_verified=True)

        with pytest.raises(AlreadyVerifiedError):
            await auth.request_code(user.email, CodePurpose.VERIFY_EMAIL)

    async def test_unknown_email(self, auth):
        with pytest.raises(NotFoundError):
            await auth.request_code("nobody@example.com", CodePurpose.VERIFY_EMAIL)

    async def test_code_of_another_user_is_rejected(self, auth, author, other_user, sent_codes):
        otp = await auth.request_code(other_user.email, CodePurpose.VERIFY_EMAIL)

        with pytest.raises(InvalidCodeError):
            await auth.verify_account(author.email, otp.id, sent_codes[-1])


class TestPasswordReset:
    """Tests for forgot/reset password."""

    async def test_reset_changes_the_login_password(self, auth, author, sent_codes):
        otp = await auth.request_code(author.email, CodePurpose.RESET_PASSWORD)

        await auth.reset_password(author.email, otp.id, sent_codes[-1], NEW_PASSWORD)

        user = await auth.authenticate(author.email, NEW_PASSWORD)
        assert user.id == author.id
        with pytest.raises(UnauthenticatedError):
            await auth.authenticate(author.email, "password123")

    async def test_reset_code_is_single_use(self, auth, author, sent_codes):
        otp = await auth.request_code(author.email, CodePurpose.RESET_PASSWORD)
        await auth.reset_password(author.email, otp.id, sent_codes[-1], NEW_PASSWORD)

        with pytest.raises(CodeUsedError):
            await auth.reset_password(author.email, otp.id, sent_codes[-1], "another99")

    async def test_verification_code_cannot_reset_password(self, auth, author, sent_codes):
        otp = await auth.request_code(author.email, CodePurpose.VERIFY_EMAIL)

        with pytest.raises(InvalidCodeError):
            await auth.reset_password(author.email, otp.id, sent_codes[-1], NEW_PASSWORD)

    async def test_verified_account_can_still_reset(self, auth, create_user, sent_codes):
        user = await create_user("verified", is_verified=True)

        otp = await auth.request_code(user.email, CodePurpose.RESET_PASSWORD)

        assert otp.purpose == "reset-password"
        assert len(sent_codes) == 1
