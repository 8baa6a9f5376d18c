"""OneTimeCode model for e-mail verification and password reset codes."""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from app.models.user import User


class CodePurpose(str, enum.Enum):
    VERIFY_EMAIL = "verify-email"
    RESET_PASSWORD = "reset-password"


class OneTimeCode(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A short numeric code mailed to a user.

    The row id is the token id handed back to the client; the code itself
    is only stored as a bcrypt hash. A code is spent once ``used_at`` is set.
    """

    __tablename__ = "one_time_codes"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    purpose: Mapped[str] = mapped_column(
        String(20), nullable=False,
        comment="'verify-email' or 'reset-password'"
    )
    code_hash: Mapped[str] = mapped_column(
        String(128), nullable=False,
        comment="bcrypt hash of the mailed code"
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
        comment="Set when the code is redeemed or superseded"
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="one_time_codes")

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    def __repr__(self) -> str:
        return f"<OneTimeCode(id={self.id}, user={self.user_id}, purpose={self.purpose})>"
