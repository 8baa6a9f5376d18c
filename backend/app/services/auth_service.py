"""Authentication service: JWT tokens, password hashing, user management
and the one-time codes behind e-mail verification and password reset."""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.access import ADMIN_ONLY, RequestPrincipal, Role, check_access
from app.core.exceptions import (
    AlreadyVerifiedError,
    CodeExpiredError,
    CodeUsedError,
    ConflictError,
    InvalidCodeError,
    NotFoundError,
    UnauthenticatedError,
    UnauthorizedError,
)
from app.models.one_time_code import CodePurpose, OneTimeCode
from app.models.user import User
from app.schemas.auth import TokenResponse

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: uuid.UUID, role: str = Role.USER.value) -> str:
    """Create a JWT access token carrying the user ID and role."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": now + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
        "iat": now,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode a JWT token and return its claims, or None if invalid."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload


def issue_token(user: User) -> TokenResponse:
    """Bearer token for a freshly authenticated user."""
    return TokenResponse(
        access_token=create_access_token(user.id, user.role),
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def generate_code() -> str:
    """Random six-digit code."""
    return str(secrets.randbelow(900000) + 100000)


def _as_utc(value: datetime) -> datetime:
    # SQLite returns timezone-aware columns as naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AuthService:
    """Handles sign-up, login, lookup and deactivation of accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="auth_service")

    async def register(
        self,
        email: str,
        username: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        phone: Optional[str] = None,
        avatar: Optional[str] = None,
        location: Optional[Dict[str, Any]] = None,
        role: Role = Role.USER,
    ) -> User:
        """Create an account.

        Raises:
            ConflictError: if the email or username is already taken
        """
        email = email.lower()
        stmt = select(User).where(or_(User.email == email, User.username == username))
        result = await self.db.execute(stmt)
        existing = result.scalars().first()
        if existing:
            if existing.email == email:
                raise ConflictError("Email is already in use")
            raise ConflictError("Username is already in use")

        user = User(
            email=email,
            username=username,
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            avatar=avatar,
            role=role.value,
            **(location or {}),
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Email or username is already in use")

        await self.db.refresh(user)
        self.logger.info("user_registered", user_id=str(user.id), role=user.role)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Check credentials and stamp the login time.

        Raises:
            UnauthenticatedError: on a wrong email/password or an inactive account
        """
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            raise UnauthenticatedError("Invalid email or password")

        if not user.is_active:
            self.logger.info("inactive_login_attempt", user_id=str(user.id))
            raise UnauthenticatedError("Account is inactive")

        user.last_login_at = datetime.now(timezone.utc)
        return user

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def deactivate_user(self, principal: RequestPrincipal, user_id: uuid.UUID) -> User:
        """Deactivate an account. Admins only; admin accounts are protected.

        A deactivated user can no longer log in and their reviews drop out
        of listings.
        """
        check_access(principal, ADMIN_ONLY)

        user = await self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User", str(user_id))
        if user.role == Role.ADMIN.value:
            raise UnauthorizedError("Admin accounts cannot be deactivated")

        user.is_active = False
        await self.db.flush()
        self.logger.info("user_deactivated", user_id=str(user_id), by=str(principal.user_id))
        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def request_code(self, email: str, purpose: CodePurpose) -> OneTimeCode:
        """Mail a fresh code to the account behind ``email``.

        Any earlier unredeemed code for the same purpose stops working, so
        asking again doubles as "resend".

        Raises:
            NotFoundError: no account uses this email
            AlreadyVerifiedError: a verification code was asked for a verified account
        """
        user = await self._require_user(email)
        if purpose is CodePurpose.VERIFY_EMAIL and user.is_verified:
            raise AlreadyVerifiedError()

        now = datetime.now(timezone.utc)
        await self.db.execute(
            update(OneTimeCode)
            .where(
                OneTimeCode.user_id == user.id,
                OneTimeCode.purpose == purpose.value,
                OneTimeCode.used_at.is_(None),
            )
            .values(used_at=now)
        )

        code = generate_code()
        otp = OneTimeCode(
            user_id=user.id,
            purpose=purpose.value,
            code_hash=hash_password(code),
            expires_at=now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        )
        self.db.add(otp)
        await self.db.flush()

        await self._deliver_code(user, otp, code)
        return otp

    async def verify_account(self, email: str, token_id: uuid.UUID, code: str) -> User:
        user = await self._require_user(email)
        if user.is_verified:
            raise AlreadyVerifiedError()

        await self._redeem_code(user, token_id, code, CodePurpose.VERIFY_EMAIL)
        user.is_verified = True
        await self.db.flush()
        self.logger.info("account_verified", user_id=str(user.id))
        return user

    async def reset_password(
        self,
        email: str,
        token_id: uuid.UUID,
        code: str,
        new_password: str,
    ) -> User:
        user = await self._require_user(email)

        await self._redeem_code(user, token_id, code, CodePurpose.RESET_PASSWORD)
        user.hashed_password = hash_password(new_password)
        await self.db.flush()
        self.logger.info("password_reset", user_id=str(user.id))
        return user

    async def _require_user(self, email: str) -> User:
        user = await self.get_user_by_email(email)
        if not user:
            raise NotFoundError("User")
        return user

    async def _redeem_code(
        self,
        user: User,
        token_id: uuid.UUID,
        code: str,
        purpose: CodePurpose,
    ) -> None:
        """Spend a code, checking it in the order used, expired, value."""
        otp = await self.db.get(OneTimeCode, token_id)
        if otp is None or otp.user_id != user.id or otp.purpose != purpose.value:
            raise InvalidCodeError()
        if otp.is_used:
            raise CodeUsedError()
        if _as_utc(otp.expires_at) <= datetime.now(timezone.utc):
            raise CodeExpiredError()
        if not verify_password(code, otp.code_hash):
            self.logger.info("code_rejected", user_id=str(user.id), token_id=str(token_id))
            raise InvalidCodeError()

        otp.used_at = datetime.now(timezone.utc)

    async def _deliver_code(self, user: User, otp: OneTimeCode, code: str) -> None:
        # TODO: send the code by e-mail once an outbound mail client is configured
        self.logger.info(
            "one_time_code_issued",
            user_id=str(user.id),
            purpose=otp.purpose,
            token_id=str(otp.id),
            expires_at=otp.expires_at.isoformat(),
        )
