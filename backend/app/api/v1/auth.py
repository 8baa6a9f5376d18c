"""Account API endpoints: sign-up, login, the caller's account, e-mail
verification, password reset and admin deactivation."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import ADMIN_ONLY, RequestPrincipal, Role
from app.dependencies import get_db, get_current_user, require_role
from app.models.user import User
from app.models.one_time_code import CodePurpose, OneTimeCode
from app.schemas.auth import (
    AccountResponse,
    AuthSession,
    CodeIssuedResponse,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyAccountRequest,
)
from app.schemas.common import ApiResponse
from app.services.auth_service import AuthService, issue_token

router = APIRouter()

admin = require_role(ADMIN_ONLY)


def _auth_session(user: User) -> AuthSession:
    return AuthSession(account=AccountResponse.model_validate(user), token=issue_token(user))


def _code_issued(email: str, otp: OneTimeCode) -> ApiResponse[CodeIssuedResponse]:
    return ApiResponse(
        message="OTP sent successfully",
        data=CodeIssuedResponse(token_id=otp.id, email=email.lower(), expires_at=otp.expires_at),
    )


@router.post("/register", response_model=ApiResponse[AuthSession], status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Sign up as a user or moderator and receive a bearer token."""
    user = await AuthService(db).register(
        email=body.email,
        username=body.username,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        avatar=body.avatar,
        location=body.location.model_dump() if body.location else None,
        role=Role(body.role),
    )
    return ApiResponse(message="User registered", data=_auth_session(user))


@router.post("/login", response_model=ApiResponse[AuthSession])
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await AuthService(db).authenticate(email=body.email, password=body.password)
    return ApiResponse(message="Logged in", data=_auth_session(user))


@router.get("/me", response_model=ApiResponse[AccountResponse])
async def get_me(current_user: User = Depends(get_current_user)):
    return ApiResponse(message="Current user", data=AccountResponse.model_validate(current_user))


@router.post("/verification/{email}", response_model=ApiResponse[CodeIssuedResponse], status_code=201)
@router.post("/verification/{email}/resend", response_model=ApiResponse[CodeIssuedResponse], status_code=201)
async def request_verification_code(email: str, db: AsyncSession = Depends(get_db)):
    """Mail a code that confirms the account's e-mail address."""
    otp = await AuthService(db).request_code(email, CodePurpose.VERIFY_EMAIL)
    return _code_issued(email, otp)


@router.post("/verify-email", response_model=ApiResponse[AccountResponse])
async def verify_email(body: VerifyAccountRequest, db: AsyncSession = Depends(get_db)):
    user = await AuthService(db).verify_account(body.email, body.token_id, body.code)
    return ApiResponse(message="Account verified successfully", data=AccountResponse.model_validate(user))


@router.post("/forgot-password/{email}", response_model=ApiResponse[CodeIssuedResponse], status_code=201)
@router.post("/forgot-password/{email}/resend", response_model=ApiResponse[CodeIssuedResponse], status_code=201)
async def forgot_password(email: str, db: AsyncSession = Depends(get_db)):
    """Mail a password-reset code."""
    otp = await AuthService(db).request_code(email, CodePurpose.RESET_PASSWORD)
    return _code_issued(email, otp)


@router.post("/reset-password", response_model=ApiResponse[dict])
async def reset_password(body: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await AuthService(db).reset_password(body.email, body.token_id, body.code, body.password)
    return ApiResponse(message="Password reset successfully", data={"reset": True})


@router.delete("/users/{user_id}", response_model=ApiResponse[AccountResponse])
async def deactivate_user(
    user_id: UUID,
    principal: RequestPrincipal = Depends(admin),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate a non-admin account. Admins only."""
    user = await AuthService(db).deactivate_user(principal, user_id)
    return ApiResponse(message="User deactivated", data=AccountResponse.model_validate(user))
