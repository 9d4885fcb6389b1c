# backend/app/api/v1/auth.py
from __future__ import annotations

import math
import uuid
from datetime import timedelta
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dates import as_utc, utcnow
from app.core.email import email_service
from app.core.roles import UserRole, UserStatus
from app.core.security import (
    bearer_scheme,
    create_access_token,
    decode_access_token,
    generate_numeric_code,
    hash_password,
    verify_password,
)
from app.db.session import get_db
from app.models.tenant_access_request import AccessRequestStatus, TenantAccessRequest
from app.models.user import LOCK_TIME_MINUTES, MAX_LOGIN_ATTEMPTS, User
from app.schemas.auth import (
    AuthResponse,
    CodeSentResponse,
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
    VerifyEmailRequest,
    VerifyResetCodeRequest,
)
from app.schemas.common import MessageResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

CODE_EXPIRY_MINUTES = 10
TOKEN_EXPIRES_IN_SECONDS = 3600

# Pending users may still verify their email and ask to join a tenant.
ALLOWED_SESSION_STATUSES = {UserStatus.ACTIVE.value, UserStatus.PENDING.value}


def _should_return_codes_in_response() -> bool:
    """Never outside development; settings refuse the flag in staging/production."""
    return settings.RETURN_CODES_IN_RESPONSE and not settings.is_production


async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.email == User.normalize_email(email)))
    return res.scalar_one_or_none()


async def _pending_request_id(db: AsyncSession, user_id: uuid.UUID) -> Optional[uuid.UUID]:
    stmt = (
        select(TenantAccessRequest.id)
        .where(
            TenantAccessRequest.user_id == user_id,
            TenantAccessRequest.status == AccessRequestStatus.PENDING.value,
            TenantAccessRequest.deleted_at.is_(None),
        )
        .order_by(TenantAccessRequest.created_at.desc())
        .limit(1)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def to_user_response(db: AsyncSession, user: User) -> UserResponse:
    resp = UserResponse.model_validate(user)
    pending_id = await _pending_request_id(db, user.id)
    resp.has_pending_request = pending_id is not None
    resp.pending_request_id = pending_id
    return resp


def _issue_token(user: User) -> str:
    return create_access_token(
        subject=str(user.id),
        expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        claims={
            "email": user.email,
            "role": user.role,
            "tenantId": str(user.tenant_id) if user.tenant_id else None,
        },
    )


async def _auth_response(db: AsyncSession, user: User, code: Optional[str] = None) -> AuthResponse:
    resp = AuthResponse(
        access_token=_issue_token(user),
        expires_in=TOKEN_EXPIRES_IN_SECONDS,
        user=await to_user_response(db, user),
    )
    if code and _should_return_codes_in_response():
        resp.verification_code = code
    return resp


def _assign_verification_code(user: User) -> str:
    code = generate_numeric_code()
    user.email_verification_code = code
    user.email_verification_code_expires = utcnow() + timedelta(minutes=CODE_EXPIRY_MINUTES)
    return code


async def get_current_user(
    credentials=Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency for protected endpoints.
    """
    token = credentials.credentials
    user_id = decode_access_token(token)  # returns sub string

    try:
        user_uuid = uuid.UUID(str(user_id))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    user = await db.get(User, user_uuid)
    if not user or user.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    if user.status not in ALLOWED_SESSION_STATUSES:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive")

    return user


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    email = User.normalize_email(payload.email)

    if await _get_user_by_email(db, email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone_number=payload.phone_number,
        role=(payload.role or UserRole.STAFF).value,
        status=UserStatus.PENDING.value,
        tenant_id=payload.tenant_id,
        department=payload.department,
        designation=payload.designation,
        email_verified=False,
        login_attempts=0,
        is_first_login=True,
    )
    code = _assign_verification_code(user)
    db.add(user)
    await db.commit()
    await db.refresh(user)

    email_service.send_verification_code(user.email, user.first_name, code)
    logger.info("auth.registered", user_id=str(user.id))

    return await _auth_response(db, user, code)


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, request: Request, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    user = await _get_user_by_email(db, payload.email)
    if not user or user.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if user.is_locked():
        remaining = (as_utc(user.locked_until) - utcnow()).total_seconds() / 60
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Account is locked. Please try again in {math.ceil(remaining)} minutes",
        )

    if user.status == UserStatus.SUSPENDED.value:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Your account has been suspended")
    if user.status == UserStatus.INACTIVE.value:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Your account is inactive")

    if not verify_password(payload.password, user.password_hash):
        user.login_attempts = (user.login_attempts or 0) + 1
        if user.login_attempts >= MAX_LOGIN_ATTEMPTS:
            user.locked_until = utcnow() + timedelta(minutes=LOCK_TIME_MINUTES)
            logger.warning("auth.account_locked", user_id=str(user.id), attempts=user.login_attempts)
        await db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    user.login_attempts = 0
    user.locked_until = None
    user.last_login_at = utcnow()
    user.last_login_ip = request.client.host if request.client else None

    code = None
    if not user.email_verified:
        code = _assign_verification_code(user)

    await db.commit()
    await db.refresh(user)

    if code:
        email_service.send_verification_code(user.email, user.first_name, code)
    logger.info("auth.login", user_id=str(user.id))

    return await _auth_response(db, user, code)


@router.get("/me", response_model=UserResponse)
async def me(db: AsyncSession = Depends(get_db), user: User = Depends(get_current_user)) -> UserResponse:
    return await to_user_response(db, user)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(db: AsyncSession = Depends(get_db), user: User = Depends(get_current_user)) -> AuthResponse:
    return await _auth_response(db, user)


@router.post("/logout", response_model=MessageResponse)
async def logout(user: User = Depends(get_current_user)) -> MessageResponse:
    # Tokens are stateless; the client discards its copy.
    logger.info("auth.logout", user_id=str(user.id))
    return MessageResponse(message="Logged out successfully")


@router.post("/verify-email", response_model=AuthResponse)
async def verify_email(payload: VerifyEmailRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    user = await _get_user_by_email(db, payload.email)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.email_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already verified")
    if not user.email_verification_code or user.email_verification_code != payload.code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid verification code")
    expires = as_utc(user.email_verification_code_expires)
    if not expires or expires < utcnow():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Verification code has expired")

    user.email_verified = True
    user.email_verified_at = utcnow()
    user.status = UserStatus.ACTIVE.value
    user.email_verification_code = None
    user.email_verification_code_expires = None
    await db.commit()
    await db.refresh(user)

    logger.info("auth.email_verified", user_id=str(user.id))
    return await _auth_response(db, user)


async def _send_verification_code(payload: EmailRequest, db: AsyncSession) -> CodeSentResponse:
    user = await _get_user_by_email(db, payload.email)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.email_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already verified")

    code = _assign_verification_code(user)
    await db.commit()

    email_service.send_verification_code(user.email, user.first_name, code)

    resp = CodeSentResponse(message="Verification code sent", expires_in_minutes=CODE_EXPIRY_MINUTES)
    if _should_return_codes_in_response():
        resp.code = code
    return resp


@router.post("/send-verification-code", response_model=CodeSentResponse)
async def send_verification_code(payload: EmailRequest, db: AsyncSession = Depends(get_db)) -> CodeSentResponse:
    return await _send_verification_code(payload, db)


@router.post("/resend-verification", response_model=CodeSentResponse)
async def resend_verification(payload: EmailRequest, db: AsyncSession = Depends(get_db)) -> CodeSentResponse:
    return await _send_verification_code(payload, db)


@router.post("/forgot-password", response_model=CodeSentResponse)
async def forgot_password(payload: EmailRequest, db: AsyncSession = Depends(get_db)) -> CodeSentResponse:
    """
    Same answer whether or not the account exists.
    """
    resp = CodeSentResponse(
        message="If an account with that email exists, a password reset code has been sent",
        expires_in_minutes=CODE_EXPIRY_MINUTES,
    )

    user = await _get_user_by_email(db, payload.email)
    if not user or user.deleted_at is not None:
        return resp

    code = generate_numeric_code()
    user.password_reset_token = code
    user.password_reset_expires = utcnow() + timedelta(minutes=CODE_EXPIRY_MINUTES)
    await db.commit()

    email_service.send_password_reset_code(user.email, user.first_name, code)
    logger.info("auth.reset_code_issued", user_id=str(user.id))

    if _should_return_codes_in_response():
        resp.code = code
    return resp


async def _user_with_valid_reset_code(db: AsyncSession, email: str, code: str) -> User:
    user = await _get_user_by_email(db, email)
    if not user or not user.password_reset_token or user.password_reset_token != code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid reset code")
    expires = as_utc(user.password_reset_expires)
    if not expires or expires < utcnow():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Reset code has expired")
    return user


@router.post("/verify-reset-code", response_model=MessageResponse)
async def verify_reset_code(payload: VerifyResetCodeRequest, db: AsyncSession = Depends(get_db)) -> MessageResponse:
    await _user_with_valid_reset_code(db, payload.email, payload.code)
    return MessageResponse(message="Reset code is valid")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(payload: ResetPasswordRequest, db: AsyncSession = Depends(get_db)) -> MessageResponse:
    user = await _user_with_valid_reset_code(db, payload.email, payload.code)

    user.password_hash = hash_password(payload.new_password)
    user.password_reset_token = None
    user.password_reset_expires = None
    user.login_attempts = 0
    user.locked_until = None
    await db.commit()

    logger.info("auth.password_reset", user_id=str(user.id))
    return MessageResponse(message="Password has been reset successfully")
