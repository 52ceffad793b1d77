"""
Authentication API endpoints.

Provides login, logout, current-user and bill-creator PIN verification.
Staff accounts are created by an admin (see admin endpoints).
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.auth import (
    UserLogin, TokenResponse, UserResponse, LogoutResponse, PinVerifyRequest, PinVerifyResponse
)
from backend.app.core.security import verify_password
from backend.app.core.jwt import create_access_token, build_token_payload
from backend.app.core.dependencies import get_current_user
from backend.app.core.guards import require_staff
from backend.app.core.token_revocation import revoke_token
from backend.app.services.audit import log_auth_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client_ip(request: Request):
    return request.client.host if request.client else None


async def _reject_login(db: AsyncSession, request: Request, attempted: str, user, reason: str, code: int):
    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_FAILED,
        user_id=user.id if user else None,
        username=user.username if user else attempted,
        ip_address=_client_ip(request),
        metadata={"reason": reason}
    )
    if code == status.HTTP_403_FORBIDDEN:
        raise HTTPException(status_code=code, detail="Inactive user account")
    raise HTTPException(
        status_code=code,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange username (or email) and password for a bearer token.

    Unknown account and wrong password both answer 401 "Invalid credentials";
    a blocked account answers 403. Every attempt is written to the activity log.
    """
    user = (await db.execute(
        select(User).where(
            or_(User.username == credentials.username, User.email == credentials.username)
        )
    )).scalar_one_or_none()

    if user is None:
        await _reject_login(db, request, credentials.username, None, "User not found",
                            status.HTTP_401_UNAUTHORIZED)
    if not verify_password(credentials.password, user.hashed_password):
        await _reject_login(db, request, credentials.username, user, "Invalid password",
                            status.HTTP_401_UNAUTHORIZED)
    if not user.is_active:
        await _reject_login(db, request, credentials.username, user, "Account is blocked",
                            status.HTTP_403_FORBIDDEN)

    token = create_access_token(data=build_token_payload(user))
    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        username=user.username,
        ip_address=_client_ip(request)
    )

    return TokenResponse(
        access_token=token,
        user_id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        role=user.role
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Account of the token holder (has_pin tells whether it can sign documents)."""
    user = await db.get(User, current_user["user_id"])
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse.model_validate(user)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented token."""
    await revoke_token(current_user)

    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=current_user["user_id"],
        username=current_user.get("sub")
    )

    return LogoutResponse(success=True, message="Logged out successfully")


@router.post("/verify-pin", response_model=PinVerifyResponse)
async def verify_pin(
    pin_request: PinVerifyRequest,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Verify a bill creator's PIN.

    The front desk asks for the creator's PIN before issuing an invoice or
    ticket; the returned name goes on the document.
    """
    user = await db.get(User, pin_request.user_id)

    if not user or not user.is_active or not user.hashed_pin:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Bill creator not found"
        )

    if not verify_password(pin_request.pin, user.hashed_pin):
        await log_auth_event(
            db=db,
            action=AuditAction.PIN_FAILED,
            user_id=user.id,
            username=user.username,
            metadata={"checked_by": current_user.get("sub")}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid PIN"
        )

    await log_auth_event(
        db=db,
        action=AuditAction.PIN_VERIFIED,
        user_id=user.id,
        username=user.username,
        metadata={"checked_by": current_user.get("sub")}
    )

    return PinVerifyResponse(
        verified=True,
        user_id=user.id,
        username=user.username,
        name=user.display_name
    )
