"""
Staff account management (superadmin only).

Accounts are never deleted here; blocking deactivates the account and
revokes every token it holds. All changes land in the activity log.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.schemas.admin import (
    UserCreateRequest, UserListResponse, UserListItem, BlockUserRequest, UnblockUserRequest,
    PinUpdateRequest, AdminActionResponse, AuditTrailResponse, AuditLogResponse
)
from backend.app.core.guards import require_admin
from backend.app.core.security import get_password_hash
from backend.app.core.token_revocation import revoke_all_user_tokens, clear_user_token_revocation
from backend.app.services.audit import log_staff_action, AuditAction, get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def _record(db: AsyncSession, admin: dict, action: str, user: User, reason=None, **extra) -> AdminActionResponse:
    metadata = dict(extra)
    if reason:
        metadata["reason"] = reason
    entry = await log_staff_action(
        db,
        actor=admin,
        action=action,
        entity_type="user",
        entity_id=user.id,
        entity_name=user.username,
        metadata=metadata or None,
    )
    verb = action.split("_", 1)[-1].lower().replace("_", " ")
    return AdminActionResponse(
        success=True,
        message=f"User '{user.username}' {verb}",
        user_id=user.id,
        action=action,
        audit_log_id=entry.id,
    )


@router.post("/users", response_model=UserListItem, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreateRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a desk account.

    With a PIN the account can sign off invoices and tickets as bill creator.
    Username and email must both be unused (400 otherwise).
    """
    clash = (await db.execute(
        select(User.username).where(
            or_(User.username == user_data.username, User.email == user_data.email)
        )
    )).scalars().first()
    if clash is not None:
        field = "Username" if clash == user_data.username else "Email"
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field} already registered"
        )

    user = User(
        email=user_data.email,
        username=user_data.username,
        full_name=user_data.full_name,
        phone=user_data.phone,
        hashed_password=get_password_hash(user_data.password),
        password_hint=user_data.password_hint,
        hashed_pin=get_password_hash(user_data.pin) if user_data.pin else None,
        role=user_data.role,
        is_active=True,
        is_superuser=user_data.role == UserRole.ADMIN
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    await log_staff_action(
        db,
        actor=admin,
        action=AuditAction.USER_CREATED,
        entity_type="user",
        entity_id=user.id,
        entity_name=user.username,
        metadata={"role": user.role.value, "has_pin": user.has_pin}
    )
    return UserListItem.model_validate(user)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Desk accounts, newest first."""
    total = await db.scalar(select(func.count(User.id)))
    users = (await db.execute(
        select(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )).scalars().all()

    return UserListResponse(
        users=[UserListItem.model_validate(u) for u in users],
        total=total or 0,
        page=page,
        page_size=page_size
    )


@router.get("/users/{user_id}", response_model=UserListItem)
async def get_user(
    user_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return UserListItem.model_validate(await _get_user_or_404(db, user_id))


@router.put("/users/{user_id}/pin", response_model=AdminActionResponse)
async def set_user_pin(
    user_id: int,
    request: PinUpdateRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Set, replace or clear (pin=null) an account's bill creator PIN."""
    user = await _get_user_or_404(db, user_id)
    user.hashed_pin = get_password_hash(request.pin) if request.pin else None
    await db.commit()
    return await _record(db, admin, AuditAction.PIN_UPDATED, user, has_pin=user.has_pin)


@router.post("/users/{user_id}/block", response_model=AdminActionResponse)
async def block_user(
    user_id: int,
    request: BlockUserRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate an account and revoke every token it holds.

    Raises:
        403: target is a superadmin
        400: target is the caller or already blocked
    """
    user = await _get_user_or_404(db, user_id)

    if user.is_superuser:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot block another admin user"
        )
    if user.id == admin["user_id"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot block yourself")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already blocked")

    user.is_active = False
    await db.commit()
    await revoke_all_user_tokens(user.id)

    return await _record(db, admin, AuditAction.USER_BLOCKED, user, reason=request.reason)


@router.post("/users/{user_id}/unblock", response_model=AdminActionResponse)
async def unblock_user(
    user_id: int,
    request: UnblockUserRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Reactivate an account; it must log in again to get a token."""
    user = await _get_user_or_404(db, user_id)
    if user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already active")

    user.is_active = True
    await db.commit()
    await clear_user_token_revocation(user.id)

    return await _record(db, admin, AuditAction.USER_UNBLOCKED, user, reason=request.reason)


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    actor_id: int = Query(None, description="Filter by acting user ID"),
    action: str = Query(None, description="Filter by action type"),
    entity_type: str = Query(None, description="Filter by record kind"),
    limit: int = Query(100, ge=1, le=500),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Activity log, newest first."""
    logs = await get_audit_trail(
        db=db,
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        limit=limit
    )
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
