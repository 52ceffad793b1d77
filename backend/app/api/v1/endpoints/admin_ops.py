"""
Admin Operations API Endpoints.

Data resets, forced logout of every session and report snapshots.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.core.guards import require_admin
from backend.app.core.token_revocation import revoke_all_user_tokens
from backend.app.schemas.admin import (
    ResetDataRequest, ResetDataResponse, LogoutAllResponse, ReportResponse
)
from backend.app.services import maintenance
from backend.app.services.analytics import MetricsService
from backend.app.services.audit import log_staff_action, AuditAction

router = APIRouter(prefix="/admin", tags=["Admin - Ops"])


@router.post("/reset-data", response_model=ResetDataResponse)
async def reset_data(
    reset_request: ResetDataRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Wipe a data set (admin-only).

    - users: delete every non-admin account
    - finance: delete all ledger rows and zero every balance
    - invoices / tickets: delete them and reset their counter to the base
    - all: full billing wipe plus non-admin users
    """
    reset_type = reset_request.type

    if reset_type == "users":
        deleted = await maintenance.reset_users(db)
    elif reset_type == "finance":
        deleted = await maintenance.reset_finance_data(db)
    elif reset_type == "invoices":
        deleted = await maintenance.reset_invoices(db)
    elif reset_type == "tickets":
        deleted = await maintenance.reset_tickets(db)
    else:
        deleted = await maintenance.cleanup_all_data(db)
        deleted.update(await maintenance.reset_users(db))

    audit_log = await log_staff_action(
        db,
        actor=admin,
        action=AuditAction.DATA_RESET,
        entity_type="system",
        entity_name=reset_type,
        metadata=deleted
    )

    return ResetDataResponse(
        success=True,
        message=f"Reset of '{reset_type}' completed",
        type=reset_type,
        deleted=deleted,
        audit_log_id=audit_log.id
    )


@router.post("/logout-all-users", response_model=LogoutAllResponse)
async def logout_all_users(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Revoke every token of every other user; they must sign in again."""
    result = await db.execute(select(User.id).where(User.id != admin["user_id"]))
    user_ids = result.scalars().all()

    for user_id in user_ids:
        await revoke_all_user_tokens(user_id)

    audit_log = await log_staff_action(
        db,
        actor=admin,
        action=AuditAction.ALL_USERS_LOGGED_OUT,
        entity_type="system",
        metadata={"users": len(user_ids)}
    )

    return LogoutAllResponse(
        success=True,
        message=f"Logged out {len(user_ids)} user(s)",
        users_logged_out=len(user_ids),
        audit_log_id=audit_log.id
    )


@router.post("/send-report", response_model=ReportResponse)
async def send_report(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Build the dashboard snapshot for the daily report.

    The snapshot is returned and the request is recorded; mail delivery is
    handled outside this service.
    """
    metrics = await MetricsService.dashboard(db)

    audit_log = await log_staff_action(
        db,
        actor=admin,
        action=AuditAction.REPORT_REQUESTED,
        entity_type="system",
        metadata={
            "total_revenue": metrics.total_revenue,
            "pending_payments": metrics.pending_payments,
        }
    )

    return ReportResponse(
        success=True,
        message="Report generated",
        metrics=metrics,
        audit_log_id=audit_log.id
    )
