"""
Activity log writes and reads.

Entries are committed on their own, after the action they describe has
committed, so a failed issuance or reset never leaves a log row behind.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from backend.app.models.audit_log import AuditLog


class AuditAction:
    # Authentication
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    PIN_VERIFIED = "PIN_VERIFIED"
    PIN_FAILED = "PIN_FAILED"

    # User management
    USER_CREATED = "USER_CREATED"
    USER_BLOCKED = "USER_BLOCKED"
    USER_UNBLOCKED = "USER_UNBLOCKED"
    PIN_UPDATED = "PIN_UPDATED"
    ALL_USERS_LOGGED_OUT = "ALL_USERS_LOGGED_OUT"

    # Parties
    PARTY_CREATED = "PARTY_CREATED"
    PARTY_DELETED = "PARTY_DELETED"

    # Ledger
    TRANSACTION_POSTED = "TRANSACTION_POSTED"

    # Documents
    INVOICE_CREATED = "INVOICE_CREATED"
    INVOICE_PAYMENT_UPDATED = "INVOICE_PAYMENT_UPDATED"
    INVOICE_DELETED = "INVOICE_DELETED"
    TICKET_CREATED = "TICKET_CREATED"
    TICKET_STATUS_UPDATED = "TICKET_STATUS_UPDATED"
    TICKET_DELETED = "TICKET_DELETED"
    RECEIPT_CREATED = "RECEIPT_CREATED"

    # Administration
    DATA_RESET = "DATA_RESET"
    REPORT_REQUESTED = "REPORT_REQUESTED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    entity_name: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    entry = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        meta_data=metadata,
        ip_address=ip_address
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


async def log_staff_action(
    db: AsyncSession,
    actor: dict,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    entity_name: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Record an action of the signed-in user.

    Args:
        actor: decoded token of the caller (user_id and sub are used)
        entity_type: "customer", "invoice", "user", ...
        entity_name: party name, document number or username
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=actor.get("user_id"),
        actor_username=actor.get("sub"),
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        metadata=metadata
    )


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    username: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """Sign-in, sign-out and PIN events; the account is both actor and subject."""
    return await log_event(
        db=db,
        action=action,
        actor_id=user_id,
        actor_username=username,
        entity_type="user",
        entity_id=user_id,
        entity_name=username,
        ip_address=ip_address,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    actor_id: Optional[int] = None,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """Newest entries first, optionally filtered by actor, action and record kind."""
    filters = []
    if actor_id:
        filters.append(AuditLog.actor_id == actor_id)
    if action:
        filters.append(AuditLog.action == action)
    if entity_type:
        filters.append(AuditLog.entity_type == entity_type)

    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id)).limit(limit)
    for condition in filters:
        query = query.where(condition)

    result = await db.execute(query)
    return list(result.scalars().all())
