"""
Ticket API Endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.models.ticket import Ticket
from backend.app.schemas.ticket import (
    TicketCreate, TicketResponse, TicketStatusUpdate, TicketListResponse
)
from backend.app.core.guards import require_staff, require_admin
from backend.app.domain.billing.issuance import IssuanceService
from backend.app.services.audit import log_staff_action, AuditAction

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    ticket_data: TicketCreate,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Issue a ticket.

    Vendor cost accrues to the vendor's credit pool unless a vendor balance
    is used, in which case the chosen pool is deducted once.
    """
    ticket = await IssuanceService.create_ticket(
        db,
        ticket_data,
        issued_by=current_user["user_id"],
        created_by_name=current_user.get("name") or current_user.get("sub", "")
    )

    await log_staff_action(
        db,
        actor=current_user,
        action=AuditAction.TICKET_CREATED,
        entity_type="ticket",
        entity_id=ticket.id,
        entity_name=ticket.ticket_number,
        metadata={"route": ticket.route, "face_value": ticket.face_value}
    )

    return TicketResponse.model_validate(ticket)


@router.get("", response_model=TicketListResponse)
async def list_tickets(
    limit: int = Query(None, ge=1, le=1000, description="Maximum records to return"),
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """List tickets, newest first."""
    tickets = await IssuanceService.list_tickets(db, limit=limit)
    return TicketListResponse(
        tickets=[TicketResponse.model_validate(t) for t in tickets],
        total=len(tickets)
    )


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: int,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    ticket = await db.get(Ticket, ticket_id)
    if not ticket:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ticket not found"
        )
    return TicketResponse.model_validate(ticket)


@router.patch("/{ticket_id}/status", response_model=TicketResponse)
async def update_ticket_status(
    ticket_id: int,
    status_update: TicketStatusUpdate,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """Change ticket status only; no balance is touched."""
    ticket = await IssuanceService.update_ticket_status(db, ticket_id, status_update.status)

    await log_staff_action(
        db,
        actor=current_user,
        action=AuditAction.TICKET_STATUS_UPDATED,
        entity_type="ticket",
        entity_id=ticket.id,
        entity_name=ticket.ticket_number,
        metadata={"status": ticket.status.value}
    )

    return TicketResponse.model_validate(ticket)


@router.delete("/{ticket_id}")
async def delete_ticket(
    ticket_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete a ticket (admin-only). Its number is never reused."""
    ticket = await IssuanceService.delete_ticket(db, ticket_id)

    await log_staff_action(
        db,
        actor=admin,
        action=AuditAction.TICKET_DELETED,
        entity_type="ticket",
        entity_id=ticket_id,
        entity_name=ticket.ticket_number
    )

    return {"success": True, "message": f"Ticket {ticket.ticket_number} deleted"}
