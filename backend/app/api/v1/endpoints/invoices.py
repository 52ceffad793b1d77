"""
Invoice API Endpoints.

Issuance applies every balance mutation the invoice implies in the same
transaction as the invoice itself.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.models.invoice import Invoice
from backend.app.schemas.invoice import (
    InvoiceCreate, InvoiceResponse, InvoicePaymentUpdate, InvoiceListResponse
)
from backend.app.core.guards import require_staff, require_admin
from backend.app.domain.billing.issuance import IssuanceService
from backend.app.services.audit import log_staff_action, AuditAction

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_data: InvoiceCreate,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Issue an invoice.

    Flow:
    1. Validate parties exist
    2. Allocate INV number
    3. Persist invoice + deposit / vendor / agent-credit mutations atomically
    """
    invoice = await IssuanceService.create_invoice(
        db,
        invoice_data,
        issued_by=current_user["user_id"],
        created_by_name=current_user.get("name") or current_user.get("sub", "")
    )

    await log_staff_action(
        db,
        actor=current_user,
        action=AuditAction.INVOICE_CREATED,
        entity_type="invoice",
        entity_id=invoice.id,
        entity_name=invoice.invoice_number,
        metadata={"total": invoice.total, "customer_type": invoice.customer_type.value}
    )

    return InvoiceResponse.model_validate(invoice)


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    limit: int = Query(None, ge=1, le=1000, description="Maximum records to return"),
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """List invoices, newest first."""
    invoices = await IssuanceService.list_invoices(db, limit=limit)
    return InvoiceListResponse(
        invoices=[InvoiceResponse.model_validate(i) for i in invoices],
        total=len(invoices)
    )


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: int,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    invoice = await db.get(Invoice, invoice_id)
    if not invoice:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invoice not found"
        )
    return InvoiceResponse.model_validate(invoice)


@router.patch("/{invoice_id}/payment", response_model=InvoiceResponse)
async def update_invoice_payment(
    invoice_id: int,
    payment: InvoicePaymentUpdate,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a payment. paid_amount is cumulative and may only grow;
    paying the full total marks the invoice paid.
    """
    invoice = await IssuanceService.update_invoice_payment(
        db, invoice_id, paid_amount=payment.paid_amount, status=payment.status
    )

    await log_staff_action(
        db,
        actor=current_user,
        action=AuditAction.INVOICE_PAYMENT_UPDATED,
        entity_type="invoice",
        entity_id=invoice.id,
        entity_name=invoice.invoice_number,
        metadata={"paid_amount": invoice.paid_amount, "status": invoice.status.value}
    )

    return InvoiceResponse.model_validate(invoice)


@router.delete("/{invoice_id}")
async def delete_invoice(
    invoice_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete an invoice (admin-only).

    Balance mutations it caused stay on the ledger; corrections are made
    with compensating transactions. Its number is never reused.
    """
    invoice = await IssuanceService.delete_invoice(db, invoice_id)

    await log_staff_action(
        db,
        actor=admin,
        action=AuditAction.INVOICE_DELETED,
        entity_type="invoice",
        entity_id=invoice_id,
        entity_name=invoice.invoice_number
    )

    return {"success": True, "message": f"Invoice {invoice.invoice_number} deleted"}
