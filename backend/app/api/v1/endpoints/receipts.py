"""
Cash Receipt API Endpoints.

Receipts acknowledge money received; they have no balance side effects.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.models.cash_receipt import CashReceipt
from backend.app.schemas.receipt import CashReceiptCreate, CashReceiptResponse, CashReceiptListResponse
from backend.app.core.guards import require_staff
from backend.app.domain.billing.issuance import IssuanceService
from backend.app.services.audit import log_staff_action, AuditAction

router = APIRouter(prefix="/cash-receipts", tags=["Cash Receipts"])


@router.post("", response_model=CashReceiptResponse, status_code=status.HTTP_201_CREATED)
async def create_cash_receipt(
    receipt_data: CashReceiptCreate,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    receipt = await IssuanceService.create_cash_receipt(
        db,
        receipt_data,
        issued_by=current_user["user_id"],
        created_by_name=current_user.get("name") or current_user.get("sub", "")
    )

    await log_staff_action(
        db,
        actor=current_user,
        action=AuditAction.RECEIPT_CREATED,
        entity_type="cash_receipt",
        entity_id=receipt.id,
        entity_name=receipt.receipt_number,
        metadata={"amount": receipt.amount}
    )

    return CashReceiptResponse.model_validate(receipt)


@router.get("", response_model=CashReceiptListResponse)
async def list_cash_receipts(
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(CashReceipt).order_by(CashReceipt.created_at.desc(), CashReceipt.id.desc())
    )
    receipts = result.scalars().all()
    return CashReceiptListResponse(
        receipts=[CashReceiptResponse.model_validate(r) for r in receipts],
        total=len(receipts)
    )


@router.get("/{receipt_id}", response_model=CashReceiptResponse)
async def get_cash_receipt(
    receipt_id: int,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    receipt = await db.get(CashReceipt, receipt_id)
    if not receipt:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Cash receipt not found"
        )
    return CashReceiptResponse.model_validate(receipt)
