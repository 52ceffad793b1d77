"""
Ledger API Endpoints.

Manual "Add Transaction" postings and ledger listings for reporting.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.models.billing_enums import PartyType
from backend.app.schemas.ledger import TransactionCreate, TransactionResponse, TransactionListResponse
from backend.app.core.guards import require_staff
from backend.app.domain.ledger.balance_engine import BalanceEngine
from backend.app.domain.ledger.queries import LedgerQueries
from backend.app.services.audit import log_staff_action, AuditAction

router = APIRouter(prefix="/transactions", tags=["Ledger"])


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def post_transaction(
    transaction: TransactionCreate,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Post one manual balance change (agent credits, vendor credits,
    customer deposits pages).

    Errors:
    - 400 non-positive amount or pool the party doesn't have
    - 404 party not found
    - 409 strict floor policy or concurrent change
    """
    entry = await BalanceEngine.post_transaction(
        db,
        party_type=transaction.party_type,
        party_id=transaction.party_id,
        pool=transaction.pool,
        direction=transaction.direction,
        amount=transaction.amount,
        description=transaction.description,
        reference_id=transaction.reference_id,
        reference_type=transaction.reference_type,
        payment_method=transaction.payment_method,
    )
    response = TransactionResponse.from_entry(transaction.party_type, entry)

    await log_staff_action(
        db,
        actor=current_user,
        action=AuditAction.TRANSACTION_POSTED,
        entity_type=transaction.party_type.value,
        entity_id=transaction.party_id,
        metadata={
            "pool": transaction.pool.value,
            "direction": transaction.direction.value,
            "amount": response.amount,
            "balance_after": response.balance_after,
        }
    )

    return response


@router.get("/{party_type}", response_model=TransactionListResponse)
async def list_transactions(
    party_type: PartyType,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """All ledger rows of one party type, newest first."""
    rows = await LedgerQueries.all_transactions(db, party_type)
    return TransactionListResponse(
        transactions=[TransactionResponse.from_entry(party_type, row) for row in rows],
        total=len(rows)
    )
