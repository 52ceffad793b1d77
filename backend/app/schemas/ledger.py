"""
Ledger Schemas.

A single response shape covers the three ledger tables; customer rows have
no transaction_type/payment_method since customers hold one pool.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.billing_enums import (
    PartyType, BalancePool, Direction, LedgerEntryType, LedgerPaymentMethod
)
from backend.app.domain.ledger.accounts import get_account


class TransactionCreate(BaseModel):
    """Manual "Add Transaction" posting."""
    party_type: PartyType
    party_id: int = Field(..., gt=0)
    pool: BalancePool = Field(default=BalancePool.DEPOSIT)
    direction: Direction
    amount: float = Field(..., gt=0)
    description: str = Field(..., min_length=1)
    payment_method: LedgerPaymentMethod = Field(default=LedgerPaymentMethod.CASH)
    reference_id: Optional[int] = None
    reference_type: Optional[str] = Field(default=None, max_length=50)


class TransactionResponse(BaseModel):
    id: int
    party_type: PartyType
    party_id: int
    type: LedgerEntryType
    transaction_type: Optional[BalancePool] = None
    amount: float
    description: str
    payment_method: Optional[LedgerPaymentMethod] = None
    reference_id: Optional[int] = None
    reference_type: Optional[str] = None
    balance_after: float
    created_at: datetime

    @classmethod
    def from_entry(cls, party_type: PartyType, entry) -> "TransactionResponse":
        account = get_account(party_type)
        return cls(
            id=entry.id,
            party_type=account.party_type,
            party_id=getattr(entry, account.ledger_party_column),
            type=entry.type,
            transaction_type=getattr(entry, "transaction_type", None),
            amount=entry.amount,
            description=entry.description,
            payment_method=getattr(entry, "payment_method", None),
            reference_id=entry.reference_id,
            reference_type=entry.reference_type,
            balance_after=entry.balance_after,
            created_at=entry.created_at,
        )


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    total: int
