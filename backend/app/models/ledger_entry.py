"""
Ledger models: one append-only transaction history per party type.

Immutable records of balance changes. Each row carries the balance of the
affected pool right after the change (balance_after), written in the same
database transaction as the party update itself.
NO updates allowed; rows are deleted only together with their party or by
an admin finance reset.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, String, Text
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.billing_enums import (
    db_enum, LedgerEntryType, BalancePool, LedgerPaymentMethod
)


class LedgerColumnsMixin:
    """Columns shared by every ledger table."""

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Direction: credit = pool increased, debit/deposit_debit = pool decreased
    type = Column(db_enum(LedgerEntryType), nullable=False)

    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=False)

    # Invoice/ticket that triggered the change, if any
    reference_id = Column(Integer, nullable=True, index=True)
    reference_type = Column(String(50), nullable=True)

    balance_after = Column(Float, nullable=False)

    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    @property
    def signed_amount(self) -> float:
        """Amount with the sign of its effect on the pool."""
        if self.type == LedgerEntryType.CREDIT:
            return self.amount
        return -self.amount


class DepositTransaction(LedgerColumnsMixin, Base):
    """Customer deposit ledger (customers have a single pool)."""
    __tablename__ = "deposit_transactions"

    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)

    def __repr__(self):
        return f"<DepositTransaction(id={self.id}, customer={self.customer_id}, type='{self.type.value}', amount={self.amount})>"


class AgentTransaction(LedgerColumnsMixin, Base):
    """Agent ledger covering both the credit and the deposit pool."""
    __tablename__ = "agent_transactions"

    agent_id = Column(Integer, ForeignKey("agents.id"), nullable=False, index=True)
    transaction_type = Column(db_enum(BalancePool), nullable=False)
    payment_method = Column(db_enum(LedgerPaymentMethod), nullable=False, default=LedgerPaymentMethod.CASH)

    def __repr__(self):
        return f"<AgentTransaction(id={self.id}, agent={self.agent_id}, pool='{self.transaction_type.value}', type='{self.type.value}', amount={self.amount})>"


class VendorTransaction(LedgerColumnsMixin, Base):
    """Vendor ledger covering both the credit and the deposit pool."""
    __tablename__ = "vendor_transactions"

    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False, index=True)
    transaction_type = Column(db_enum(BalancePool), nullable=False)
    payment_method = Column(db_enum(LedgerPaymentMethod), nullable=False, default=LedgerPaymentMethod.CASH)

    def __repr__(self):
        return f"<VendorTransaction(id={self.id}, vendor={self.vendor_id}, pool='{self.transaction_type.value}', type='{self.type.value}', amount={self.amount})>"
