"""
Invoice database model.

An invoice bills a customer or agent for items sourced from a vendor and
records which balance pools were drawn on when it was issued.
"""

from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.billing_enums import (
    db_enum, CustomerType, PaymentMethod, BalanceSource, InvoiceStatus
)


class Invoice(Base):
    """
    Invoice model.

    Balance-effecting fields (deposit_used, agent_credit_used,
    vendor_balance_deducted and their toggles) are written once at issuance
    and never changed afterwards. Only status and paid_amount move later.
    """
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)

    # Parties
    customer_type = Column(db_enum(CustomerType), nullable=False, default=CustomerType.CUSTOMER)
    customer_id = Column(Integer, nullable=False, index=True)
    vendor_id = Column(Integer, nullable=False, index=True)

    # [{"description": str, "quantity": int, "unit_price": float}, ...]
    items = Column(JSON, nullable=False, default=list)

    # Financials
    subtotal = Column(Float, nullable=False)
    discount_percent = Column(Float, nullable=False, default=0.0)
    discount_amount = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False)
    vendor_cost = Column(Float, nullable=False, default=0.0)
    payment_method = Column(db_enum(PaymentMethod), nullable=False)

    # Balance sources used at issuance
    use_customer_deposit = Column(Boolean, nullable=False, default=False)
    deposit_used = Column(Float, nullable=False, default=0.0)
    use_agent_credit = Column(Boolean, nullable=False, default=False)
    agent_credit_used = Column(Float, nullable=False, default=0.0)
    use_vendor_balance = Column(db_enum(BalanceSource), nullable=False, default=BalanceSource.NONE)
    vendor_balance_deducted = Column(Float, nullable=False, default=0.0)

    notes = Column(Text, nullable=False, default="")
    issued_by = Column(Integer, nullable=False, index=True)
    created_by_name = Column(String(255), nullable=False, default="")

    # Payment state
    status = Column(db_enum(InvoiceStatus), nullable=False, default=InvoiceStatus.ISSUED, index=True)
    paid_amount = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', total={self.total}, status='{self.status.value}')>"
