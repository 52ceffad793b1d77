"""
Cash Receipt database model.

Acknowledges money received from a party. Receipts are paperwork only and
do not move any balance.
"""

from sqlalchemy import Column, Integer, String, Text, Float, DateTime
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.billing_enums import db_enum, PartyType, PaymentMethod, ReceiptStatus


class CashReceipt(Base):
    __tablename__ = "cash_receipts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    receipt_number = Column(String(50), unique=True, nullable=False, index=True)

    party_type = Column(db_enum(PartyType), nullable=False)
    party_id = Column(Integer, nullable=False, index=True)

    source_type = Column(String(50), nullable=False, default="flight")
    pnr = Column(String(20), nullable=False, default="")
    service_name = Column(String(255), nullable=False, default="")

    amount = Column(Float, nullable=False)
    payment_method = Column(db_enum(PaymentMethod), nullable=False)
    description = Column(Text, nullable=False, default="")
    reference_number = Column(String(100), nullable=False, default="")

    issued_by = Column(Integer, nullable=False)
    created_by_name = Column(String(255), nullable=False, default="")
    status = Column(db_enum(ReceiptStatus), nullable=False, default=ReceiptStatus.ISSUED)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<CashReceipt(id={self.id}, number='{self.receipt_number}', amount={self.amount})>"
