"""
Cash Receipt Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.billing_enums import PartyType, PaymentMethod, ReceiptStatus


class CashReceiptCreate(BaseModel):
    party_type: PartyType = Field(default=PartyType.CUSTOMER)
    party_id: int = Field(..., gt=0)
    source_type: str = Field(default="flight", max_length=50)
    pnr: str = Field(default="", max_length=20)
    service_name: str = Field(default="", max_length=255)
    amount: float = Field(..., gt=0)
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH)
    description: str = Field(default="")
    reference_number: str = Field(default="", max_length=100)
    created_by_name: Optional[str] = None


class CashReceiptResponse(BaseModel):
    id: int
    receipt_number: str
    party_type: PartyType
    party_id: int
    source_type: str
    pnr: str
    service_name: str
    amount: float
    payment_method: PaymentMethod
    description: str
    reference_number: str
    issued_by: int
    created_by_name: str
    status: ReceiptStatus
    created_at: datetime

    class Config:
        from_attributes = True


class CashReceiptListResponse(BaseModel):
    receipts: List[CashReceiptResponse]
    total: int
