"""
Invoice Schemas.
"""

from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Optional, List
from backend.app.models.billing_enums import (
    CustomerType, PaymentMethod, BalanceSource, InvoiceStatus
)


class InvoiceItem(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    unit_price: float = Field(..., ge=0)

    @property
    def line_total(self) -> float:
        return round(self.quantity * self.unit_price, 2)


class InvoiceCreate(BaseModel):
    """
    Schema for issuing an invoice.

    subtotal, discount_amount and total are derived from the items and the
    discount percent; a client-supplied discount_amount overrides the
    percentage.
    """
    customer_type: CustomerType = Field(default=CustomerType.CUSTOMER)
    customer_id: int = Field(..., gt=0)
    vendor_id: int = Field(..., gt=0)
    items: List[InvoiceItem] = Field(..., min_length=1)

    discount_percent: float = Field(default=0.0, ge=0, le=100)
    discount_amount: Optional[float] = Field(default=None, ge=0)
    vendor_cost: float = Field(default=0.0, ge=0)
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH)

    # Balance sources
    use_customer_deposit: bool = False
    deposit_used: float = Field(default=0.0, ge=0)
    use_agent_credit: bool = False
    agent_credit_used: float = Field(default=0.0, ge=0)
    use_vendor_balance: BalanceSource = Field(default=BalanceSource.NONE)
    vendor_balance_deducted: float = Field(default=0.0, ge=0)

    notes: str = Field(default="")
    created_by_name: Optional[str] = Field(default=None, description="Bill creator (after PIN verification)")

    @property
    def subtotal(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    @property
    def computed_discount(self) -> float:
        if self.discount_amount is not None:
            return round(self.discount_amount, 2)
        return round(self.subtotal * self.discount_percent / 100, 2)

    @property
    def total(self) -> float:
        return round(self.subtotal - self.computed_discount, 2)

    @model_validator(mode="after")
    def check_discount(self):
        if self.computed_discount > self.subtotal:
            raise ValueError("Discount cannot exceed the subtotal")
        return self


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    customer_type: CustomerType
    customer_id: int
    vendor_id: int
    items: List[InvoiceItem]
    subtotal: float
    discount_percent: float
    discount_amount: float
    total: float
    vendor_cost: float
    payment_method: PaymentMethod
    use_customer_deposit: bool
    deposit_used: float
    use_agent_credit: bool
    agent_credit_used: float
    use_vendor_balance: BalanceSource
    vendor_balance_deducted: float
    notes: str
    issued_by: int
    created_by_name: str
    status: InvoiceStatus
    paid_amount: float
    created_at: datetime

    class Config:
        from_attributes = True


class InvoicePaymentUpdate(BaseModel):
    """
    Payment-status update, the only way paid_amount changes.

    paid_amount is the new cumulative amount paid (never lower than before).
    """
    paid_amount: float = Field(..., ge=0)
    status: Optional[InvoiceStatus] = None


class InvoiceListResponse(BaseModel):
    invoices: List[InvoiceResponse]
    total: int
