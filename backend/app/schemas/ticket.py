"""
Ticket Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.billing_enums import (
    CustomerType, BalanceSource, TicketStatus, TripType, SeatClass
)


class TicketCreate(BaseModel):
    """Schema for issuing a ticket. No vendor_id means a direct airline purchase."""
    customer_type: CustomerType = Field(default=CustomerType.CUSTOMER)
    customer_id: int = Field(..., gt=0)
    vendor_id: Optional[int] = Field(default=None, gt=0)
    invoice_id: Optional[int] = Field(default=None, gt=0)

    trip_type: TripType = Field(default=TripType.ONE_WAY)
    seat_class: SeatClass = Field(default=SeatClass.ECONOMY)
    route: str = Field(..., min_length=1, max_length=255)
    airlines: str = Field(..., min_length=1, max_length=255)
    flight_number: Optional[str] = Field(default=None, max_length=50)
    flight_time: Optional[str] = Field(default=None, max_length=20)
    travel_date: str = Field(..., min_length=1, max_length=20)
    return_date: Optional[str] = Field(default=None, max_length=20)
    passenger_name: str = Field(..., min_length=1, max_length=255)

    face_value: float = Field(..., ge=0)
    vendor_cost: float = Field(default=0.0, ge=0)
    additional_cost: float = Field(default=0.0, ge=0)

    # Balance sources
    deduct_from_deposit: bool = False
    deposit_deducted: float = Field(default=0.0, ge=0)
    use_agent_balance: BalanceSource = Field(default=BalanceSource.NONE)
    agent_balance_deducted: float = Field(default=0.0, ge=0)
    use_vendor_balance: BalanceSource = Field(default=BalanceSource.NONE)
    vendor_balance_deducted: float = Field(default=0.0, ge=0)

    created_by_name: Optional[str] = Field(default=None, description="Bill creator (after PIN verification)")


class TicketResponse(BaseModel):
    id: int
    ticket_number: str
    customer_type: CustomerType
    customer_id: int
    vendor_id: Optional[int]
    invoice_id: Optional[int]
    trip_type: TripType
    seat_class: SeatClass
    route: str
    airlines: str
    flight_number: Optional[str]
    flight_time: Optional[str]
    travel_date: str
    return_date: Optional[str]
    passenger_name: str
    face_value: float
    vendor_cost: float
    additional_cost: float
    deduct_from_deposit: bool
    deposit_deducted: float
    use_agent_balance: BalanceSource
    agent_balance_deducted: float
    use_vendor_balance: BalanceSource
    vendor_balance_deducted: float
    issued_by: int
    created_by_name: str
    status: TicketStatus
    created_at: datetime

    class Config:
        from_attributes = True


class TicketStatusUpdate(BaseModel):
    status: TicketStatus


class TicketListResponse(BaseModel):
    tickets: List[TicketResponse]
    total: int
