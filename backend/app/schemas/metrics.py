"""
Dashboard metrics schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional
from backend.app.models.billing_enums import CustomerType, InvoiceStatus, TicketStatus


class RecentInvoice(BaseModel):
    id: int
    invoice_number: str
    customer_type: CustomerType
    customer_id: int
    total: float
    paid_amount: float
    status: InvoiceStatus
    created_at: datetime

    class Config:
        from_attributes = True


class RecentTicket(BaseModel):
    id: int
    ticket_number: str
    passenger_name: str
    route: str
    face_value: float
    status: TicketStatus
    created_at: datetime

    class Config:
        from_attributes = True


class DashboardMetrics(BaseModel):
    """Read-only rollup over parties, invoices and tickets."""
    total_customers: int
    total_agents: int
    total_vendors: int
    total_invoices: int
    total_tickets: int

    total_revenue: float
    pending_payments: float

    customer_deposits: float
    agent_credit: float
    agent_deposits: float
    vendor_credit: float
    vendor_deposits: float

    recent_invoices: List[RecentInvoice]
    recent_tickets: List[RecentTicket]

    generated_at: Optional[datetime] = None
