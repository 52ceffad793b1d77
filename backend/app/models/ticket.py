"""
Ticket database model.

A travel ticket sold to a customer or agent, optionally sourced through a
vendor (no vendor means bought directly from the airline).
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.billing_enums import (
    db_enum, CustomerType, BalanceSource, TicketStatus, TripType, SeatClass
)


class Ticket(Base):
    """
    Ticket model.

    Like invoices, the balance-use fields are fixed at issuance; only the
    status moves afterwards.
    """
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    ticket_number = Column(String(50), unique=True, nullable=False, index=True)

    # Parties
    customer_type = Column(db_enum(CustomerType), nullable=False, default=CustomerType.CUSTOMER)
    customer_id = Column(Integer, nullable=False, index=True)
    vendor_id = Column(Integer, nullable=True, index=True)
    invoice_id = Column(Integer, nullable=True, index=True)

    # Trip details
    trip_type = Column(db_enum(TripType), nullable=False, default=TripType.ONE_WAY)
    seat_class = Column(db_enum(SeatClass), nullable=False, default=SeatClass.ECONOMY)
    route = Column(String(255), nullable=False)
    airlines = Column(String(255), nullable=False)
    flight_number = Column(String(50), nullable=True)
    flight_time = Column(String(20), nullable=True)
    travel_date = Column(String(20), nullable=False)
    return_date = Column(String(20), nullable=True)
    passenger_name = Column(String(255), nullable=False)

    # Financials
    face_value = Column(Float, nullable=False)
    vendor_cost = Column(Float, nullable=False, default=0.0)
    additional_cost = Column(Float, nullable=False, default=0.0)

    # Balance sources used at issuance
    deduct_from_deposit = Column(Boolean, nullable=False, default=False)
    deposit_deducted = Column(Float, nullable=False, default=0.0)
    use_agent_balance = Column(db_enum(BalanceSource), nullable=False, default=BalanceSource.NONE)
    agent_balance_deducted = Column(Float, nullable=False, default=0.0)
    use_vendor_balance = Column(db_enum(BalanceSource), nullable=False, default=BalanceSource.NONE)
    vendor_balance_deducted = Column(Float, nullable=False, default=0.0)

    issued_by = Column(Integer, nullable=False, index=True)
    created_by_name = Column(String(255), nullable=False, default="")

    status = Column(db_enum(TicketStatus), nullable=False, default=TicketStatus.ISSUED, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<Ticket(id={self.id}, number='{self.ticket_number}', route='{self.route}', status='{self.status.value}')>"
