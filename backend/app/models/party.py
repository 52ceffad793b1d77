"""
Party account models: customers, agents and vendors.

Each party holds one or two balance pools. Pool values change only through
the balance engine (which writes a ledger row for every change) or through
the admin reset operations.
"""

from sqlalchemy import Column, Integer, String, Text, Float, DateTime, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base


class Customer(Base):
    """
    Walk-in or corporate customer.

    Single pool: deposit_balance (money the customer prepaid us).
    """
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False, index=True)
    company = Column(String(255), nullable=False, default="")
    address = Column(Text, nullable=False, default="")
    email = Column(String(255), nullable=False, default="")

    deposit_balance = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}', deposit={self.deposit_balance})>"


class Agent(Base):
    """
    Sub-agent buying tickets in bulk.

    credit_balance: credit we extend to the agent.
    deposit_balance: money the agent prepaid us.
    """
    __tablename__ = "agents"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False, index=True)
    company = Column(String(255), nullable=False, default="")
    address = Column(Text, nullable=False, default="")
    email = Column(String(255), nullable=False, default="")

    credit_balance = Column(Float, nullable=False, default=0.0)
    deposit_balance = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Agent(id={self.id}, name='{self.name}', credit={self.credit_balance}, deposit={self.deposit_balance})>"


class Vendor(Base):
    """
    Ticket supplier (consolidator or airline office).

    credit_balance: what we owe the vendor / credit the vendor extends to us.
    deposit_balance: money we prepaid the vendor.
    """
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    address = Column(Text, nullable=False, default="")

    credit_balance = Column(Float, nullable=False, default=0.0)
    deposit_balance = Column(Float, nullable=False, default=0.0)

    # [{"name": "Emirates", "code": "EK"}, ...]
    airlines = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vendor(id={self.id}, name='{self.name}', credit={self.credit_balance}, deposit={self.deposit_balance})>"
