"""
Party Schemas.

Customers, agents and vendors. Opening balances given at creation are
recorded on the ledger, so they are accepted here but never edited later.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class CustomerCreate(BaseModel):
    """Schema for creating a customer."""
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    company: str = Field(default="", max_length=255)
    address: str = Field(default="")
    email: str = Field(default="", max_length=255)
    deposit_balance: float = Field(default=0.0, ge=0, description="Opening deposit")


class CustomerResponse(BaseModel):
    id: int
    name: str
    phone: str
    company: str
    address: str
    email: str
    deposit_balance: float
    created_at: datetime

    class Config:
        from_attributes = True


class AgentCreate(BaseModel):
    """Schema for creating an agent."""
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    company: str = Field(default="", max_length=255)
    address: str = Field(default="")
    email: str = Field(default="", max_length=255)
    credit_balance: float = Field(default=0.0, ge=0, description="Opening credit")
    deposit_balance: float = Field(default=0.0, ge=0, description="Opening deposit")


class AgentResponse(BaseModel):
    id: int
    name: str
    phone: str
    company: str
    address: str
    email: str
    credit_balance: float
    deposit_balance: float
    created_at: datetime

    class Config:
        from_attributes = True


class VendorAirline(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1, max_length=3)


class VendorCreate(BaseModel):
    """Schema for creating a vendor."""
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(default="", max_length=50)
    email: str = Field(default="", max_length=255)
    address: str = Field(default="")
    credit_balance: float = Field(default=0.0, ge=0, description="Opening credit")
    deposit_balance: float = Field(default=0.0, ge=0, description="Opening deposit")
    airlines: List[VendorAirline] = Field(default_factory=list)


class VendorResponse(BaseModel):
    id: int
    name: str
    phone: str
    email: str
    address: str
    credit_balance: float
    deposit_balance: float
    airlines: List[VendorAirline]
    created_at: datetime

    class Config:
        from_attributes = True


class PartyDeleteResponse(BaseModel):
    """Result of deleting a party together with its ledger."""
    success: bool
    message: str
    party_type: str
    party_id: int
    transactions_deleted: int
    audit_log_id: Optional[int] = None
