"""
Party API Endpoints.

Customers, agents and vendors: creation with opening balances, lookup,
ledger history and cascading deletion (admin).
"""

from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.models.billing_enums import PartyType
from backend.app.schemas.party import (
    CustomerCreate, CustomerResponse,
    AgentCreate, AgentResponse,
    VendorCreate, VendorResponse,
    PartyDeleteResponse,
)
from backend.app.schemas.ledger import TransactionResponse, TransactionListResponse
from backend.app.core.guards import require_staff, require_admin
from backend.app.domain.ledger.queries import LedgerQueries
from backend.app.services import party_service
from backend.app.services.audit import log_staff_action, AuditAction

router = APIRouter(tags=["Parties"])


async def _create(db: AsyncSession, party_type: PartyType, data, current_user: dict):
    party = await party_service.create_party(db, party_type, data)
    await log_staff_action(
        db,
        actor=current_user,
        action=AuditAction.PARTY_CREATED,
        entity_type=party_type.value,
        entity_id=party.id,
        entity_name=party.name
    )
    return party


async def _delete(db: AsyncSession, party_type: PartyType, party_id: int, admin: dict) -> PartyDeleteResponse:
    party = await party_service.get_party(db, party_type, party_id)
    name = party.name
    deleted_rows = await party_service.delete_party(db, party_type, party_id)
    audit_log = await log_staff_action(
        db,
        actor=admin,
        action=AuditAction.PARTY_DELETED,
        entity_type=party_type.value,
        entity_id=party_id,
        entity_name=name,
        metadata={"transactions_deleted": deleted_rows}
    )
    return PartyDeleteResponse(
        success=True,
        message=f"{party_type.value.capitalize()} '{name}' deleted",
        party_type=party_type.value,
        party_id=party_id,
        transactions_deleted=deleted_rows,
        audit_log_id=audit_log.id
    )


async def _history(db: AsyncSession, party_type: PartyType, party_id: int) -> TransactionListResponse:
    rows = await LedgerQueries.party_transactions(db, party_type, party_id)
    return TransactionListResponse(
        transactions=[TransactionResponse.from_entry(party_type, row) for row in rows],
        total=len(rows)
    )


# Customers

@router.post("/customers", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """Create a customer; an opening deposit is recorded on the ledger."""
    customer = await _create(db, PartyType.CUSTOMER, customer_data, current_user)
    return CustomerResponse.model_validate(customer)


@router.get("/customers", response_model=List[CustomerResponse])
async def list_customers(
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    customers = await party_service.list_parties(db, PartyType.CUSTOMER)
    return [CustomerResponse.model_validate(c) for c in customers]


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: int,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    customer = await party_service.get_party(db, PartyType.CUSTOMER, customer_id)
    return CustomerResponse.model_validate(customer)


@router.get("/customers/{customer_id}/transactions", response_model=TransactionListResponse)
async def customer_transactions(
    customer_id: int,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """Deposit history, newest first."""
    return await _history(db, PartyType.CUSTOMER, customer_id)


@router.delete("/customers/{customer_id}", response_model=PartyDeleteResponse)
async def delete_customer(
    customer_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete a customer and all of its deposit transactions (admin-only)."""
    return await _delete(db, PartyType.CUSTOMER, customer_id, admin)


# Agents

@router.post("/agents", response_model=AgentResponse, status_code=status.HTTP_201_CREATED)
async def create_agent(
    agent_data: AgentCreate,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """Create an agent; opening credit/deposit are recorded on the ledger."""
    agent = await _create(db, PartyType.AGENT, agent_data, current_user)
    return AgentResponse.model_validate(agent)


@router.get("/agents", response_model=List[AgentResponse])
async def list_agents(
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    agents = await party_service.list_parties(db, PartyType.AGENT)
    return [AgentResponse.model_validate(a) for a in agents]


@router.get("/agents/{agent_id}", response_model=AgentResponse)
async def get_agent(
    agent_id: int,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    agent = await party_service.get_party(db, PartyType.AGENT, agent_id)
    return AgentResponse.model_validate(agent)


@router.get("/agents/{agent_id}/transactions", response_model=TransactionListResponse)
async def agent_transactions(
    agent_id: int,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """Credit and deposit history, newest first."""
    return await _history(db, PartyType.AGENT, agent_id)


@router.delete("/agents/{agent_id}", response_model=PartyDeleteResponse)
async def delete_agent(
    agent_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete an agent and all of its transactions (admin-only)."""
    return await _delete(db, PartyType.AGENT, agent_id, admin)


# Vendors

@router.post("/vendors", response_model=VendorResponse, status_code=status.HTTP_201_CREATED)
async def create_vendor(
    vendor_data: VendorCreate,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """Create a vendor; opening credit/deposit are recorded on the ledger."""
    vendor = await _create(db, PartyType.VENDOR, vendor_data, current_user)
    return VendorResponse.model_validate(vendor)


@router.get("/vendors", response_model=List[VendorResponse])
async def list_vendors(
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    vendors = await party_service.list_parties(db, PartyType.VENDOR)
    return [VendorResponse.model_validate(v) for v in vendors]


@router.get("/vendors/{vendor_id}", response_model=VendorResponse)
async def get_vendor(
    vendor_id: int,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    vendor = await party_service.get_party(db, PartyType.VENDOR, vendor_id)
    return VendorResponse.model_validate(vendor)


@router.get("/vendors/{vendor_id}/transactions", response_model=TransactionListResponse)
async def vendor_transactions(
    vendor_id: int,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """Credit and deposit history, newest first."""
    return await _history(db, PartyType.VENDOR, vendor_id)


@router.delete("/vendors/{vendor_id}", response_model=PartyDeleteResponse)
async def delete_vendor(
    vendor_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete a vendor and all of its transactions (admin-only)."""
    return await _delete(db, PartyType.VENDOR, vendor_id, admin)
