"""
Balance engine tests.

Every mutation must move exactly one pool, write one ledger row whose
balance_after matches the stored balance, and respect the floor policy.
"""

import pytest

from backend.app.core.exceptions import (
    ValidationFailedError,
    ResourceNotFoundError,
    InsufficientBalanceError,
)
from backend.app.domain.ledger.balance_engine import BalanceEngine, round_money
from backend.app.domain.ledger.queries import LedgerQueries
from backend.app.models.billing_enums import (
    PartyType, BalancePool, Direction, LedgerEntryType
)
from backend.app.models.party import Customer, Agent, Vendor
from backend.app.schemas.party import CustomerCreate, AgentCreate, VendorCreate
from backend.app.services import party_service


async def _customer(db_session, deposit=0.0, name="Alice"):
    return await party_service.create_party(
        db_session, PartyType.CUSTOMER,
        CustomerCreate(name=name, phone=f"555-{name}", deposit_balance=deposit)
    )


async def _agent(db_session, credit=0.0, deposit=0.0):
    return await party_service.create_party(
        db_session, PartyType.AGENT,
        AgentCreate(name="Skyways", phone="555-0200", credit_balance=credit, deposit_balance=deposit)
    )


async def _vendor(db_session, credit=0.0, deposit=0.0):
    return await party_service.create_party(
        db_session, PartyType.VENDOR,
        VendorCreate(name="Global Fares", credit_balance=credit, deposit_balance=deposit)
    )


def test_round_money():
    assert round_money(10.456) == 10.46
    assert round_money(None) == 0.0
    assert round_money("7.1") == 7.1


@pytest.mark.asyncio
async def test_increase_and_decrease_customer_deposit(db_session, fetch):
    customer = await _customer(db_session, deposit=100.0)

    entry = await BalanceEngine.post_transaction(
        db_session, PartyType.CUSTOMER, customer.id, BalancePool.DEPOSIT,
        Direction.INCREASE, 50.0, "Top up"
    )
    assert entry.type == LedgerEntryType.CREDIT
    assert entry.balance_after == 150.0

    entry = await BalanceEngine.post_transaction(
        db_session, PartyType.CUSTOMER, customer.id, BalancePool.DEPOSIT,
        Direction.DECREASE, 30.25, "Refund"
    )
    assert entry.type == LedgerEntryType.DEBIT
    assert entry.balance_after == 119.75

    stored = await fetch(Customer, customer.id)
    assert stored.deposit_balance == 119.75


@pytest.mark.asyncio
async def test_agent_pools_are_independent(db_session, fetch):
    agent = await _agent(db_session, credit=1000.0, deposit=200.0)

    entry = await BalanceEngine.post_transaction(
        db_session, PartyType.AGENT, agent.id, BalancePool.CREDIT,
        Direction.DECREASE, 400.0, "Credit used"
    )
    assert entry.transaction_type == BalancePool.CREDIT

    stored = await fetch(Agent, agent.id)
    assert stored.credit_balance == 600.0
    assert stored.deposit_balance == 200.0


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5.0, 0.001])
async def test_non_positive_amount_rejected(db_session, fetch, amount):
    customer = await _customer(db_session, deposit=10.0)

    with pytest.raises(ValidationFailedError):
        await BalanceEngine.post_transaction(
            db_session, PartyType.CUSTOMER, customer.id, BalancePool.DEPOSIT,
            Direction.INCREASE, amount, "Nothing"
        )

    stored = await fetch(Customer, customer.id)
    assert stored.deposit_balance == 10.0


@pytest.mark.asyncio
async def test_customer_has_no_credit_pool(db_session):
    customer = await _customer(db_session)

    with pytest.raises(ValidationFailedError):
        await BalanceEngine.post_transaction(
            db_session, PartyType.CUSTOMER, customer.id, BalancePool.CREDIT,
            Direction.INCREASE, 10.0, "Credit"
        )


@pytest.mark.asyncio
async def test_missing_party_raises_not_found(db_session):
    with pytest.raises(ResourceNotFoundError):
        await BalanceEngine.post_transaction(
            db_session, PartyType.VENDOR, 999, BalancePool.CREDIT,
            Direction.INCREASE, 10.0, "Ghost"
        )


@pytest.mark.asyncio
async def test_permissive_policy_allows_negative(db_session, fetch):
    customer = await _customer(db_session, deposit=100.0)

    entry = await BalanceEngine.post_transaction(
        db_session, PartyType.CUSTOMER, customer.id, BalancePool.DEPOSIT,
        Direction.DECREASE, 150.0, "Overdraft"
    )
    assert entry.balance_after == -50.0

    stored = await fetch(Customer, customer.id)
    assert stored.deposit_balance == -50.0


@pytest.mark.asyncio
async def test_strict_policy_rejects_negative(db_session, fetch, strict_floor):
    customer = await _customer(db_session, deposit=100.0)

    with pytest.raises(InsufficientBalanceError) as exc_info:
        await BalanceEngine.post_transaction(
            db_session, PartyType.CUSTOMER, customer.id, BalancePool.DEPOSIT,
            Direction.DECREASE, 150.0, "Overdraft"
        )
    assert exc_info.value.status_code == 409
    assert exc_info.value.details["balance"] == 100.0

    stored = await fetch(Customer, customer.id)
    assert stored.deposit_balance == 100.0
    # Only the opening balance row
    assert await LedgerQueries.count_party_transactions(db_session, PartyType.CUSTOMER, customer.id) == 1


@pytest.mark.asyncio
async def test_strict_policy_allows_exact_zero(db_session, fetch, strict_floor):
    customer = await _customer(db_session, deposit=100.0)

    await BalanceEngine.post_transaction(
        db_session, PartyType.CUSTOMER, customer.id, BalancePool.DEPOSIT,
        Direction.DECREASE, 100.0, "Use everything"
    )

    stored = await fetch(Customer, customer.id)
    assert stored.deposit_balance == 0.0


@pytest.mark.asyncio
async def test_entry_type_must_match_direction(db_session):
    vendor = await _vendor(db_session, deposit=100.0)

    with pytest.raises(ValidationFailedError):
        await BalanceEngine.post_transaction(
            db_session, PartyType.VENDOR, vendor.id, BalancePool.DEPOSIT,
            Direction.INCREASE, 10.0, "Wrong tag",
            entry_type=LedgerEntryType.DEPOSIT_DEBIT
        )

    entry = await BalanceEngine.post_transaction(
        db_session, PartyType.VENDOR, vendor.id, BalancePool.DEPOSIT,
        Direction.DECREASE, 10.0, "Ticket deduction",
        entry_type=LedgerEntryType.DEPOSIT_DEBIT
    )
    assert entry.type == LedgerEntryType.DEPOSIT_DEBIT
    assert entry.balance_after == 90.0


@pytest.mark.asyncio
async def test_ledger_replays_to_balance(db_session, fetch):
    vendor = await _vendor(db_session, credit=500.0, deposit=300.0)

    postings = [
        (BalancePool.CREDIT, Direction.INCREASE, 120.0),
        (BalancePool.CREDIT, Direction.DECREASE, 75.5),
        (BalancePool.DEPOSIT, Direction.DECREASE, 300.0),
        (BalancePool.DEPOSIT, Direction.INCREASE, 42.1),
    ]
    for pool, direction, amount in postings:
        await BalanceEngine.post_transaction(
            db_session, PartyType.VENDOR, vendor.id, pool, direction, amount, "Posting"
        )

    stored = await fetch(Vendor, vendor.id)
    assert stored.credit_balance == 544.5
    assert stored.deposit_balance == 42.1

    credit_sum = await LedgerQueries.ledger_sum(db_session, PartyType.VENDOR, vendor.id, BalancePool.CREDIT)
    deposit_sum = await LedgerQueries.ledger_sum(db_session, PartyType.VENDOR, vendor.id, BalancePool.DEPOSIT)
    assert credit_sum == stored.credit_balance
    assert deposit_sum == stored.deposit_balance


@pytest.mark.asyncio
async def test_history_is_newest_first_with_running_balance(db_session):
    customer = await _customer(db_session, deposit=100.0)

    for amount in (10.0, 20.0, 30.0):
        await BalanceEngine.post_transaction(
            db_session, PartyType.CUSTOMER, customer.id, BalancePool.DEPOSIT,
            Direction.INCREASE, amount, f"Top up {amount}"
        )

    rows = await LedgerQueries.party_transactions(db_session, PartyType.CUSTOMER, customer.id)
    assert [row.balance_after for row in rows] == [160.0, 130.0, 110.0, 100.0]
    assert rows[-1].description == "Opening balance"
    assert rows[-1].reference_type == "opening_balance"

    # Reading twice changes nothing
    again = await LedgerQueries.party_transactions(db_session, PartyType.CUSTOMER, customer.id)
    assert [row.id for row in again] == [row.id for row in rows]


@pytest.mark.asyncio
async def test_history_of_missing_party(db_session):
    with pytest.raises(ResourceNotFoundError):
        await LedgerQueries.party_transactions(db_session, PartyType.AGENT, 42)


@pytest.mark.asyncio
async def test_manual_transaction_endpoint(client, staff_headers, fetch):
    response = await client.post(
        "/v1/customers",
        json={"name": "Bob", "phone": "555-0101", "deposit_balance": 25.0},
        headers=staff_headers
    )
    assert response.status_code == 201
    customer_id = response.json()["id"]

    response = await client.post(
        "/v1/transactions",
        json={
            "party_type": "customer",
            "party_id": customer_id,
            "direction": "increase",
            "amount": 75.0,
            "description": "Cash deposit"
        },
        headers=staff_headers
    )
    assert response.status_code == 201
    data = response.json()
    assert data["type"] == "credit"
    assert data["balance_after"] == 100.0

    stored = await fetch(Customer, customer_id)
    assert stored.deposit_balance == 100.0

    response = await client.get("/v1/transactions/customer", headers=staff_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 2


@pytest.mark.asyncio
async def test_manual_transaction_errors(client, staff_headers):
    missing = await client.post(
        "/v1/transactions",
        json={
            "party_type": "agent",
            "party_id": 77,
            "pool": "credit",
            "direction": "increase",
            "amount": 10.0,
            "description": "Ghost"
        },
        headers=staff_headers
    )
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "ERR_NOT_FOUND_001"

    zero = await client.post(
        "/v1/transactions",
        json={
            "party_type": "agent",
            "party_id": 1,
            "direction": "increase",
            "amount": 0,
            "description": "Zero"
        },
        headers=staff_headers
    )
    assert zero.status_code == 422


@pytest.mark.asyncio
async def test_manual_transaction_strict_floor_conflict(client, staff_headers, strict_floor):
    response = await client.post(
        "/v1/agents",
        json={"name": "Skyways", "phone": "555-0200", "credit_balance": 50.0},
        headers=staff_headers
    )
    agent_id = response.json()["id"]

    response = await client.post(
        "/v1/transactions",
        json={
            "party_type": "agent",
            "party_id": agent_id,
            "pool": "credit",
            "direction": "decrease",
            "amount": 80.0,
            "description": "Too much"
        },
        headers=staff_headers
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_BALANCE_001"
