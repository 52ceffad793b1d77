"""
Invoice issuance tests.

An invoice and every balance change it implies are committed together;
a failure anywhere leaves no invoice, no consumed number and untouched
balances.
"""

import asyncio

import pytest

from backend.app.core.exceptions import ValidationFailedError
from backend.app.domain.billing.issuance import IssuanceService
from backend.app.domain.ledger.balance_engine import BalanceEngine
from backend.app.models.invoice import Invoice
from backend.app.models.party import Customer, Agent, Vendor


async def _create(client, headers, path, payload):
    response = await client.post(path, json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _invoice_payload(customer_id, vendor_id, **overrides):
    payload = {
        "customer_type": "customer",
        "customer_id": customer_id,
        "vendor_id": vendor_id,
        "items": [
            {"description": "DXB-LHR return", "quantity": 1, "unit_price": 800.0},
            {"description": "Visa service", "quantity": 2, "unit_price": 100.0},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
async def parties(client, staff_headers):
    customer = await _create(client, staff_headers, "/v1/customers", {
        "name": "Alice Traveller", "phone": "555-0101", "deposit_balance": 500.0
    })
    agent = await _create(client, staff_headers, "/v1/agents", {
        "name": "Skyways Travel", "phone": "555-0200",
        "credit_balance": 300.0, "deposit_balance": 150.0
    })
    vendor = await _create(client, staff_headers, "/v1/vendors", {
        "name": "Global Fares", "credit_balance": 1000.0, "deposit_balance": 400.0,
        "airlines": [{"name": "Emirates", "code": "EK"}]
    })
    return {"customer": customer, "agent": agent, "vendor": vendor}


@pytest.mark.asyncio
async def test_invoice_totals_and_number(client, staff_headers, parties):
    response = await client.post(
        "/v1/invoices",
        json=_invoice_payload(
            parties["customer"]["id"], parties["vendor"]["id"], discount_percent=10
        ),
        headers=staff_headers
    )
    assert response.status_code == 201, response.text
    data = response.json()

    assert data["invoice_number"] == "INV-1001"
    assert data["subtotal"] == 1000.0
    assert data["discount_amount"] == 100.0
    assert data["total"] == 900.0
    assert data["status"] == "issued"
    assert data["paid_amount"] == 0.0
    assert data["created_by_name"] == "Front Desk"


@pytest.mark.asyncio
async def test_customer_deposit_used(client, staff_headers, parties, fetch):
    """Deposit 500, invoice uses 200: deposit 300 and one debit row."""
    customer_id = parties["customer"]["id"]

    response = await client.post(
        "/v1/invoices",
        json=_invoice_payload(
            customer_id, parties["vendor"]["id"],
            use_customer_deposit=True, deposit_used=200.0
        ),
        headers=staff_headers
    )
    assert response.status_code == 201, response.text
    invoice_id = response.json()["id"]

    customer = await fetch(Customer, customer_id)
    assert customer.deposit_balance == 300.0

    history = await client.get(f"/v1/customers/{customer_id}/transactions", headers=staff_headers)
    rows = history.json()["transactions"]
    invoice_rows = [row for row in rows if row["reference_type"] == "invoice"]
    assert len(invoice_rows) == 1
    assert invoice_rows[0]["type"] == "debit"
    assert invoice_rows[0]["amount"] == 200.0
    assert invoice_rows[0]["balance_after"] == 300.0
    assert invoice_rows[0]["reference_id"] == invoice_id
    assert invoice_rows[0]["description"] == "Invoice INV-1001 - Deposit used for payment"


@pytest.mark.asyncio
async def test_agent_credit_and_deposit_in_one_invoice(client, staff_headers, parties, fetch):
    """Agent credit 300 / deposit 150; invoice uses credit 100 and deposit 50."""
    agent_id = parties["agent"]["id"]

    response = await client.post(
        "/v1/invoices",
        json=_invoice_payload(
            agent_id, parties["vendor"]["id"],
            customer_type="agent",
            use_agent_credit=True, agent_credit_used=100.0,
            use_customer_deposit=True, deposit_used=50.0
        ),
        headers=staff_headers
    )
    assert response.status_code == 201, response.text
    invoice_id = response.json()["id"]

    agent = await fetch(Agent, agent_id)
    assert agent.credit_balance == 200.0
    assert agent.deposit_balance == 100.0

    history = await client.get(f"/v1/agents/{agent_id}/transactions", headers=staff_headers)
    rows = [row for row in history.json()["transactions"] if row["reference_type"] == "invoice"]
    assert len(rows) == 2
    assert {row["reference_id"] for row in rows} == {invoice_id}
    assert {row["transaction_type"] for row in rows} == {"credit", "deposit"}


@pytest.mark.asyncio
async def test_vendor_balance_deduction(client, staff_headers, parties, fetch):
    vendor_id = parties["vendor"]["id"]

    response = await client.post(
        "/v1/invoices",
        json=_invoice_payload(
            parties["customer"]["id"], vendor_id,
            vendor_cost=700.0, use_vendor_balance="deposit", vendor_balance_deducted=250.0
        ),
        headers=staff_headers
    )
    assert response.status_code == 201, response.text

    vendor = await fetch(Vendor, vendor_id)
    assert vendor.deposit_balance == 150.0
    assert vendor.credit_balance == 1000.0


@pytest.mark.asyncio
async def test_agent_credit_ignored_for_customer_invoice(client, staff_headers, parties, fetch):
    response = await client.post(
        "/v1/invoices",
        json=_invoice_payload(
            parties["customer"]["id"], parties["vendor"]["id"],
            use_agent_credit=True, agent_credit_used=100.0
        ),
        headers=staff_headers
    )
    assert response.status_code == 201
    # The stored invoice does not claim an agent credit use that never happened
    assert response.json()["use_agent_credit"] is False
    assert response.json()["agent_credit_used"] == 0.0

    agent = await fetch(Agent, parties["agent"]["id"])
    assert agent.credit_balance == 300.0
    customer = await fetch(Customer, parties["customer"]["id"])
    assert customer.deposit_balance == 500.0


@pytest.mark.asyncio
async def test_unknown_customer_writes_nothing(client, staff_headers, parties):
    response = await client.post(
        "/v1/invoices",
        json=_invoice_payload(9999, parties["vendor"]["id"], use_customer_deposit=True, deposit_used=50.0),
        headers=staff_headers
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_002"
    assert response.json()["details"]["field"] == "customer_id"

    listing = await client.get("/v1/invoices", headers=staff_headers)
    assert listing.json()["total"] == 0

    # No number was consumed
    response = await client.post(
        "/v1/invoices",
        json=_invoice_payload(parties["customer"]["id"], parties["vendor"]["id"]),
        headers=staff_headers
    )
    assert response.json()["invoice_number"] == "INV-1001"


@pytest.mark.asyncio
async def test_unknown_vendor_rejected(client, staff_headers, parties):
    response = await client.post(
        "/v1/invoices",
        json=_invoice_payload(parties["customer"]["id"], 4242),
        headers=staff_headers
    )
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "vendor_id"


@pytest.mark.asyncio
async def test_invalid_invoice_payloads(client, staff_headers, parties):
    empty_items = await client.post(
        "/v1/invoices",
        json=_invoice_payload(parties["customer"]["id"], parties["vendor"]["id"], items=[]),
        headers=staff_headers
    )
    assert empty_items.status_code == 422

    too_much_discount = await client.post(
        "/v1/invoices",
        json=_invoice_payload(
            parties["customer"]["id"], parties["vendor"]["id"], discount_amount=5000.0
        ),
        headers=staff_headers
    )
    assert too_much_discount.status_code == 422


@pytest.mark.asyncio
async def test_failed_mutation_rolls_back_everything(client, staff_headers, parties, fetch, mocker):
    """The agent-credit step fails after the deposit step ran: nothing survives."""
    agent_id = parties["agent"]["id"]
    original = BalanceEngine.apply_transaction

    async def failing_apply(db, **kwargs):
        if kwargs["pool"].value == "credit":
            raise RuntimeError("ledger unavailable")
        return await original(db, **kwargs)

    mocker.patch.object(BalanceEngine, "apply_transaction", side_effect=failing_apply)

    response = await client.post(
        "/v1/invoices",
        json=_invoice_payload(
            agent_id, parties["vendor"]["id"],
            customer_type="agent",
            use_customer_deposit=True, deposit_used=50.0,
            use_agent_credit=True, agent_credit_used=100.0
        ),
        headers=staff_headers
    )
    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "ERR_ISSUANCE_001"
    assert body["details"]["stage"] == "agent_credit"

    mocker.stopall()

    agent = await fetch(Agent, agent_id)
    assert agent.credit_balance == 300.0
    assert agent.deposit_balance == 150.0

    listing = await client.get("/v1/invoices", headers=staff_headers)
    assert listing.json()["total"] == 0

    history = await client.get(f"/v1/agents/{agent_id}/transactions", headers=staff_headers)
    assert all(row["reference_type"] != "invoice" for row in history.json()["transactions"])


@pytest.mark.asyncio
async def test_strict_floor_rejects_invoice(client, staff_headers, parties, fetch, strict_floor):
    customer_id = parties["customer"]["id"]

    response = await client.post(
        "/v1/invoices",
        json=_invoice_payload(
            customer_id, parties["vendor"]["id"],
            use_customer_deposit=True, deposit_used=800.0
        ),
        headers=staff_headers
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_BALANCE_001"

    customer = await fetch(Customer, customer_id)
    assert customer.deposit_balance == 500.0

    listing = await client.get("/v1/invoices", headers=staff_headers)
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_payment_updates(client, staff_headers, parties):
    created = await _create(
        client, staff_headers, "/v1/invoices",
        _invoice_payload(parties["customer"]["id"], parties["vendor"]["id"])
    )
    invoice_id = created["id"]

    partial = await client.patch(
        f"/v1/invoices/{invoice_id}/payment", json={"paid_amount": 400.0}, headers=staff_headers
    )
    assert partial.status_code == 200
    assert partial.json()["status"] == "partial"

    decrease = await client.patch(
        f"/v1/invoices/{invoice_id}/payment", json={"paid_amount": 100.0}, headers=staff_headers
    )
    assert decrease.status_code == 400

    overpay = await client.patch(
        f"/v1/invoices/{invoice_id}/payment", json={"paid_amount": 1500.0}, headers=staff_headers
    )
    assert overpay.status_code == 400

    premature = await client.patch(
        f"/v1/invoices/{invoice_id}/payment",
        json={"paid_amount": 500.0, "status": "paid"},
        headers=staff_headers
    )
    assert premature.status_code == 400

    full = await client.patch(
        f"/v1/invoices/{invoice_id}/payment", json={"paid_amount": 1000.0}, headers=staff_headers
    )
    assert full.status_code == 200
    assert full.json()["status"] == "paid"
    assert full.json()["paid_amount"] == 1000.0


@pytest.mark.asyncio
async def test_payment_on_missing_invoice(client, staff_headers):
    response = await client.patch(
        "/v1/invoices/555/payment", json={"paid_amount": 10.0}, headers=staff_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_invoice_keeps_ledger(client, staff_headers, admin_headers, parties, fetch):
    customer_id = parties["customer"]["id"]
    created = await _create(
        client, staff_headers, "/v1/invoices",
        _invoice_payload(
            customer_id, parties["vendor"]["id"], use_customer_deposit=True, deposit_used=100.0
        )
    )

    forbidden = await client.delete(f"/v1/invoices/{created['id']}", headers=staff_headers)
    assert forbidden.status_code == 403

    response = await client.delete(f"/v1/invoices/{created['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True

    assert await fetch(Invoice, created["id"]) is None
    customer = await fetch(Customer, customer_id)
    assert customer.deposit_balance == 400.0

    history = await client.get(f"/v1/customers/{customer_id}/transactions", headers=staff_headers)
    assert any(row["reference_id"] == created["id"] for row in history.json()["transactions"])

    missing = await client.get(f"/v1/invoices/{created['id']}", headers=staff_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_list_invoices_newest_first(client, staff_headers, parties):
    for _ in range(3):
        await _create(
            client, staff_headers, "/v1/invoices",
            _invoice_payload(parties["customer"]["id"], parties["vendor"]["id"])
        )

    response = await client.get("/v1/invoices", headers=staff_headers)
    numbers = [invoice["invoice_number"] for invoice in response.json()["invoices"]]
    assert numbers == ["INV-1003", "INV-1002", "INV-1001"]

    limited = await client.get("/v1/invoices?limit=1", headers=staff_headers)
    assert limited.json()["total"] == 1


@pytest.mark.asyncio
async def test_invoices_require_authentication(client):
    response = await client.get("/v1/invoices")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_concurrent_payments_never_lower_paid_amount(client, staff_headers, parties, session_factory, fetch):
    created = await _create(
        client, staff_headers, "/v1/invoices",
        _invoice_payload(parties["customer"]["id"], parties["vendor"]["id"])
    )
    invoice_id = created["id"]

    async def pay(amount):
        async with session_factory() as session:
            invoice = await IssuanceService.update_invoice_payment(session, invoice_id, amount)
            return invoice.paid_amount

    results = await asyncio.gather(pay(500.0), pay(300.0), return_exceptions=True)

    # Whichever order they ran in, the lower amount can never win
    failures = [r for r in results if isinstance(r, Exception)]
    assert all(isinstance(f, ValidationFailedError) for f in failures)
    stored = await fetch(Invoice, invoice_id)
    assert stored.paid_amount == 500.0
    assert stored.status.value == "partial"
