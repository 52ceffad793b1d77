"""
Document numbering tests.
"""

import pytest

from backend.app.domain.billing.numbering import (
    INVOICE_SERIES, TICKET_SERIES,
    format_number, parse_number, next_number, initialize_counters, current_value,
)
from backend.app.models.billing_enums import CustomerType, PaymentMethod
from backend.app.models.invoice import Invoice


def test_format_and_parse():
    assert format_number(INVOICE_SERIES, 1001) == "INV-1001"
    assert format_number(TICKET_SERIES, 7) == "TKT-0007"
    assert parse_number(INVOICE_SERIES, "INV-1042") == 1042
    assert parse_number(INVOICE_SERIES, "TKT-1042") is None
    assert parse_number(INVOICE_SERIES, "INV-abc") is None


@pytest.mark.asyncio
async def test_numbers_strictly_increase(db_session):
    first = await next_number(db_session, "invoice")
    second = await next_number(db_session, "invoice")
    receipt = await next_number(db_session, "receipt")
    await db_session.commit()

    assert first == "INV-1001"
    assert second == "INV-1002"
    assert receipt == "RCT-1001"
    assert await current_value(db_session, "invoice") == 1002


@pytest.mark.asyncio
async def test_rolled_back_number_is_not_burned(db_session):
    await next_number(db_session, "ticket")
    await db_session.rollback()

    assert await next_number(db_session, "ticket") == "TKT-1001"


@pytest.mark.asyncio
async def test_counter_seeded_from_stored_numbers(db_session):
    db_session.add(Invoice(
        invoice_number="INV-1500",
        customer_type=CustomerType.CUSTOMER,
        customer_id=1,
        vendor_id=1,
        items=[],
        subtotal=0.0,
        total=0.0,
        payment_method=PaymentMethod.CASH,
        issued_by=1,
    ))
    await db_session.commit()

    await initialize_counters(db_session)
    assert await current_value(db_session, "invoice") == 1500
    assert await current_value(db_session, "ticket") == 1000

    assert await next_number(db_session, "invoice") == "INV-1501"


@pytest.fixture
async def invoice_parties(client, staff_headers):
    customer = await client.post(
        "/v1/customers", json={"name": "Alice", "phone": "555-0101"}, headers=staff_headers
    )
    vendor = await client.post("/v1/vendors", json={"name": "Global Fares"}, headers=staff_headers)
    return customer.json()["id"], vendor.json()["id"]


async def _issue(client, headers, customer_id, vendor_id):
    response = await client.post(
        "/v1/invoices",
        json={
            "customer_id": customer_id,
            "vendor_id": vendor_id,
            "items": [{"description": "Fare", "quantity": 1, "unit_price": 100.0}],
        },
        headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_deleted_numbers_are_never_reused(client, staff_headers, admin_headers, invoice_parties):
    customer_id, vendor_id = invoice_parties
    await _issue(client, staff_headers, customer_id, vendor_id)
    second = await _issue(client, staff_headers, customer_id, vendor_id)

    await client.delete(f"/v1/invoices/{second['id']}", headers=admin_headers)

    third = await _issue(client, staff_headers, customer_id, vendor_id)
    assert third["invoice_number"] == "INV-1003"


@pytest.mark.asyncio
async def test_invoice_reset_restarts_numbering(client, staff_headers, admin_headers, invoice_parties):
    customer_id, vendor_id = invoice_parties
    await _issue(client, staff_headers, customer_id, vendor_id)
    await _issue(client, staff_headers, customer_id, vendor_id)

    response = await client.post(
        "/v1/admin/reset-data", json={"type": "invoices"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["deleted"] == {"invoices": 2}

    again = await _issue(client, staff_headers, customer_id, vendor_id)
    assert again["invoice_number"] == "INV-1001"


@pytest.mark.asyncio
async def test_cash_receipts_numbered(client, staff_headers, invoice_parties):
    customer_id, _ = invoice_parties

    first = await client.post(
        "/v1/cash-receipts",
        json={"party_id": customer_id, "amount": 250.0, "pnr": "ABC123", "service_name": "Umrah"},
        headers=staff_headers
    )
    assert first.status_code == 201, first.text
    assert first.json()["receipt_number"] == "RCT-1001"
    assert first.json()["status"] == "issued"

    second = await client.post(
        "/v1/cash-receipts", json={"party_id": customer_id, "amount": 50.0}, headers=staff_headers
    )
    assert second.json()["receipt_number"] == "RCT-1002"

    listing = await client.get("/v1/cash-receipts", headers=staff_headers)
    assert listing.json()["total"] == 2

    unknown = await client.post(
        "/v1/cash-receipts", json={"party_id": 999, "amount": 50.0}, headers=staff_headers
    )
    assert unknown.status_code == 400
