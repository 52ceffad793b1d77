"""
Dashboard metrics tests.
"""

import pytest


@pytest.mark.asyncio
async def test_empty_dashboard(client, staff_headers):
    response = await client.get("/v1/metrics", headers=staff_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total_invoices"] == 0
    assert data["total_revenue"] == 0.0
    assert data["recent_invoices"] == []


@pytest.mark.asyncio
async def test_dashboard_rollups(client, staff_headers):
    customer = await client.post(
        "/v1/customers", json={"name": "Alice", "phone": "555-0101", "deposit_balance": 500.0},
        headers=staff_headers
    )
    agent = await client.post(
        "/v1/agents",
        json={"name": "Skyways", "phone": "555-0200", "credit_balance": 300.0, "deposit_balance": 50.0},
        headers=staff_headers
    )
    vendor = await client.post(
        "/v1/vendors", json={"name": "Global Fares", "credit_balance": 80.0}, headers=staff_headers
    )
    customer_id = customer.json()["id"]
    vendor_id = vendor.json()["id"]

    invoice_ids = []
    for price in (1000.0, 250.0):
        response = await client.post(
            "/v1/invoices",
            json={
                "customer_id": customer_id,
                "vendor_id": vendor_id,
                "items": [{"description": "Fare", "quantity": 1, "unit_price": price}],
            },
            headers=staff_headers
        )
        invoice_ids.append(response.json()["id"])

    await client.patch(
        f"/v1/invoices/{invoice_ids[0]}/payment", json={"paid_amount": 400.0}, headers=staff_headers
    )
    await client.patch(
        f"/v1/invoices/{invoice_ids[1]}/payment", json={"paid_amount": 250.0}, headers=staff_headers
    )

    await client.post(
        "/v1/tickets",
        json={
            "customer_type": "agent",
            "customer_id": agent.json()["id"],
            "route": "KHI-DXB",
            "airlines": "flydubai",
            "travel_date": "2026-12-01",
            "passenger_name": "Bob",
            "face_value": 300.0,
        },
        headers=staff_headers
    )

    response = await client.get("/v1/metrics", headers=staff_headers)
    data = response.json()

    assert data["total_customers"] == 1
    assert data["total_agents"] == 1
    assert data["total_vendors"] == 1
    assert data["total_invoices"] == 2
    assert data["total_tickets"] == 1
    assert data["total_revenue"] == 1250.0
    assert data["pending_payments"] == 600.0
    assert data["customer_deposits"] == 500.0
    assert data["agent_credit"] == 300.0
    assert data["agent_deposits"] == 50.0
    assert data["vendor_credit"] == 80.0
    assert data["vendor_deposits"] == 0.0
    assert [i["invoice_number"] for i in data["recent_invoices"]] == ["INV-1002", "INV-1001"]
    assert data["recent_tickets"][0]["passenger_name"] == "Bob"


@pytest.mark.asyncio
async def test_health_reports_token_store(client):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["token_store"] == "up"
    assert data["balance_floor_policy"] in ("permissive", "strict")
