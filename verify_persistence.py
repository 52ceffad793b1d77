import time
import subprocess
import httpx
import sys
import os
import signal
import uuid

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"

# Seeded by backend/seed_users.py
ADMIN_CREDENTIALS = {"username": "admin", "password": "admin123"}


def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for i in range(retries):
        try:
            resp = httpx.get(url)
            if resp.status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.ConnectError:
            pass
        except Exception as e:
            print(f"Connect error: {e}")
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False


def start_server():
    return subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "backend.app.main:app", "--host", "127.0.0.1", "--port", "8000"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env={**os.environ, "DB_ECHO": "True"}  # Enable echo to see SQL
    )


def stop_server(proc):
    proc.send_signal(signal.SIGTERM)
    proc.wait()


def login():
    resp = httpx.post(f"{BASE_URL}{API_PREFIX}/auth/login", json=ADMIN_CREDENTIALS)
    if resp.status_code != 200:
        print(f"❌ Login Failed: {resp.status_code} {resp.text}")
        raise Exception("Login failed (did you run backend/seed_users.py?)")
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def issue_invoice(headers, customer_id, vendor_id):
    resp = httpx.post(
        f"{BASE_URL}{API_PREFIX}/invoices",
        json={
            "customer_id": customer_id,
            "vendor_id": vendor_id,
            "items": [{"description": "Persistence check fare", "quantity": 1, "unit_price": 150.0}],
            "use_customer_deposit": True,
            "deposit_used": 100.0,
        },
        headers=headers
    )
    if resp.status_code != 201:
        print(f"❌ Invoice Failed: {resp.status_code} {resp.text}")
        raise Exception("Invoice issuance failed")
    return resp.json()


def run_verification():
    # 1. Start Server (First Run)
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = start_server()
    suffix = uuid.uuid4().hex[:8]

    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise Exception("Server start failed")

        headers = login()

        # 2. Create parties and issue an invoice
        print("\n--- [Step 2] Creating Parties and Invoice (Persistence Test) ---")
        resp = httpx.post(
            f"{BASE_URL}{API_PREFIX}/customers",
            json={"name": f"Persist {suffix}", "phone": f"p-{suffix}", "deposit_balance": 500.0},
            headers=headers
        )
        customer_id = resp.json()["id"]
        resp = httpx.post(
            f"{BASE_URL}{API_PREFIX}/vendors",
            json={"name": f"Persist Vendor {suffix}"},
            headers=headers
        )
        vendor_id = resp.json()["id"]

        first = issue_invoice(headers, customer_id, vendor_id)
        print(f"✅ Issued {first['invoice_number']}")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        stop_server(proc)

    time.sleep(2)  # Wait for port release

    # 3. Restart Server
    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = start_server()

    try:
        if not wait_for_server():
            raise Exception("Server restart failed")

        headers = login()

        # 4. Balance survived the restart
        print("\n--- [Step 5] Verifying Deposit Balance ---")
        resp = httpx.get(f"{BASE_URL}{API_PREFIX}/customers/{customer_id}", headers=headers)
        balance = resp.json()["deposit_balance"]
        if balance == 400.0:
            print("✅ Deposit balance persisted (400.00)")
        else:
            print(f"❌ Unexpected deposit balance: {balance}")
            raise Exception("Balance lost after restart")

        # 5. Numbering continues after the restart
        print("\n--- [Step 6] Verifying Invoice Numbering ---")
        second = issue_invoice(headers, customer_id, vendor_id)
        first_value = int(first["invoice_number"].split("-")[1])
        second_value = int(second["invoice_number"].split("-")[1])
        if second_value > first_value:
            print(f"✅ Numbering continued: {first['invoice_number']} -> {second['invoice_number']}")
        else:
            print(f"❌ Number reused: {second['invoice_number']}")
            raise Exception("Invoice number reused after restart")

    finally:
        print("\n--- [Step 7] Stopping Server ---")
        stop_server(proc2)


if __name__ == "__main__":
    run_verification()
