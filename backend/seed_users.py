"""
Seed the desk accounts for a fresh database.

    python backend/seed_users.py

Creates the superadmin and one counter staff account, each with a bill
creator PIN. Accounts that already exist (by username) are left alone, so
the script can be re-run after a "users" reset.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.core.security import get_password_hash

# username, email, display name, password, PIN, role
SEED_ACCOUNTS = [
    ("admin", "admin@travelbilling.com", "Administrator", "admin123", "1234", UserRole.ADMIN),
    ("desk", "desk@travelbilling.com", "Front Desk", "desk123", "4321", UserRole.STAFF),
]


async def seed_users():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Seeding desk accounts...")
        created = 0

        for username, email, full_name, password, pin, role in SEED_ACCOUNTS:
            existing = await db.scalar(select(User.id).where(User.username == username))
            if existing is not None:
                print(f"ℹ️  {username} already exists, skipping")
                continue

            db.add(User(
                email=email,
                username=username,
                full_name=full_name,
                hashed_password=get_password_hash(password),
                hashed_pin=get_password_hash(pin),
                role=role,
                is_active=True,
                is_superuser=role == UserRole.ADMIN,
            ))
            created += 1
            print(f"✅ {role.value} {username} (password: {password}, PIN: {pin})")

        await db.commit()

    print(f"\n🎉 Seeding done, {created} account(s) created")
    print("Further staff accounts: POST /v1/admin/users")


if __name__ == "__main__":
    asyncio.run(seed_users())
