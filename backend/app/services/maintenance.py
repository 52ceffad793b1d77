"""
Admin maintenance operations.

Bulk-destructive resets for demo/test environments. They bypass the
balance engine and wipe ledgers and balances together, leaving both
empty/zero.
"""

import logging
from typing import Dict, List

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.locking import party_locks, party_key, counter_key
from backend.app.domain.billing.numbering import reset_counter
from backend.app.domain.ledger.accounts import PARTY_ACCOUNTS
from backend.app.models.party import Customer, Agent, Vendor
from backend.app.models.ledger_entry import DepositTransaction, AgentTransaction, VendorTransaction
from backend.app.models.invoice import Invoice
from backend.app.models.ticket import Ticket
from backend.app.models.cash_receipt import CashReceipt
from backend.app.models.document_counter import DocumentCounter
from backend.app.models.user import User
from backend.app.models.enums import UserRole

logger = logging.getLogger(__name__)

LEDGER_MODELS = (DepositTransaction, AgentTransaction, VendorTransaction)


async def _delete_all(db: AsyncSession, model) -> int:
    result = await db.execute(delete(model))
    return result.rowcount or 0


async def _wipe_ledgers(db: AsyncSession) -> int:
    deleted = 0
    for model in LEDGER_MODELS:
        deleted += await _delete_all(db, model)
    return deleted


async def _all_party_keys(db: AsyncSession) -> List[str]:
    keys = []
    for account in PARTY_ACCOUNTS.values():
        result = await db.execute(select(account.model.id))
        keys.extend(party_key(account.party_type, party_id) for party_id in result.scalars().all())
    return keys


async def _lock_party_rows(db: AsyncSession) -> None:
    # Waits for in-flight mutations in other processes to commit first
    for account in PARTY_ACCOUNTS.values():
        await db.execute(select(account.model.id).with_for_update())


async def _zero_balances(db: AsyncSession) -> None:
    for account in PARTY_ACCOUNTS.values():
        await db.execute(
            update(account.model).values(**{column: 0.0 for column in account.pools.values()})
        )


async def reset_finance_data(db: AsyncSession) -> Dict[str, int]:
    """
    Delete every ledger row and zero every party balance.

    Runs under every party lock with the party rows locked, zeroing before
    deleting, so no mutation can commit a ledger row in between.
    """
    keys = await _all_party_keys(db)
    async with party_locks.hold(keys):
        try:
            await _lock_party_rows(db)
            await _zero_balances(db)
            transactions = await _wipe_ledgers(db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.warning("Finance data reset: %d ledger row(s) deleted, balances zeroed", transactions)
    return {"transactions": transactions}


async def reset_invoices(db: AsyncSession) -> Dict[str, int]:
    """Delete all invoices and put the invoice counter back to its base."""
    async with party_locks.hold([counter_key("invoice")]):
        try:
            invoices = await _delete_all(db, Invoice)
            await reset_counter(db, "invoice")
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.warning("Invoices reset: %d deleted", invoices)
    return {"invoices": invoices}


async def reset_tickets(db: AsyncSession) -> Dict[str, int]:
    """Delete all tickets and put the ticket counter back to its base."""
    async with party_locks.hold([counter_key("ticket")]):
        try:
            tickets = await _delete_all(db, Ticket)
            await reset_counter(db, "ticket")
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.warning("Tickets reset: %d deleted", tickets)
    return {"tickets": tickets}


async def cleanup_all_data(db: AsyncSession) -> Dict[str, int]:
    """
    Full wipe: documents, ledgers, parties and counters.

    Ledgers go before parties (foreign keys); counters are removed and get
    re-seeded at the base on next use. Holds the same locks as the finance
    reset plus the counter locks.
    """
    counts = {}
    keys = await _all_party_keys(db)
    keys += [counter_key(name) for name in ("invoice", "ticket", "receipt")]
    async with party_locks.hold(keys):
        try:
            await _lock_party_rows(db)
            counts["tickets"] = await _delete_all(db, Ticket)
            counts["invoices"] = await _delete_all(db, Invoice)
            counts["receipts"] = await _delete_all(db, CashReceipt)
            counts["transactions"] = await _wipe_ledgers(db)
            counts["customers"] = await _delete_all(db, Customer)
            counts["agents"] = await _delete_all(db, Agent)
            counts["vendors"] = await _delete_all(db, Vendor)
            await _delete_all(db, DocumentCounter)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.warning("All billing data cleaned up: %s", counts)
    return counts


async def reset_users(db: AsyncSession) -> Dict[str, int]:
    """Delete every non-admin user account."""
    try:
        result = await db.execute(delete(User).where(User.role != UserRole.ADMIN))
        users = result.rowcount or 0
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.warning("User reset: %d non-admin user(s) deleted", users)
    return {"users": users}
