"""
Ledger queries.

Read-only retrieval of transaction history, always newest first.
"""

from typing import List

from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.domain.ledger.accounts import get_account
from backend.app.models.billing_enums import PartyType


class LedgerQueries:

    @staticmethod
    async def party_transactions(db: AsyncSession, party_type: PartyType, party_id: int) -> List:
        """
        Ledger rows of one party, newest first.

        Raises:
            ResourceNotFoundError: Party does not exist (e.g. deleted)
        """
        account = get_account(party_type)

        party = await db.get(account.model, party_id)
        if party is None:
            raise ResourceNotFoundError(account.label, party_id)

        ledger = account.ledger_model
        result = await db.execute(
            select(ledger)
            .where(account.ledger_party_attr() == party_id)
            .order_by(desc(ledger.created_at), desc(ledger.id))
        )
        return list(result.scalars().all())

    @staticmethod
    async def all_transactions(db: AsyncSession, party_type: PartyType) -> List:
        """Every ledger row of a party type, newest first (reporting/export)."""
        ledger = get_account(party_type).ledger_model
        result = await db.execute(
            select(ledger).order_by(desc(ledger.created_at), desc(ledger.id))
        )
        return list(result.scalars().all())

    @staticmethod
    async def ledger_sum(db: AsyncSession, party_type: PartyType, party_id: int, pool=None) -> float:
        """
        Replay a party's ledger: sum of signed amounts.

        For a party created through the engine this equals the stored balance
        of the pool.
        """
        account = get_account(party_type)
        ledger = account.ledger_model

        query = select(ledger).where(account.ledger_party_attr() == party_id)
        if pool is not None and account.tracks_pool_on_ledger:
            query = query.where(ledger.transaction_type == pool)

        result = await db.execute(query)
        return round(sum(row.signed_amount for row in result.scalars().all()), 2)

    @staticmethod
    async def count_party_transactions(db: AsyncSession, party_type: PartyType, party_id: int) -> int:
        account = get_account(party_type)
        result = await db.execute(
            select(func.count(account.ledger_model.id)).where(account.ledger_party_attr() == party_id)
        )
        return result.scalar() or 0
