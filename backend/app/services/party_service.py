"""
Party management service.

Creation (with opening balances recorded on the ledger), lookup and
cascading deletion of customers, agents and vendors.
"""

import logging
from typing import List

from pydantic import BaseModel
from sqlalchemy import select, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import DuplicateResourceError, ResourceNotFoundError
from backend.app.core.locking import party_locks, party_key
from backend.app.domain.ledger.accounts import get_account
from backend.app.domain.ledger.balance_engine import BalanceEngine
from backend.app.models.billing_enums import PartyType, Direction, ReferenceType

logger = logging.getLogger(__name__)


async def _check_duplicates(db: AsyncSession, party_type: PartyType, name: str, phone: str) -> None:
    """Reject a second party of the same type with the same name (any case) or phone."""
    account = get_account(party_type)
    model = account.model

    conditions = [func.lower(model.name) == name.strip().lower()]
    if phone:
        conditions.append(model.phone == phone.strip())

    result = await db.execute(select(model).where(or_(*conditions)).limit(1))
    existing = result.scalar_one_or_none()
    if existing is None:
        return

    field = "name" if existing.name.strip().lower() == name.strip().lower() else "phone"
    raise DuplicateResourceError(account.label, field)


async def create_party(db: AsyncSession, party_type: PartyType, data: BaseModel):
    """
    Create a party with zero balances, then post each opening balance as an
    "Opening balance" ledger credit, so the ledger replays to the balance.
    """
    account = get_account(party_type)
    values = data.model_dump()
    opening = {pool: values.pop(column, 0.0) or 0.0 for pool, column in account.pools.items()}

    await _check_duplicates(db, account.party_type, values["name"], values.get("phone", ""))

    values["name"] = values["name"].strip()
    party = account.model(**values)
    try:
        db.add(party)
        await db.flush()

        for pool, amount in opening.items():
            if amount > 0:
                await BalanceEngine.apply_transaction(
                    db,
                    party_type=account.party_type,
                    party_id=party.id,
                    pool=pool,
                    direction=Direction.INCREASE,
                    amount=amount,
                    description="Opening balance",
                    reference_type=ReferenceType.OPENING_BALANCE,
                )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(party)
    logger.info("Created %s %s (%s)", account.party_type.value, party.id, party.name)
    return party


async def get_party(db: AsyncSession, party_type: PartyType, party_id: int):
    account = get_account(party_type)
    party = await db.get(account.model, party_id)
    if party is None:
        raise ResourceNotFoundError(account.label, party_id)
    return party


async def list_parties(db: AsyncSession, party_type: PartyType) -> List:
    model = get_account(party_type).model
    result = await db.execute(select(model).order_by(model.created_at.desc(), model.id.desc()))
    return list(result.scalars().all())


async def delete_party(db: AsyncSession, party_type: PartyType, party_id: int) -> int:
    """
    Delete a party and every ledger row it owns in one transaction.

    Returns:
        Number of ledger rows deleted
    """
    account = get_account(party_type)

    async with party_locks.hold([party_key(account.party_type, party_id)]):
        party = await db.get(account.model, party_id)
        if party is None:
            raise ResourceNotFoundError(account.label, party_id)

        try:
            result = await db.execute(
                delete(account.ledger_model).where(account.ledger_party_attr() == party_id)
            )
            deleted_rows = result.rowcount or 0
            await db.delete(party)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.info("Deleted %s %s with %d ledger row(s)", account.party_type.value, party_id, deleted_rows)
    return deleted_rows
