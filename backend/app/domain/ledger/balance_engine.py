"""
Balance Mutation Engine (Domain Logic).

Applies one named balance change to exactly one party pool and writes the
matching ledger row in the same database transaction.

Contract:
- The caller holds the party lock (see backend.app.core.locking) for the
  whole read-modify-write and owns the transaction: apply_transaction only
  flushes, it never commits or rolls back.
- post_transaction is the self-contained variant used for manual postings:
  it takes the lock, applies and commits.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    ValidationFailedError,
    ResourceNotFoundError,
    InsufficientBalanceError,
    BalanceConsistencyError,
)
from backend.app.core.locking import party_locks, party_key
from backend.app.domain.ledger.accounts import get_account
from backend.app.models.billing_enums import (
    PartyType, BalancePool, Direction, LedgerEntryType, LedgerPaymentMethod
)

logger = logging.getLogger(__name__)


def round_money(value) -> float:
    """Round a monetary value to cents."""
    return round(float(value or 0.0), 2)


def _resolve_entry_type(direction: Direction, entry_type) -> LedgerEntryType:
    if entry_type is None:
        return LedgerEntryType.CREDIT if direction == Direction.INCREASE else LedgerEntryType.DEBIT

    entry_type = LedgerEntryType(entry_type)
    # The ledger sign must agree with the direction of the balance change
    is_credit = entry_type == LedgerEntryType.CREDIT
    if is_credit != (direction == Direction.INCREASE):
        raise ValidationFailedError(
            f"Entry type '{entry_type.value}' does not match direction '{direction.value}'",
            details={"entry_type": entry_type.value, "direction": direction.value}
        )
    return entry_type


class BalanceEngine:

    @staticmethod
    async def apply_transaction(
        db: AsyncSession,
        party_type: PartyType,
        party_id: int,
        pool: BalancePool,
        direction: Direction,
        amount: float,
        description: str,
        reference_id: Optional[int] = None,
        reference_type: Optional[str] = None,
        payment_method: LedgerPaymentMethod = LedgerPaymentMethod.CASH,
        entry_type: Optional[LedgerEntryType] = None,
    ):
        """
        Apply a single pool mutation and record it on the party's ledger.

        Flow:
        1. Validate amount and pool
        2. Read the party row FOR UPDATE
        3. Compute the new balance and apply the floor policy
        4. Compare-and-set the balance column
        5. Insert the ledger row with balance_after = new balance

        Args:
            db: Database session (transaction owned by caller)
            party_type: customer | agent | vendor
            party_id: ID of the party to mutate
            pool: deposit | credit (customers only have deposit)
            direction: increase | decrease
            amount: Positive amount, rounded to cents
            description: Free-text ledger description
            reference_id: Invoice/ticket that triggered the change
            reference_type: "invoice" | "ticket" | "opening_balance"
            payment_method: How the money moved (two-pool ledgers only)
            entry_type: Overrides the default credit/debit tag

        Returns:
            The created ledger row

        Raises:
            ValidationFailedError: Non-positive amount or unknown pool
            ResourceNotFoundError: Party does not exist
            InsufficientBalanceError: Strict floor policy and balance would go negative
            BalanceConsistencyError: Balance changed between read and write
        """
        account = get_account(party_type)
        pool = BalancePool(pool)
        direction = Direction(direction)

        if amount is None or amount <= 0:
            raise ValidationFailedError(
                "Amount must be greater than zero",
                details={"amount": amount}
            )
        amount = round_money(amount)
        if amount <= 0:
            raise ValidationFailedError(
                "Amount must be at least 0.01",
                details={"amount": amount}
            )

        column = account.balance_column(pool)
        ledger_type = _resolve_entry_type(direction, entry_type)

        # 1. Lock and read the party row (populate_existing: never trust a cached balance)
        model = account.model
        result = await db.execute(
            select(model)
            .where(model.id == party_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        party = result.scalar_one_or_none()
        if party is None:
            raise ResourceNotFoundError(account.label, party_id)

        stored = getattr(party, column)
        current = round_money(stored)

        # 2. Compute new balance
        if direction == Direction.INCREASE:
            new_balance = round_money(current + amount)
        else:
            new_balance = round_money(current - amount)

        if (
            direction == Direction.DECREASE
            and new_balance < 0
            and settings.balance_floor_policy == "strict"
        ):
            raise InsufficientBalanceError(
                party=account.party_type.value,
                party_id=party_id,
                pool=pool.value,
                balance=current,
                amount=amount
            )

        # 3. Compare-and-set: only succeeds if nobody changed the pool since our read
        balance_attr = getattr(model, column)
        cas = await db.execute(
            update(model)
            .where(model.id == party_id, balance_attr == stored)
            .values({column: new_balance})
        )
        if cas.rowcount == 0:
            logger.warning(
                "Balance changed concurrently for %s %s (%s pool)",
                account.party_type.value, party_id, pool.value
            )
            raise BalanceConsistencyError(account.party_type.value, party_id, pool.value)

        # 4. Ledger row
        entry_values = {
            account.ledger_party_column: party_id,
            "type": ledger_type,
            "amount": amount,
            "description": description,
            "reference_id": reference_id,
            "reference_type": getattr(reference_type, "value", reference_type),
            "balance_after": new_balance,
        }
        if account.tracks_pool_on_ledger:
            entry_values["transaction_type"] = pool
            entry_values["payment_method"] = LedgerPaymentMethod(payment_method)

        entry = account.ledger_model(**entry_values)
        db.add(entry)
        await db.flush()
        # Load server-side defaults (created_at) while still in the transaction
        await db.refresh(entry)

        logger.info(
            "Applied %s %s of %.2f to %s %s %s pool: %.2f -> %.2f",
            ledger_type.value, direction.value, amount,
            account.party_type.value, party_id, pool.value, current, new_balance
        )

        return entry

    @staticmethod
    async def post_transaction(
        db: AsyncSession,
        party_type: PartyType,
        party_id: int,
        pool: BalancePool,
        direction: Direction,
        amount: float,
        description: str,
        reference_id: Optional[int] = None,
        reference_type: Optional[str] = None,
        payment_method: LedgerPaymentMethod = LedgerPaymentMethod.CASH,
        entry_type: Optional[LedgerEntryType] = None,
    ):
        """
        Manual "Add Transaction": lock the party, apply one mutation, commit.

        Any failure rolls the transaction back and is re-raised unchanged.
        """
        async with party_locks.hold([party_key(party_type, party_id)]):
            try:
                entry = await BalanceEngine.apply_transaction(
                    db,
                    party_type=party_type,
                    party_id=party_id,
                    pool=pool,
                    direction=direction,
                    amount=amount,
                    description=description,
                    reference_id=reference_id,
                    reference_type=reference_type,
                    payment_method=payment_method,
                    entry_type=entry_type,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                logger.warning(
                    "Rolled back manual transaction on %s %s",
                    getattr(party_type, "value", party_type), party_id
                )
                raise

        return entry
