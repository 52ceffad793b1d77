"""
Document numbering.

Invoice, ticket and receipt numbers come from rows in document_counters,
incremented inside the issuing transaction. Because the counter is only
committed together with the document that consumed it, a failed issuance
does not burn a number, and deleting a document never makes its number
available again.

A missing counter row is seeded from the highest number already stored
(or the configured base), which covers databases created before the
counters table existed.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.models.document_counter import DocumentCounter
from backend.app.models.invoice import Invoice
from backend.app.models.ticket import Ticket
from backend.app.models.cash_receipt import CashReceipt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NumberSeries:
    name: str
    prefix: str
    model: type
    column: str


INVOICE_SERIES = NumberSeries("invoice", "INV", Invoice, "invoice_number")
TICKET_SERIES = NumberSeries("ticket", "TKT", Ticket, "ticket_number")
RECEIPT_SERIES = NumberSeries("receipt", "RCT", CashReceipt, "receipt_number")

SERIES = {s.name: s for s in (INVOICE_SERIES, TICKET_SERIES, RECEIPT_SERIES)}


def format_number(series: NumberSeries, value: int) -> str:
    return f"{series.prefix}-{value:04d}"


def parse_number(series: NumberSeries, number: str):
    """Numeric part of e.g. 'INV-1042', or None if it doesn't belong to the series."""
    if not number or not number.startswith(f"{series.prefix}-"):
        return None
    try:
        return int(number[len(series.prefix) + 1:])
    except ValueError:
        return None


async def _highest_stored(db: AsyncSession, series: NumberSeries) -> int:
    result = await db.execute(select(getattr(series.model, series.column)))
    highest = settings.document_counter_base
    for number in result.scalars().all():
        value = parse_number(series, number)
        if value is not None and value > highest:
            highest = value
    return highest


async def _load_counter(db: AsyncSession, series: NumberSeries):
    result = await db.execute(
        select(DocumentCounter)
        .where(DocumentCounter.name == series.name)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def next_number(db: AsyncSession, name: str) -> str:
    """
    Increment a counter and return the formatted number.

    Caller holds the counter lock and owns the transaction (flush only).
    """
    series = SERIES[name]
    counter = await _load_counter(db, series)
    if counter is None:
        counter = DocumentCounter(name=series.name, value=await _highest_stored(db, series))
        db.add(counter)

    counter.value = counter.value + 1
    await db.flush()

    number = format_number(series, counter.value)
    logger.info("Allocated %s number %s", series.name, number)
    return number


async def initialize_counters(db: AsyncSession) -> None:
    """Seed any missing counter rows from stored documents (startup)."""
    for series in SERIES.values():
        if await _load_counter(db, series) is None:
            value = await _highest_stored(db, series)
            db.add(DocumentCounter(name=series.name, value=value))
            logger.info("Seeded %s counter at %s", series.name, value)
    await db.commit()


async def reset_counter(db: AsyncSession, name: str) -> None:
    """Put a counter back to the base value (admin resets only; no commit)."""
    series = SERIES[name]
    counter = await _load_counter(db, series)
    if counter is None:
        db.add(DocumentCounter(name=series.name, value=settings.document_counter_base))
    else:
        counter.value = settings.document_counter_base
    await db.flush()


async def current_value(db: AsyncSession, name: str):
    counter = await _load_counter(db, SERIES[name])
    return counter.value if counter else None
