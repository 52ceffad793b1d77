"""
Per-party mutual exclusion for balance mutations.

Every read-modify-write of a party balance (and every document counter
increment) runs while holding an asyncio lock keyed by the resource, e.g.
"customer:12" or "counter:invoice". Requests that touch several parties
acquire all their keys up front in sorted order, so two requests with
overlapping parties can never wait on each other in a cycle.

Within a process this is the serialization point. Across processes the
engine additionally reads party rows with SELECT ... FOR UPDATE, which
PostgreSQL honours for the lifetime of the surrounding transaction.

Usage:

    async with party_locks.hold(["customer:12", "vendor:3"]):
        ...mutate balances...
        await db.commit()
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List

logger = logging.getLogger(__name__)


def party_key(party_type, party_id: int) -> str:
    """Lock key for one party account."""
    value = getattr(party_type, "value", party_type)
    return f"{value}:{party_id}"


def counter_key(name: str) -> str:
    """Lock key for one document counter."""
    return f"counter:{name}"


def document_key(kind: str, document_id: int) -> str:
    """Lock key for one issued document (payment updates)."""
    return f"{kind}:{document_id}"


class PartyLockRegistry:
    """
    Registry of asyncio locks keyed by resource name.

    Locks are held in a WeakValueDictionary: a lock lives while some task
    holds or awaits it and is dropped afterwards.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, keys: Iterable[str]) -> AsyncIterator[List[str]]:
        """
        Acquire the locks for all keys in canonical order.

        Duplicate keys are collapsed. Locks are released in reverse order,
        also when the body raises.
        """
        ordered = sorted(set(keys))
        # Strong references for the duration of the hold
        locks = [self._lock_for(key) for key in ordered]
        acquired: List[asyncio.Lock] = []
        try:
            for key, lock in zip(ordered, locks):
                await lock.acquire()
                acquired.append(lock)
                logger.debug("Acquired lock %s", key)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()


# Process-wide registry shared by the engine and the issuance workflows
party_locks = PartyLockRegistry()
