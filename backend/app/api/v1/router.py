"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    auth, admin, admin_ops,
    parties, transactions,
    invoices, tickets, receipts,
    analytics
)

router = APIRouter()

# Include authentication endpoints
router.include_router(auth.router)

# Include admin endpoints
router.include_router(admin.router)
router.include_router(admin_ops.router)

# Parties and their ledgers
router.include_router(parties.router)
router.include_router(transactions.router)

# Documents
router.include_router(invoices.router)
router.include_router(tickets.router)
router.include_router(receipts.router)

# Dashboard
router.include_router(analytics.router)
