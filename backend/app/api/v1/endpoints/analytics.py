"""
Metrics API Endpoints.

Read-only dashboard data for signed-in staff.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.guards import require_staff
from backend.app.services.analytics import MetricsService
from backend.app.schemas.metrics import DashboardMetrics

router = APIRouter(prefix="/metrics", tags=["Metrics"])


@router.get("", response_model=DashboardMetrics)
async def get_dashboard_metrics(
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Dashboard rollup: party/document counts, revenue, pending payments,
    pool totals and the most recent invoices and tickets.
    """
    return await MetricsService.dashboard(db)
