"""
Metrics Service.

Handles data aggregation for the dashboard.
Focused on READ-ONLY operations.
"""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from backend.app.core.config import settings
from backend.app.models.party import Customer, Agent, Vendor
from backend.app.models.invoice import Invoice
from backend.app.models.ticket import Ticket
from backend.app.models.billing_enums import InvoiceStatus
from backend.app.schemas.metrics import DashboardMetrics, RecentInvoice, RecentTicket


async def _scalar(db: AsyncSession, query) -> float:
    return (await db.execute(query)).scalar() or 0


class MetricsService:

    @staticmethod
    async def dashboard(db: AsyncSession) -> DashboardMetrics:
        """Build the dashboard rollup."""

        # 1. Counts
        total_customers = await _scalar(db, select(func.count(Customer.id)))
        total_agents = await _scalar(db, select(func.count(Agent.id)))
        total_vendors = await _scalar(db, select(func.count(Vendor.id)))
        total_invoices = await _scalar(db, select(func.count(Invoice.id)))
        total_tickets = await _scalar(db, select(func.count(Ticket.id)))

        # 2. Revenue (every invoice except cancelled ones)
        total_revenue = await _scalar(
            db,
            select(func.sum(Invoice.total)).where(Invoice.status != InvoiceStatus.CANCELLED)
        )

        # 3. Pending = outstanding amount on issued/partial invoices
        pending_payments = await _scalar(
            db,
            select(func.sum(Invoice.total - Invoice.paid_amount)).where(
                Invoice.status.in_([InvoiceStatus.ISSUED, InvoiceStatus.PARTIAL])
            )
        )

        # 4. Pool totals
        customer_deposits = await _scalar(db, select(func.sum(Customer.deposit_balance)))
        agent_credit = await _scalar(db, select(func.sum(Agent.credit_balance)))
        agent_deposits = await _scalar(db, select(func.sum(Agent.deposit_balance)))
        vendor_credit = await _scalar(db, select(func.sum(Vendor.credit_balance)))
        vendor_deposits = await _scalar(db, select(func.sum(Vendor.deposit_balance)))

        # 5. Recent activity
        limit = settings.recent_items_limit
        recent_invoices = (await db.execute(
            select(Invoice).order_by(Invoice.created_at.desc(), Invoice.id.desc()).limit(limit)
        )).scalars().all()
        recent_tickets = (await db.execute(
            select(Ticket).order_by(Ticket.created_at.desc(), Ticket.id.desc()).limit(limit)
        )).scalars().all()

        return DashboardMetrics(
            total_customers=total_customers,
            total_agents=total_agents,
            total_vendors=total_vendors,
            total_invoices=total_invoices,
            total_tickets=total_tickets,
            total_revenue=round(total_revenue, 2),
            pending_payments=round(pending_payments, 2),
            customer_deposits=round(customer_deposits, 2),
            agent_credit=round(agent_credit, 2),
            agent_deposits=round(agent_deposits, 2),
            vendor_credit=round(vendor_credit, 2),
            vendor_deposits=round(vendor_deposits, 2),
            recent_invoices=[RecentInvoice.model_validate(i) for i in recent_invoices],
            recent_tickets=[RecentTicket.model_validate(t) for t in recent_tickets],
            generated_at=datetime.now(timezone.utc),
        )
