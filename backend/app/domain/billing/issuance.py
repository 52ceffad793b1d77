"""
Issuance Service (Domain Logic).

Turns invoice/ticket requests into persisted documents plus the balance
mutations they imply. Each issuance is all-or-nothing: the document, its
number and every ledger mutation commit together or not at all.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    AppException,
    ValidationFailedError,
    ResourceNotFoundError,
    IssuanceFailedError,
)
from backend.app.core.locking import party_locks, party_key, counter_key, document_key
from backend.app.domain.billing.numbering import next_number
from backend.app.domain.ledger.accounts import get_account
from backend.app.domain.ledger.balance_engine import BalanceEngine, round_money
from backend.app.models.billing_enums import (
    PartyType, BalancePool, BalanceSource, CustomerType, Direction,
    LedgerEntryType, InvoiceStatus, TicketStatus, ReferenceType,
)
from backend.app.models.invoice import Invoice
from backend.app.models.ticket import Ticket
from backend.app.models.cash_receipt import CashReceipt
from backend.app.schemas.invoice import InvoiceCreate
from backend.app.schemas.ticket import TicketCreate
from backend.app.schemas.receipt import CashReceiptCreate

logger = logging.getLogger(__name__)


@dataclass
class PlannedMutation:
    """One balance change an issuance will apply, in order."""
    stage: str
    party_type: PartyType
    party_id: int
    pool: BalancePool
    direction: Direction
    amount: float
    description: str
    entry_type: Optional[LedgerEntryType] = None


async def _require_party(db: AsyncSession, party_type: PartyType, party_id: int, field: str):
    account = get_account(party_type)
    party = await db.get(account.model, party_id)
    if party is None:
        raise ValidationFailedError(
            f"{account.label} {party_id} does not exist",
            details={"field": field, "party_type": party_type.value, "party_id": party_id}
        )
    return party


def plan_invoice_mutations(request: InvoiceCreate, invoice_number: str) -> List[PlannedMutation]:
    """
    Mutations implied by an invoice, in application order:
    deposit use, vendor balance use, agent credit use.
    """
    plan = []
    customer_party = request.customer_type.party_type

    if request.use_customer_deposit and request.deposit_used > 0:
        plan.append(PlannedMutation(
            stage="deposit",
            party_type=customer_party,
            party_id=request.customer_id,
            pool=BalancePool.DEPOSIT,
            direction=Direction.DECREASE,
            amount=request.deposit_used,
            description=f"Invoice {invoice_number} - Deposit used for payment",
        ))

    if request.use_vendor_balance != BalanceSource.NONE and request.vendor_balance_deducted > 0:
        label = "Credit" if request.use_vendor_balance == BalanceSource.CREDIT else "Deposit"
        plan.append(PlannedMutation(
            stage="vendor_balance",
            party_type=PartyType.VENDOR,
            party_id=request.vendor_id,
            pool=request.use_vendor_balance.pool,
            direction=Direction.DECREASE,
            amount=request.vendor_balance_deducted,
            description=f"Invoice {invoice_number} - {label} used for vendor payment",
        ))

    # Agent credit only applies to agent invoices
    if (
        request.use_agent_credit
        and request.agent_credit_used > 0
        and request.customer_type == CustomerType.AGENT
    ):
        plan.append(PlannedMutation(
            stage="agent_credit",
            party_type=PartyType.AGENT,
            party_id=request.customer_id,
            pool=BalancePool.CREDIT,
            direction=Direction.DECREASE,
            amount=request.agent_credit_used,
            description=f"Invoice {invoice_number} - Credit used for payment",
        ))

    return plan


def plan_ticket_mutations(request: TicketCreate, ticket_number: str) -> List[PlannedMutation]:
    """
    Mutations implied by a ticket, in application order:
    vendor (at most one), customer deposit, agent pool.
    """
    plan = []
    prefix = f"Ticket {ticket_number} - {request.passenger_name}"

    # Vendor: a single block, so a vendor pool is touched at most once per ticket
    if request.vendor_id is not None:
        if request.use_vendor_balance == BalanceSource.NONE:
            if request.vendor_cost > 0:
                plan.append(PlannedMutation(
                    stage="vendor_cost",
                    party_type=PartyType.VENDOR,
                    party_id=request.vendor_id,
                    pool=BalancePool.CREDIT,
                    direction=Direction.INCREASE,
                    amount=request.vendor_cost,
                    description=f"{prefix} - Vendor cost (added to credit owed)",
                ))
        elif request.vendor_balance_deducted > 0:
            if request.use_vendor_balance == BalanceSource.CREDIT:
                description = f"{prefix} - Deducted from vendor credit"
                entry_type = LedgerEntryType.DEBIT
            else:
                description = f"{prefix} - Deducted from deposit with vendor"
                entry_type = LedgerEntryType.DEPOSIT_DEBIT
            plan.append(PlannedMutation(
                stage="vendor_balance",
                party_type=PartyType.VENDOR,
                party_id=request.vendor_id,
                pool=request.use_vendor_balance.pool,
                direction=Direction.DECREASE,
                amount=request.vendor_balance_deducted,
                description=description,
                entry_type=entry_type,
            ))

    if request.customer_type == CustomerType.CUSTOMER:
        if request.deduct_from_deposit and request.deposit_deducted > 0:
            plan.append(PlannedMutation(
                stage="deposit",
                party_type=PartyType.CUSTOMER,
                party_id=request.customer_id,
                pool=BalancePool.DEPOSIT,
                direction=Direction.DECREASE,
                amount=request.deposit_deducted,
                description=f"{prefix} - Deposit used for ticket",
            ))
    elif request.use_agent_balance != BalanceSource.NONE and request.agent_balance_deducted > 0:
        label = "Credit" if request.use_agent_balance == BalanceSource.CREDIT else "Deposit"
        plan.append(PlannedMutation(
            stage="agent_balance",
            party_type=PartyType.AGENT,
            party_id=request.customer_id,
            pool=request.use_agent_balance.pool,
            direction=Direction.DECREASE,
            amount=request.agent_balance_deducted,
            description=f"{prefix} - {label} used for ticket",
        ))

    return plan


async def _apply_plan(
    db: AsyncSession,
    plan: List[PlannedMutation],
    reference_id: int,
    reference_type: ReferenceType,
    progress: dict
) -> None:
    for mutation in plan:
        progress["stage"] = mutation.stage
        await BalanceEngine.apply_transaction(
            db,
            party_type=mutation.party_type,
            party_id=mutation.party_id,
            pool=mutation.pool,
            direction=mutation.direction,
            amount=mutation.amount,
            description=mutation.description,
            reference_id=reference_id,
            reference_type=reference_type,
            entry_type=mutation.entry_type,
        )


def _applied(plan: List[PlannedMutation], stage: str) -> Optional[PlannedMutation]:
    return next((m for m in plan if m.stage == stage), None)


def _applied_amount(mutation: Optional[PlannedMutation]) -> float:
    # Documents record only the balance uses that were actually applied
    return round_money(mutation.amount) if mutation else 0.0


async def _rollback_and_raise(db: AsyncSession, document: str, stage: str, exc: Exception):
    await db.rollback()
    logger.warning("%s issuance rolled back during %s: %s", document, stage, exc)
    # Typed errors (validation, not found, balance) reach the caller unchanged
    if isinstance(exc, AppException):
        raise exc
    raise IssuanceFailedError(document, stage, str(exc)) from exc


async def _apply_payment(
    db: AsyncSession,
    invoice_id: int,
    paid_amount: float,
    status: Optional[InvoiceStatus]
) -> Invoice:
    """Validate a payment change against the locked row and stage it (no commit)."""
    result = await db.execute(
        select(Invoice)
        .where(Invoice.id == invoice_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    invoice = result.scalar_one_or_none()
    if invoice is None:
        raise ResourceNotFoundError("Invoice", invoice_id)

    paid_amount = round_money(paid_amount)
    total = round_money(invoice.total)

    if invoice.status == InvoiceStatus.CANCELLED:
        raise ValidationFailedError("Cannot record a payment on a cancelled invoice")
    if paid_amount < round_money(invoice.paid_amount):
        raise ValidationFailedError(
            "Paid amount cannot decrease",
            details={"current": invoice.paid_amount, "requested": paid_amount}
        )
    if paid_amount > total:
        raise ValidationFailedError(
            "Paid amount cannot exceed the invoice total",
            details={"total": total, "requested": paid_amount}
        )

    if paid_amount == total and total > 0:
        if status is not None and status != InvoiceStatus.PAID:
            raise ValidationFailedError("A fully paid invoice must have status 'paid'")
        new_status = InvoiceStatus.PAID
    elif status == InvoiceStatus.PAID:
        raise ValidationFailedError(
            "Status 'paid' requires the full total to be paid",
            details={"total": total, "paid_amount": paid_amount}
        )
    elif status is not None:
        new_status = status
    elif paid_amount > 0:
        new_status = InvoiceStatus.PARTIAL
    else:
        new_status = invoice.status

    invoice.paid_amount = paid_amount
    invoice.status = new_status
    return invoice


class IssuanceService:

    @staticmethod
    async def create_invoice(
        db: AsyncSession,
        request: InvoiceCreate,
        issued_by: int,
        created_by_name: str = ""
    ) -> Invoice:
        """
        Issue an invoice.

        Flow:
        1. Check the customer/agent and vendor exist (before any write)
        2. Lock every party touched plus the invoice counter
        3. Allocate INV number
        4. Insert invoice (status issued, paid_amount 0)
        5. Apply deposit / vendor balance / agent credit mutations
        6. Commit once

        Raises:
            ValidationFailedError: Unknown party
            InsufficientBalanceError: Strict floor policy rejected a deduction
            IssuanceFailedError: Any other failure (everything rolled back)
        """
        customer_party = request.customer_type.party_type
        await _require_party(db, customer_party, request.customer_id, "customer_id")
        await _require_party(db, PartyType.VENDOR, request.vendor_id, "vendor_id")

        keys = [
            counter_key("invoice"),
            party_key(customer_party, request.customer_id),
            party_key(PartyType.VENDOR, request.vendor_id),
        ]
        progress = {"stage": "numbering"}

        async with party_locks.hold(keys):
            try:
                invoice_number = await next_number(db, "invoice")

                plan = plan_invoice_mutations(request, invoice_number)
                deposit = _applied(plan, "deposit")
                agent_credit = _applied(plan, "agent_credit")
                vendor_balance = _applied(plan, "vendor_balance")

                progress["stage"] = "record"
                invoice = Invoice(
                    invoice_number=invoice_number,
                    customer_type=request.customer_type,
                    customer_id=request.customer_id,
                    vendor_id=request.vendor_id,
                    items=[item.model_dump() for item in request.items],
                    subtotal=request.subtotal,
                    discount_percent=request.discount_percent,
                    discount_amount=request.computed_discount,
                    total=request.total,
                    vendor_cost=round_money(request.vendor_cost),
                    payment_method=request.payment_method,
                    use_customer_deposit=deposit is not None,
                    deposit_used=_applied_amount(deposit),
                    use_agent_credit=agent_credit is not None,
                    agent_credit_used=_applied_amount(agent_credit),
                    use_vendor_balance=request.use_vendor_balance if vendor_balance else BalanceSource.NONE,
                    vendor_balance_deducted=_applied_amount(vendor_balance),
                    notes=request.notes,
                    issued_by=issued_by,
                    created_by_name=request.created_by_name or created_by_name,
                    status=InvoiceStatus.ISSUED,
                    paid_amount=0.0,
                )
                db.add(invoice)
                await db.flush()

                await _apply_plan(db, plan, invoice.id, ReferenceType.INVOICE, progress)

                progress["stage"] = "commit"
                await db.commit()
            except Exception as exc:
                await _rollback_and_raise(db, "Invoice", progress["stage"], exc)

        await db.refresh(invoice)
        logger.info(
            "Issued invoice %s (total %.2f) with %d balance mutation(s)",
            invoice.invoice_number, invoice.total, len(plan)
        )
        return invoice

    @staticmethod
    async def create_ticket(
        db: AsyncSession,
        request: TicketCreate,
        issued_by: int,
        created_by_name: str = ""
    ) -> Ticket:
        """
        Issue a ticket.

        Same shape as create_invoice. Vendor handling is a single decision:
        accrue vendor_cost to the vendor's credit pool when no vendor balance
        is used, otherwise deduct vendor_balance_deducted from the chosen pool.
        """
        customer_party = request.customer_type.party_type
        await _require_party(db, customer_party, request.customer_id, "customer_id")

        keys = [counter_key("ticket"), party_key(customer_party, request.customer_id)]
        if request.vendor_id is not None:
            await _require_party(db, PartyType.VENDOR, request.vendor_id, "vendor_id")
            keys.append(party_key(PartyType.VENDOR, request.vendor_id))

        if request.invoice_id is not None and await db.get(Invoice, request.invoice_id) is None:
            raise ValidationFailedError(
                f"Invoice {request.invoice_id} does not exist",
                details={"field": "invoice_id", "invoice_id": request.invoice_id}
            )

        progress = {"stage": "numbering"}

        async with party_locks.hold(keys):
            try:
                ticket_number = await next_number(db, "ticket")

                plan = plan_ticket_mutations(request, ticket_number)
                deposit = _applied(plan, "deposit")
                agent_balance = _applied(plan, "agent_balance")
                vendor_balance = _applied(plan, "vendor_balance")

                progress["stage"] = "record"
                ticket = Ticket(
                    ticket_number=ticket_number,
                    customer_type=request.customer_type,
                    customer_id=request.customer_id,
                    vendor_id=request.vendor_id,
                    invoice_id=request.invoice_id,
                    trip_type=request.trip_type,
                    seat_class=request.seat_class,
                    route=request.route,
                    airlines=request.airlines,
                    flight_number=request.flight_number,
                    flight_time=request.flight_time,
                    travel_date=request.travel_date,
                    return_date=request.return_date,
                    passenger_name=request.passenger_name,
                    face_value=round_money(request.face_value),
                    vendor_cost=round_money(request.vendor_cost),
                    additional_cost=round_money(request.additional_cost),
                    deduct_from_deposit=deposit is not None,
                    deposit_deducted=_applied_amount(deposit),
                    use_agent_balance=request.use_agent_balance if agent_balance else BalanceSource.NONE,
                    agent_balance_deducted=_applied_amount(agent_balance),
                    use_vendor_balance=request.use_vendor_balance if vendor_balance else BalanceSource.NONE,
                    vendor_balance_deducted=_applied_amount(vendor_balance),
                    issued_by=issued_by,
                    created_by_name=request.created_by_name or created_by_name,
                    status=TicketStatus.ISSUED,
                )
                db.add(ticket)
                await db.flush()

                await _apply_plan(db, plan, ticket.id, ReferenceType.TICKET, progress)

                progress["stage"] = "commit"
                await db.commit()
            except Exception as exc:
                await _rollback_and_raise(db, "Ticket", progress["stage"], exc)

        await db.refresh(ticket)
        logger.info(
            "Issued ticket %s for %s with %d balance mutation(s)",
            ticket.ticket_number, ticket.passenger_name, len(plan)
        )
        return ticket

    @staticmethod
    async def create_cash_receipt(
        db: AsyncSession,
        request: CashReceiptCreate,
        issued_by: int,
        created_by_name: str = ""
    ) -> CashReceipt:
        """Issue a cash receipt. Receipts never move a balance."""
        await _require_party(db, request.party_type, request.party_id, "party_id")

        async with party_locks.hold([counter_key("receipt")]):
            try:
                receipt_number = await next_number(db, "receipt")
                receipt = CashReceipt(
                    receipt_number=receipt_number,
                    party_type=request.party_type,
                    party_id=request.party_id,
                    source_type=request.source_type,
                    pnr=request.pnr,
                    service_name=request.service_name,
                    amount=round_money(request.amount),
                    payment_method=request.payment_method,
                    description=request.description,
                    reference_number=request.reference_number,
                    issued_by=issued_by,
                    created_by_name=request.created_by_name or created_by_name,
                )
                db.add(receipt)
                await db.commit()
            except Exception as exc:
                await _rollback_and_raise(db, "Cash receipt", "record", exc)

        await db.refresh(receipt)
        logger.info("Issued cash receipt %s", receipt.receipt_number)
        return receipt

    @staticmethod
    async def update_invoice_payment(
        db: AsyncSession,
        invoice_id: int,
        paid_amount: float,
        status: Optional[InvoiceStatus] = None
    ) -> Invoice:
        """
        Record a payment-status change.

        Rules:
        - paid_amount never decreases and never exceeds the total
        - paid_amount == total implies status paid
        - without an explicit status, a partial payment marks the invoice partial

        The check and the write happen under the invoice lock on a row read
        FOR UPDATE, so concurrent updates apply one after the other.
        """
        async with party_locks.hold([document_key("invoice", invoice_id)]):
            try:
                invoice = await _apply_payment(db, invoice_id, paid_amount, status)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await db.refresh(invoice)
        logger.info("Invoice %s payment updated: %.2f / %.2f (%s)",
                    invoice.invoice_number, invoice.paid_amount, invoice.total, invoice.status.value)
        return invoice

    @staticmethod
    async def update_ticket_status(db: AsyncSession, ticket_id: int, status: TicketStatus) -> Ticket:
        """Change a ticket's status; balance fields are never touched."""
        ticket = await db.get(Ticket, ticket_id)
        if ticket is None:
            raise ResourceNotFoundError("Ticket", ticket_id)

        ticket.status = status
        await db.commit()
        await db.refresh(ticket)
        return ticket

    @staticmethod
    async def delete_invoice(db: AsyncSession, invoice_id: int) -> Invoice:
        """Delete an invoice row only; its number and ledger rows stay."""
        invoice = await db.get(Invoice, invoice_id)
        if invoice is None:
            raise ResourceNotFoundError("Invoice", invoice_id)
        await db.delete(invoice)
        await db.commit()
        return invoice

    @staticmethod
    async def delete_ticket(db: AsyncSession, ticket_id: int) -> Ticket:
        """Delete a ticket row only; its number and ledger rows stay."""
        ticket = await db.get(Ticket, ticket_id)
        if ticket is None:
            raise ResourceNotFoundError("Ticket", ticket_id)
        await db.delete(ticket)
        await db.commit()
        return ticket

    @staticmethod
    async def list_invoices(db: AsyncSession, limit: Optional[int] = None) -> List[Invoice]:
        query = select(Invoice).order_by(Invoice.created_at.desc(), Invoice.id.desc())
        if limit:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def list_tickets(db: AsyncSession, limit: Optional[int] = None) -> List[Ticket]:
        query = select(Ticket).order_by(Ticket.created_at.desc(), Ticket.id.desc())
        if limit:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())
