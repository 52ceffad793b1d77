"""
Billing and ledger enumerations.
"""

import enum
from sqlalchemy import Enum


def db_enum(enum_cls) -> Enum:
    """Store an enum by its (lowercase) value as a plain VARCHAR column."""
    return Enum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        length=20,
        validate_strings=True,
    )


class PartyType(str, enum.Enum):
    """Kinds of party accounts holding balances."""
    CUSTOMER = "customer"
    AGENT = "agent"
    VENDOR = "vendor"


class BalancePool(str, enum.Enum):
    """Named balance bucket on a party."""
    DEPOSIT = "deposit"  # Money the party prepaid (customer/agent) or we prepaid (vendor)
    CREDIT = "credit"  # Credit we extend to an agent, or that a vendor extends to us


class Direction(str, enum.Enum):
    """Whether a mutation grows or shrinks a pool."""
    INCREASE = "increase"
    DECREASE = "decrease"


class LedgerEntryType(str, enum.Enum):
    """Ledger row direction tag."""
    CREDIT = "credit"  # Pool increased
    DEBIT = "debit"  # Pool decreased
    DEPOSIT_DEBIT = "deposit_debit"  # Vendor deposit consumed by a ticket


class CustomerType(str, enum.Enum):
    """Who an invoice or ticket is billed to."""
    CUSTOMER = "customer"
    AGENT = "agent"

    @property
    def party_type(self) -> PartyType:
        return PartyType(self.value)


class BalanceSource(str, enum.Enum):
    """Which pool (if any) a document draws from."""
    NONE = "none"
    CREDIT = "credit"
    DEPOSIT = "deposit"

    @property
    def pool(self) -> BalancePool:
        return BalancePool(self.value)


class PaymentMethod(str, enum.Enum):
    """Invoice payment methods."""
    CASH = "cash"
    CARD = "card"
    CREDIT = "credit"


class LedgerPaymentMethod(str, enum.Enum):
    """How money moved for a manual ledger entry."""
    CASH = "cash"
    CHEQUE = "cheque"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    CREDIT = "credit"


class InvoiceStatus(str, enum.Enum):
    """Invoice status enumeration."""
    DRAFT = "draft"
    ISSUED = "issued"
    PARTIAL = "partial"
    PAID = "paid"
    CANCELLED = "cancelled"


class TicketStatus(str, enum.Enum):
    """Ticket status enumeration."""
    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    ISSUED = "issued"
    USED = "used"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class TripType(str, enum.Enum):
    ONE_WAY = "one_way"
    ROUND_TRIP = "round_trip"


class SeatClass(str, enum.Enum):
    ECONOMY = "economy"
    BUSINESS = "business"
    FIRST = "first"


class ReceiptStatus(str, enum.Enum):
    ISSUED = "issued"
    CANCELLED = "cancelled"


class ReferenceType(str, enum.Enum):
    """Document a ledger row points back to."""
    INVOICE = "invoice"
    TICKET = "ticket"
    OPENING_BALANCE = "opening_balance"
