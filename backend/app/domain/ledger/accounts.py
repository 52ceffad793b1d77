"""
Party account registry.

Describes, per party type, which ORM model holds the balances, which ledger
table records their changes and which pools the party offers. The engine
and the issuance workflows look parties up here instead of branching on
the party-type string.
"""

from dataclasses import dataclass
from typing import Dict, Type

from backend.app.db.session import Base
from backend.app.models.billing_enums import PartyType, BalancePool
from backend.app.models.party import Customer, Agent, Vendor
from backend.app.models.ledger_entry import DepositTransaction, AgentTransaction, VendorTransaction
from backend.app.core.exceptions import ValidationFailedError


@dataclass(frozen=True)
class PartyAccount:
    """Static description of one party type."""

    party_type: PartyType
    label: str
    model: Type[Base]
    ledger_model: Type[Base]
    ledger_party_column: str
    pools: Dict[BalancePool, str]

    @property
    def tracks_pool_on_ledger(self) -> bool:
        """Two-pool ledgers carry a transaction_type column naming the pool."""
        return len(self.pools) > 1

    def balance_column(self, pool: BalancePool) -> str:
        """Attribute name of the given pool on the party model."""
        try:
            return self.pools[pool]
        except KeyError:
            raise ValidationFailedError(
                f"{self.label} accounts have no {pool.value} pool",
                details={"party_type": self.party_type.value, "pool": pool.value}
            )

    def ledger_party_attr(self):
        return getattr(self.ledger_model, self.ledger_party_column)


PARTY_ACCOUNTS: Dict[PartyType, PartyAccount] = {
    PartyType.CUSTOMER: PartyAccount(
        party_type=PartyType.CUSTOMER,
        label="Customer",
        model=Customer,
        ledger_model=DepositTransaction,
        ledger_party_column="customer_id",
        pools={BalancePool.DEPOSIT: "deposit_balance"},
    ),
    PartyType.AGENT: PartyAccount(
        party_type=PartyType.AGENT,
        label="Agent",
        model=Agent,
        ledger_model=AgentTransaction,
        ledger_party_column="agent_id",
        pools={
            BalancePool.CREDIT: "credit_balance",
            BalancePool.DEPOSIT: "deposit_balance",
        },
    ),
    PartyType.VENDOR: PartyAccount(
        party_type=PartyType.VENDOR,
        label="Vendor",
        model=Vendor,
        ledger_model=VendorTransaction,
        ledger_party_column="vendor_id",
        pools={
            BalancePool.CREDIT: "credit_balance",
            BalancePool.DEPOSIT: "deposit_balance",
        },
    ),
}


def get_account(party_type) -> PartyAccount:
    """Resolve a PartyType (or its string value) to its account description."""
    return PARTY_ACCOUNTS[PartyType(party_type)]
