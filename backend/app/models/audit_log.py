"""
Activity log rows.

One row per staff action worth showing on the activity page: sign-ins,
account changes, parties and documents created or deleted, manual ledger
postings, resets and report requests. Action names are the AuditAction
constants in services.audit.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Plain columns, not foreign keys: the trail outlives deleted users
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)

    action = Column(String(100), nullable=False, index=True)

    # "user", "customer", "agent", "vendor", "invoice", "ticket", "receipt", ...
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(Integer, nullable=True, index=True)
    # Username, party name or document number at the time of the action
    entity_name = Column(String(255), nullable=True)

    meta_data = Column(JSON, nullable=True)
    ip_address = Column(String(50), nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.id} {self.action} by {self.actor_username} on {self.entity_type}:{self.entity_id}>"
