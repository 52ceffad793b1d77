"""
Document Counter database model.

Persistent sequence backing INV-/TKT-/RCT- numbers. A counter only moves
forward (except for an explicit admin reset), so numbers are never reused
when the documents holding them are deleted.
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from backend.app.db.session import Base


class DocumentCounter(Base):
    __tablename__ = "document_counters"

    name = Column(String(20), primary_key=True)  # invoice | ticket | receipt
    value = Column(Integer, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<DocumentCounter(name='{self.name}', value={self.value})>"
