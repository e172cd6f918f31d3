"""
SQLAlchemy Database Models

The SQL document store keeps every collection in one table. Each row is
a JSON document plus the identifiers and timestamps the store owns.

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from storefront.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class StoredDocument(Base):
    """
    One document of a named collection (menuItems, categories, ...).

    Identifiers are unique per collection, not globally.
    """
    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True)

    data = Column(JSON, nullable=False, default=dict)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Tie-breaker for documents created within the same clock tick
    sequence = Column(Integer, nullable=False, default=0)

    def to_document(self) -> dict:
        """Stored fields plus id and ISO timestamps."""
        return {
            **(self.data or {}),
            "id": self.id,
            "createdAt": _as_utc(self.created_at).isoformat(),
            "updatedAt": _as_utc(self.updated_at).isoformat(),
        }

    def __repr__(self):
        return f"<StoredDocument {self.collection}/{self.id}>"
