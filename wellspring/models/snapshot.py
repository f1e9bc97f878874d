"""Chapter store snapshot + sync log models.

The chapter store is persisted as an opaque JSON snapshot of the whole
aggregate collection (one row per store name).  Outbound sync attempts are
recorded one row per attempt so board/email side effects stay auditable.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)

from wellspring.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class StoreSnapshot(db.Model):
    """Serialized chapter store (last writer wins)."""

    __tablename__ = "store_snapshots"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    payload = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)
    saved_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "saved_at": self.saved_at.isoformat() if self.saved_at else None,
        }


class ChapterSyncLog(db.Model):
    """One row per outbound sync attempt (board comment, email draft)."""

    __tablename__ = "chapter_sync_logs"
    __table_args__ = (
        Index("ix_chapter_sync_logs_chapter_created", "chapter_id", "created_at"),
    )

    id = Column(Integer, primary_key=True)
    chapter_id = Column(String(120), nullable=False, index=True)
    event_kind = Column(String(40), nullable=False)  # board_comment | payment_email | payments_board
    target = Column(String(200), default="")  # board item id or recipient
    sync_status = Column(String(20), nullable=False, default="pending")  # success | error | skipped
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "chapter_id": self.chapter_id,
            "event_kind": self.event_kind,
            "target": self.target,
            "sync_status": self.sync_status,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
