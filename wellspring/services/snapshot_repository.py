"""
Snapshot repository — persists the chapter store as a single JSON row.

The store owns the shape of the payload; this module only reads and writes
it.  Saves are last-writer-wins: ``version`` is bumped on each save but not
checked.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from wellspring.models import db
from wellspring.models.snapshot import ChapterSyncLog, StoreSnapshot

logger = logging.getLogger(__name__)

DEFAULT_STORE_NAME = "geode-chapter-storage"


class SnapshotRepository:
    """Load/save one named snapshot."""

    def __init__(self, name: str = DEFAULT_STORE_NAME) -> None:
        self.name = name

    def _get_row(self) -> StoreSnapshot | None:
        return db.session.execute(
            select(StoreSnapshot).where(StoreSnapshot.name == self.name)
        ).scalar_one_or_none()

    def load(self) -> dict | None:
        """Return the stored payload, or None when nothing was saved yet."""
        row = self._get_row()
        if row is None:
            return None
        return dict(row.payload or {})

    def save(self, payload: dict) -> StoreSnapshot:
        row = self._get_row()
        if row is None:
            row = StoreSnapshot(name=self.name, payload=payload, version=1)
            db.session.add(row)
        else:
            row.payload = payload
            row.version = (row.version or 0) + 1
        db.session.commit()
        logger.debug("Snapshot saved name=%s version=%d", self.name, row.version)
        return row

    def delete(self) -> bool:
        row = self._get_row()
        if row is None:
            return False
        db.session.delete(row)
        db.session.commit()
        return True


def record_sync_attempt(event) -> ChapterSyncLog | None:
    """Persist one sync-outbox attempt as a ChapterSyncLog row.

    Logging failures never reach the transition caller; the session is
    rolled back and the error logged.
    """
    try:
        row = ChapterSyncLog(
            chapter_id=event.chapter_id,
            event_kind=event.kind,
            target=str(event.target or "")[:200],
            sync_status=event.status,
            error_message=event.error,
        )
        db.session.add(row)
        db.session.commit()
        return row
    except Exception:
        db.session.rollback()
        logger.exception("Failed to record sync attempt for %s", event.chapter_id)
        return None


def list_sync_logs(chapter_id: str | None = None, limit: int = 50) -> list[ChapterSyncLog]:
    stmt = select(ChapterSyncLog).order_by(ChapterSyncLog.created_at.desc(), ChapterSyncLog.id.desc())
    if chapter_id:
        stmt = stmt.where(ChapterSyncLog.chapter_id == chapter_id)
    return list(db.session.execute(stmt.limit(limit)).scalars())
