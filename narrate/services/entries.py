"""
Entry service: owner-scoped persistence of journal entries.

Public API
----------
create_entry(db, user_id, content)                 -> Entry
get_entry(db, user_id, entry_id)                   -> Entry
list_entries(db, user_id, limit, offset)           -> tuple[int, list[Entry]]
update_entry(db, user_id, entry_id, content)       -> Entry
list_entries_in_range(db, user_id, start, end)     -> list[Entry]   (ascending)

SqlEntryStore adapts the range query to the summary pipeline's storage
interface and turns database failures into StorageError.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from narrate.core.clock import utcnow
from narrate.core.errors import EntryNotFoundError, StorageError
from narrate.models.entry import Entry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def create_entry(db: Session, user_id: str, content: str) -> Entry:
    """Persist and commit a new entry. `content` is expected to be sanitized."""
    entry = Entry(user_id=user_id, content=content)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info("Entry %s created for user %s", entry.id, user_id)
    return entry


def update_entry(db: Session, user_id: str, entry_id: str, content: str) -> Entry:
    """Replace an entry's content. Raises EntryNotFoundError for foreign or missing ids."""
    entry = get_entry(db, user_id, entry_id)
    entry.content = content
    entry.updated_at = utcnow()
    db.commit()
    db.refresh(entry)
    logger.info("Entry %s updated for user %s", entry.id, user_id)
    return entry


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_entry(db: Session, user_id: str, entry_id: str) -> Entry:
    entry = (
        db.query(Entry)
        .filter(Entry.id == entry_id, Entry.user_id == user_id)
        .first()
    )
    if entry is None:
        raise EntryNotFoundError(entry_id=entry_id)
    return entry


def list_entries(
    db: Session,
    user_id: str,
    limit: int = 20,
    offset: int = 0,
) -> tuple[int, list[Entry]]:
    """Return (total_count, page) ordered by created_at descending."""
    q = db.query(Entry).filter(Entry.user_id == user_id)
    total = q.count()
    items = (
        q.order_by(Entry.created_at.desc(), Entry.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items


def list_entries_in_range(
    db: Session,
    user_id: str,
    start: datetime,
    end: datetime,
) -> list[Entry]:
    """Entries with start <= created_at <= end, oldest first."""
    return (
        db.query(Entry)
        .filter(
            Entry.user_id == user_id,
            Entry.created_at >= start,
            Entry.created_at <= end,
        )
        .order_by(Entry.created_at.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# Pipeline storage adapter
# ---------------------------------------------------------------------------

class SqlEntryStore:
    """Read-only EntryStore backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def list_entries_in_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[Entry]:
        try:
            return list_entries_in_range(self.db, user_id, start, end)
        except SQLAlchemyError as exc:
            logger.error("Failed to fetch entries for user %s: %s", user_id, exc)
            raise StorageError() from exc
