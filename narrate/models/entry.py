import uuid
from datetime import datetime

from sqlalchemy import String, Text, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from narrate.core.clock import utcnow
from narrate.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Entry(Base):
    """
    A single journal entry, owned by exactly one user.

    Every query against this table must be filtered by `user_id`.
    """

    __tablename__ = "entries"
    __table_args__ = (
        Index("ix_entries_user_created", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
