"""
Memory Locks API — Lock Model
==============================

What:  ORM model for the `locks` table: one physical lock and its album.
Who:   LockService (CRUD, scans, bulk creation); album route for public view.

Invariants:
    - scan_count only increases (LockService.increment_scan_count is the
      only writer; it is not in the updatable field set)
    - last_scan_milestone <= scan_count and is 0/NULL or a configured milestone
    - user_id is nullable: unclaimed locks exist and deleting an account
      detaches its locks (ON DELETE SET NULL)
"""

from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, Text, false, text
from sqlalchemy.orm import Mapped, mapped_column

from memorylocks.database import Base

DEFAULT_LOCK_NAME = "Memory Lock"
DEFAULT_ALBUM_TITLE = "Wonderful Memories"


class Lock(Base):
    """A memory lock. Placeholder locks are bulk-created before they are sold."""

    __tablename__ = "locks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    lock_name: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=DEFAULT_LOCK_NAME,
        server_default=text(f"'{DEFAULT_LOCK_NAME}'"),
    )
    album_title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=DEFAULT_ALBUM_TITLE,
        server_default=text(f"'{DEFAULT_ALBUM_TITLE}'"),
    )

    # Calendar date only; NULL means "not sealed"
    seal_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # ── Scan Tracking ─────────────────────────────────────────────────────
    scan_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    # NULL is read as 0
    last_scan_milestone: Mapped[int | None] = mapped_column(
        Integer, nullable=True, default=0, server_default=text("0")
    )

    # False = base tier, True = upgraded tier. Quotas are enforced by the apps.
    upgraded_storage: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index("idx_locks_user_id", "user_id"),
    )

    @property
    def is_sealed(self) -> bool:
        return self.seal_date is not None

    def __repr__(self) -> str:
        return f"<Lock(id={self.id}, scans={self.scan_count}, user_id={self.user_id})>"
