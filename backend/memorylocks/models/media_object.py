"""
Memory Locks API — Media Object Model
======================================

What:  ORM model for `media_objects`: one image or video in a lock's album.
Who:   MediaObjectService; the album route reads them in display order.

Invariant:
    At most one row per lock_id has is_main_picture = true. The store does
    not enforce it; MediaObjectService clears siblings before setting it.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text, false, text, true
from sqlalchemy.orm import Mapped, mapped_column

from memorylocks.database import Base


class MediaObject(Base):
    """An uploaded asset hosted by the image/video CDN."""

    __tablename__ = "media_objects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Deleting a lock deletes its media in the store
    lock_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("locks.id", ondelete="CASCADE"),
        nullable=False,
    )

    # ── Asset Location ────────────────────────────────────────────────────
    cloudflare_id: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''")
    )
    url: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default=text("''"))
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Presentation ──────────────────────────────────────────────────────
    is_image: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    is_main_picture: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    display_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    # Videos only
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_media_objects_lock_id", "lock_id"),
        Index("idx_media_objects_display_order", "lock_id", "display_order"),
    )

    def __repr__(self) -> str:
        kind = "image" if self.is_image else "video"
        return f"<MediaObject(id={self.id}, lock_id={self.lock_id}, {kind})>"
