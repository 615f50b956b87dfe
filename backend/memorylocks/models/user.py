"""
Memory Locks API — User (Account) Model
========================================

What:  ORM model for the `users` table.
Who:   UserService for account CRUD; LockService checks ownership against it.

Uniqueness:
    - email and phone_number are unique when present (NULLs never collide)
    - (auth_provider, provider_id) identifies at most one account
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Index, Integer, Text, UniqueConstraint, false, text
from sqlalchemy.orm import Mapped, mapped_column

from memorylocks.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """An account created by the mobile app (email, phone or OAuth sign-up)."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)
    phone_number: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)

    # ── Authentication Provider ───────────────────────────────────────────
    # Tag such as 'Registration', 'google', 'apple'; provider_id is the
    # provider's subject identifier (null for plain registrations).
    auth_provider: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''")
    )
    provider_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    phone_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Push-permission prompt cooldown is enforced by the app; we only store it.
    last_notification_prompt: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("auth_provider", "provider_id", name="uq_users_provider"),
        Index("idx_users_email", "email"),
        Index("idx_users_phone", "phone_number"),
        Index("idx_users_provider", "auth_provider", "provider_id"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, provider='{self.auth_provider}')>"
