"""Create users, locks and media_objects tables

Revision ID: 001
Revises: None
Create Date: 2025-02-14 00:00:00.000000+00:00

What:  Initial schema, carried over from the D1 database of the previous
       worker with its later column additions folded in (thumbnail_url,
       is_image, upgraded_storage, last_notification_prompt).

Foreign keys:
    locks.user_id          → users.id  ON DELETE SET NULL  (locks outlive accounts)
    media_objects.lock_id  → locks.id  ON DELETE CASCADE

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("phone_number", sa.Text(), nullable=True),
        sa.Column("auth_provider", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("provider_id", sa.Text(), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("phone_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "last_notification_prompt",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="When the app last asked for push permission",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("phone_number"),
        sa.UniqueConstraint("auth_provider", "provider_id", name="uq_users_provider"),
    )
    op.create_index("idx_users_email", "users", ["email"])
    op.create_index("idx_users_phone", "users", ["phone_number"])
    op.create_index("idx_users_provider", "users", ["auth_provider", "provider_id"])

    op.create_table(
        "locks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "lock_name", sa.Text(), nullable=False, server_default=sa.text("'Memory Lock'")
        ),
        sa.Column(
            "album_title",
            sa.Text(),
            nullable=False,
            server_default=sa.text("'Wonderful Memories'"),
        ),
        sa.Column("seal_date", sa.Date(), nullable=True, comment="NULL while unsealed"),
        sa.Column("scan_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "last_scan_milestone", sa.Integer(), nullable=True, server_default=sa.text("0")
        ),
        sa.Column("upgraded_storage", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_locks_user_id", "locks", ["user_id"])

    op.create_table(
        "media_objects",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lock_id", sa.Integer(), nullable=False),
        sa.Column("cloudflare_id", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("url", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("file_name", sa.Text(), nullable=True),
        sa.Column("is_image", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_main_picture", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["lock_id"], ["locks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_media_objects_lock_id", "media_objects", ["lock_id"])
    op.create_index(
        "idx_media_objects_display_order", "media_objects", ["lock_id", "display_order"]
    )


def downgrade() -> None:
    op.drop_index("idx_media_objects_display_order", table_name="media_objects")
    op.drop_index("idx_media_objects_lock_id", table_name="media_objects")
    op.drop_table("media_objects")
    op.drop_index("idx_locks_user_id", table_name="locks")
    op.drop_table("locks")
    op.drop_index("idx_users_provider", table_name="users")
    op.drop_index("idx_users_phone", table_name="users")
    op.drop_index("idx_users_email", table_name="users")
    op.drop_table("users")
