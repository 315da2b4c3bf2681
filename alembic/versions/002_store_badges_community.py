"""Reward store, badge catalog, poll comments and content reports.

Revision ID: 002_store_badges_community
Revises: 001_initial_schema
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002_store_badges_community"
down_revision: str | None = "001_initial_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    """Create the store, badge and community tables. Badges are seeded at startup."""
    # --- Badges ---
    op.create_table(
        "badges",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("slug", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("icon", sa.String(64), nullable=True),
        sa.Column("criteria_type", sa.String(32), nullable=False),
        sa.Column("threshold", sa.Integer(), server_default="1", nullable=False),
        sa.Column("criteria", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("sort_order", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "user_badges",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("badge_id", sa.BigInteger(), sa.ForeignKey("badges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("earned_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),
    )
    op.create_index("ix_user_badges_user_id", "user_badges", ["user_id"])

    # --- Reward store ---
    op.create_table(
        "reward_store_items",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("item_type", sa.String(32), nullable=False),
        sa.Column("points_cost", sa.Integer(), nullable=False),
        sa.Column("value", sa.String(64), nullable=True),
        sa.Column("currency", sa.String(3), server_default="USD", nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("fulfillment_instructions", sa.Text(), nullable=True),
        sa.Column("stock_quantity", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.CheckConstraint("points_cost > 0", name="ck_reward_store_items_points_cost"),
        sa.CheckConstraint("stock_quantity IS NULL OR stock_quantity >= 0", name="ck_reward_store_items_stock"),
    )
    op.create_index("ix_reward_store_items_active_cost", "reward_store_items", ["is_active", "points_cost"])

    op.create_table(
        "redeemed_items",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "item_id",
            sa.BigInteger(),
            sa.ForeignKey("reward_store_items.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("item_name", sa.String(200), nullable=False),
        sa.Column("points_cost", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(24), server_default="pending_fulfillment", nullable=False),
        sa.Column("fulfillment_details", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_redeemed_items_user_id", "redeemed_items", ["user_id"])
    op.create_index("ix_redeemed_items_status", "redeemed_items", ["status"])

    # --- Community ---
    op.create_table(
        "poll_comments",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("poll_id", sa.BigInteger(), sa.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "parent_comment_id",
            sa.BigInteger(),
            sa.ForeignKey("poll_comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("comment_text", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_poll_comments_poll_id", "poll_comments", ["poll_id"])
    op.create_index("ix_poll_comments_parent_comment_id", "poll_comments", ["parent_comment_id"])

    op.create_table(
        "content_reports",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("reporter_id", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content_type", sa.String(16), nullable=False),
        sa.Column("content_id", sa.BigInteger(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("reviewed_by", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_content_reports_status", "content_reports", ["status"])
    op.create_index("ix_content_reports_content", "content_reports", ["content_type", "content_id"])


def downgrade() -> None:
    for table in (
        "content_reports",
        "poll_comments",
        "redeemed_items",
        "reward_store_items",
        "user_badges",
        "badges",
    ):
        op.drop_table(table)
