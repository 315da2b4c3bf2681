"""Initial schema: accounts, profiles, rewards, trivia, polls, ambassadors, payouts.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables and seed the default payout methods."""
    # --- Accounts ---
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(256), nullable=True),
        sa.Column("is_banned", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("login_count", sa.Integer(), server_default="0", nullable=False),
    )

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(128), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("is_revoked", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("replaced_by", sa.String(36), nullable=True),
    )
    op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"])
    op.create_index("ix_refresh_tokens_token_hash", "refresh_tokens", ["token_hash"])

    # --- Profiles ---
    op.create_table(
        "profiles",
        sa.Column("id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("country", sa.String(64), nullable=True),
        sa.Column("points", sa.Integer(), server_default="0", nullable=False),
        sa.Column("badges", sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        sa.Column("role", sa.String(16), server_default="user", nullable=False),
        sa.Column("referral_code", sa.String(8), nullable=False, unique=True),
        sa.Column("referred_by", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("referred_by_code", sa.String(32), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("payout_method", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_profiles_points", "profiles", [sa.text("points DESC")])
    op.create_index("ix_profiles_country", "profiles", ["country"])
    op.create_index("ix_profiles_referred_by", "profiles", ["referred_by"])
    op.execute(
        "ALTER TABLE profiles ADD CONSTRAINT ck_profiles_role "
        "CHECK (role IN ('user', 'moderator', 'ambassador', 'admin'))"
    )
    op.execute("ALTER TABLE profiles ADD CONSTRAINT ck_profiles_points CHECK (points >= 0)")

    # --- Daily rewards ---
    op.create_table(
        "user_daily_rewards",
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("last_spin_date", sa.Date(), nullable=True),
        sa.Column("last_trivia_date", sa.Date(), nullable=True),
        sa.Column("last_watch_date", sa.Date(), nullable=True),
        sa.Column("spin_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("trivia_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_spins", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_trivia_completed", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_ads_watched", sa.Integer(), server_default="0", nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "daily_reward_history",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reward_type", sa.String(32), nullable=False),
        sa.Column("points_earned", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reward_data", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_daily_reward_history_user_created", "daily_reward_history", ["user_id", "created_at"])
    op.execute(
        "ALTER TABLE daily_reward_history ADD CONSTRAINT ck_daily_reward_history_type "
        "CHECK (reward_type IN ('spin', 'trivia', 'watch', 'poll_vote', 'referral_signup', 'referral_bonus'))"
    )

    # --- Trivia ---
    op.create_table(
        "trivia_questions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("options", sa.JSON(), nullable=False),
        sa.Column("correct_answer", sa.Integer(), nullable=False),
        sa.Column("difficulty", sa.String(16), server_default="medium", nullable=False),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("country", sa.String(64), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_trivia_questions_country", "trivia_questions", ["country"])

    op.create_table(
        "trivia_games",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("difficulty", sa.String(16), server_default="medium", nullable=False),
        sa.Column("number_of_questions", sa.Integer(), nullable=False),
        sa.Column("points_reward", sa.Integer(), server_default="0", nullable=False),
        sa.Column("estimated_time_minutes", sa.Integer(), server_default="5", nullable=False),
        sa.Column("question_ids", sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
    )
    op.execute(
        "ALTER TABLE trivia_games ADD CONSTRAINT ck_trivia_games_difficulty "
        "CHECK (difficulty IN ('easy', 'medium', 'hard'))"
    )

    # --- Polls ---
    op.create_table(
        "polls",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("options", sa.JSON(), nullable=False),
        sa.Column("type", sa.String(16), server_default="global", nullable=False),
        sa.Column("country", sa.String(64), nullable=True),
        sa.Column("slug", sa.String(80), nullable=False, unique=True),
        sa.Column("category", sa.String(64), server_default="General", nullable=False),
        sa.Column("created_by", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("total_votes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("active_until", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_polls_active_created", "polls", ["is_active", "created_at"])
    op.execute("ALTER TABLE polls ADD CONSTRAINT ck_polls_type CHECK (type IN ('global', 'country'))")

    op.create_table(
        "poll_votes",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("poll_id", sa.BigInteger(), sa.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vote_option", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("poll_id", "user_id", name="uq_poll_votes_poll_user"),
    )

    # --- Ambassadors ---
    op.create_table(
        "ambassador_details",
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("country", sa.String(64), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 2), server_default="10.00", nullable=False),
        sa.Column("total_referrals", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_earnings", sa.Numeric(12, 2), server_default="0.00", nullable=False),
        sa.Column("total_payouts", sa.Numeric(12, 2), server_default="0.00", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_ambassador_details_country", "ambassador_details", ["country"])

    op.create_table(
        "country_metrics",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("country", sa.String(64), nullable=False),
        sa.Column("metric_date", sa.Date(), nullable=False),
        sa.Column("active_users", sa.Integer(), server_default="0", nullable=False),
        sa.Column("new_users", sa.Integer(), server_default="0", nullable=False),
        sa.Column("polls_created", sa.Integer(), server_default="0", nullable=False),
        sa.Column("votes_cast", sa.Integer(), server_default="0", nullable=False),
        sa.Column("ad_revenue", sa.Numeric(12, 2), server_default="0.00", nullable=False),
        sa.UniqueConstraint("country", "metric_date", name="uq_country_metrics_country_date"),
    )

    op.create_table(
        "marketing_materials",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("file_url", sa.Text(), nullable=False),
        sa.Column("file_type", sa.String(16), server_default="other", nullable=False),
        sa.Column("material_type", sa.String(32), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.execute(
        "ALTER TABLE marketing_materials ADD CONSTRAINT ck_marketing_materials_file_type "
        "CHECK (file_type IN ('image', 'video', 'application', 'other'))"
    )

    # --- Payouts ---
    op.create_table(
        "payout_methods",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(64), nullable=False, unique=True),
        sa.Column("min_amount", sa.Numeric(12, 2), server_default="0.00", nullable=False),
        sa.Column("fee_percent", sa.Numeric(5, 2), server_default="0.00", nullable=False),
        sa.Column("fee_fixed", sa.Numeric(12, 2), server_default="0.00", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
    )

    op.create_table(
        "payout_requests",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payout_method", sa.String(64), nullable=False),
        sa.Column("payout_details", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("requested_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processed_by", sa.BigInteger(), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("transaction_id", sa.String(128), nullable=True),
    )
    op.create_index("ix_payout_requests_user_status", "payout_requests", ["user_id", "status"])
    op.execute(
        "ALTER TABLE payout_requests ADD CONSTRAINT ck_payout_requests_status "
        "CHECK (status IN ('pending', 'approved', 'rejected', 'paid'))"
    )
    op.execute("ALTER TABLE payout_requests ADD CONSTRAINT ck_payout_requests_amount CHECK (amount > 0)")

    # --- Settings and payments ---
    op.create_table(
        "app_settings",
        sa.Column("category", sa.String(32), primary_key=True),
        sa.Column("settings", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("updated_by", sa.BigInteger(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("promoted_poll_id", sa.String(64), nullable=True),
        sa.Column("stripe_payment_intent_id", sa.String(128), nullable=True),
        sa.Column("stripe_customer_id", sa.String(128), nullable=True),
        sa.Column("metadata", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_transactions_user_created", "transactions", ["user_id", "created_at"])

    # --- Seed data ---
    op.execute(
        "INSERT INTO payout_methods (name, min_amount, fee_percent, fee_fixed) VALUES "
        "('PayPal', 10.00, 2.90, 0.30), "
        "('Bank Transfer', 50.00, 0.00, 0.00), "
        "('Manual', 100.00, 0.00, 0.00)"
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    for table in (
        "transactions",
        "app_settings",
        "payout_requests",
        "payout_methods",
        "marketing_materials",
        "country_metrics",
        "ambassador_details",
        "poll_votes",
        "polls",
        "trivia_games",
        "trivia_questions",
        "daily_reward_history",
        "user_daily_rewards",
        "profiles",
        "refresh_tokens",
        "users",
    ):
        op.drop_table(table)
