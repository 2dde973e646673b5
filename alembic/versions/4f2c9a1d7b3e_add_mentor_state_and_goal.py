"""Add mentor state, user goal and transaction vendor

Revision ID: 4f2c9a1d7b3e
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4f2c9a1d7b3e"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _create_base_tables() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Text(), primary_key=True, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.UniqueConstraint("name", "type", "user_id", name="uq_category_user"),
    )
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
    )


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)

    # Fresh database: lay down the finance tables first
    if "users" not in inspector.get_table_names():
        _create_base_tables()
        inspector = sa.inspect(conn)

    # 1. Savings goal per user
    user_columns = [col["name"] for col in inspector.get_columns("users")]
    if "goal" not in user_columns:
        op.add_column("users", sa.Column("goal", sa.Numeric(precision=14, scale=2), nullable=True))

    # 2. Merchant name carried on mentor transactions
    tx_columns = [col["name"] for col in inspector.get_columns("transactions")]
    if "vendor" not in tx_columns:
        op.add_column("transactions", sa.Column("vendor", sa.Text(), nullable=True))

    # 3. Per-user key-value rows for missions, enabled rules and config
    if "mentor_state" not in inspector.get_table_names():
        op.create_table(
            "mentor_state",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Text(), nullable=False),
            sa.Column("key", sa.Text(), nullable=False),
            sa.Column("value", sa.Text(), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.UniqueConstraint("user_id", "key", name="uq_mentor_state_user_key"),
        )
        op.create_index("ix_mentor_state_user_id", "mentor_state", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_mentor_state_user_id", table_name="mentor_state")
    op.drop_table("mentor_state")
    op.drop_column("transactions", "vendor")
    op.drop_column("users", "goal")
