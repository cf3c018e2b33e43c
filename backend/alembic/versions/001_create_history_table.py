"""Create history table

Revision ID: 001
Revises: None
Create Date: 2025-01-10 00:00:00.000000+00:00

What:  Creates the `history` table: one row per completed feature call.
How:   BIGINT identity key, JSON prompt/response documents, timestamptz.

Rollback: downgrade() drops the table entirely (destructive — all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "history",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column(
            "user_id",
            sa.String(64),
            nullable=False,
            comment="Identifier supplied by the authentication layer",
        ),
        sa.Column(
            "feature_name",
            sa.String(100),
            nullable=False,
            comment="Feature that produced this entry (study-style, stress, genieguide, ...)",
        ),
        sa.Column("prompt", sa.JSON(), nullable=False, comment="Validated request payload"),
        sa.Column(
            "response",
            sa.JSON(),
            nullable=False,
            comment="Structured response returned to the user",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_history"),
    )

    op.create_index("idx_history_user_id", "history", ["user_id"])
    op.create_index(
        "idx_history_created_at",
        "history",
        [sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_history_created_at", table_name="history")
    op.drop_index("idx_history_user_id", table_name="history")
    op.drop_table("history")
