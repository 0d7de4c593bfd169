"""initial schema — best score per (initials, mode)

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from decision_game.db.tables import SCORES_TABLE

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        SCORES_TABLE,
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("initials", sa.String(), nullable=False),
        sa.Column("mode", sa.String(), nullable=False),
        sa.Column("correct", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("total_time_ms", sa.Float(), nullable=False),
        sa.Column("avg_time_ms", sa.Float(), nullable=False),
        sa.Column("mistakes", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("initials", "mode", name=f"uq_{SCORES_TABLE}_initials_mode"),
    )
    op.create_index(f"ix_{SCORES_TABLE}_initials", SCORES_TABLE, ["initials"])
    op.create_index(f"ix_{SCORES_TABLE}_mode", SCORES_TABLE, ["mode"])
    op.create_index(f"ix_{SCORES_TABLE}_created_at", SCORES_TABLE, ["created_at"])


def downgrade() -> None:
    op.drop_table(SCORES_TABLE)
