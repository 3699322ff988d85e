"""add tasks.position and backfill it in creation order

Revision ID: 0002_task_position
Revises: 0001_init_schema
Create Date: 2026-10-05 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002_task_position"
down_revision: Union[str, Sequence[str], None] = "0001_init_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add the ordering column and number existing rows 0..n-1 by created_at."""
    op.add_column("tasks", sa.Column("position", sa.Integer(), nullable=True))
    op.create_index(
        "ix_tasks_position_created", "tasks", ["position", "created_at"], unique=False
    )

    conn = op.get_bind()
    rows = conn.execute(
        sa.text("SELECT id FROM tasks ORDER BY created_at ASC, id ASC")
    ).fetchall()
    for position, row in enumerate(rows):
        conn.execute(
            sa.text("UPDATE tasks SET position = :position WHERE id = :id"),
            {"position": position, "id": row.id},
        )


def downgrade() -> None:
    op.drop_index("ix_tasks_position_created", table_name="tasks")
    op.drop_column("tasks", "position")
