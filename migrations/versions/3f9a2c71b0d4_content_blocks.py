"""content blocks

Revision ID: 3f9a2c71b0d4
Revises:
Create Date: 2026-10-19 12:30:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f9a2c71b0d4"
down_revision = None
branch_labels = None
depends_on = None


_STATUS = sa.Enum("DRAFT", "PUBLISHED", "ARCHIVED", name="content_status")


def upgrade():
    op.create_table(
        "content_blocks",
        sa.Column("id", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("slug", sa.String(length=200), nullable=False),
        sa.Column("section", sa.String(length=120), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("status", _STATUS, nullable=False),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
    )
    with op.batch_alter_table("content_blocks") as batch_op:
        batch_op.create_index(batch_op.f("ix_content_blocks_slug"), ["slug"], unique=True)
        batch_op.create_index(batch_op.f("ix_content_blocks_status"), ["status"], unique=False)
        batch_op.create_index(batch_op.f("ix_content_blocks_created_at"), ["created_at"], unique=False)
        batch_op.create_index(batch_op.f("ix_content_blocks_last_updated"), ["last_updated"], unique=False)
        batch_op.create_index("ix_content_blocks_status_section", ["status", "section"], unique=False)
        batch_op.create_index("ix_content_blocks_status_published", ["status", "published_at"], unique=False)


def downgrade():
    with op.batch_alter_table("content_blocks") as batch_op:
        batch_op.drop_index("ix_content_blocks_status_published")
        batch_op.drop_index("ix_content_blocks_status_section")
        batch_op.drop_index(batch_op.f("ix_content_blocks_last_updated"))
        batch_op.drop_index(batch_op.f("ix_content_blocks_created_at"))
        batch_op.drop_index(batch_op.f("ix_content_blocks_status"))
        batch_op.drop_index(batch_op.f("ix_content_blocks_slug"))

    op.drop_table("content_blocks")
    _STATUS.drop(op.get_bind(), checkfirst=True)
