"""initial schema

Revision ID: 5c1f2a9d7e30
Revises:
Create Date: 2026-10-19 09:12:41.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1f2a9d7e30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _reaction_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column("thread_pk", sa.Integer(), nullable=False),
        sa.Column("user_pk", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["thread_pk"], ["thread.pk"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_pk"], ["app_user.pk"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("thread_pk", "user_pk"),
    )


def upgrade() -> None:
    """Create users, communities, membership, threads and reactions."""
    op.create_table(
        "app_user",
        sa.Column("pk", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("onboarded", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("pk"),
        sa.UniqueConstraint("username"),
    )
    op.create_index(op.f("ix_app_user_id"), "app_user", ["id"], unique=True)

    op.create_table(
        "community",
        sa.Column("pk", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("clerk_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("is_private", sa.Boolean(), nullable=False),
        sa.Column("created_by_pk", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["created_by_pk"], ["app_user.pk"]),
        sa.PrimaryKeyConstraint("pk"),
        sa.UniqueConstraint("username"),
    )
    op.create_index(op.f("ix_community_id"), "community", ["id"], unique=True)
    op.create_index(op.f("ix_community_clerk_id"), "community", ["clerk_id"], unique=True)

    op.create_table(
        "community_member",
        sa.Column("community_pk", sa.Integer(), nullable=False),
        sa.Column("user_pk", sa.Integer(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["community_pk"], ["community.pk"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_pk"], ["app_user.pk"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("community_pk", "user_pk"),
    )

    op.create_table(
        "thread",
        sa.Column("pk", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("author_pk", sa.Integer(), nullable=False),
        sa.Column("parent_pk", sa.Integer(), nullable=True),
        sa.Column("community_pk", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["author_pk"], ["app_user.pk"]),
        sa.ForeignKeyConstraint(["community_pk"], ["community.pk"]),
        sa.ForeignKeyConstraint(["parent_pk"], ["thread.pk"]),
        sa.PrimaryKeyConstraint("pk"),
    )
    op.create_index(op.f("ix_thread_author_pk"), "thread", ["author_pk"], unique=False)
    op.create_index(op.f("ix_thread_community_pk"), "thread", ["community_pk"], unique=False)
    op.create_index("ix_thread_parent_created", "thread", ["parent_pk", "created_at"], unique=False)

    _reaction_table("thread_like")
    _reaction_table("thread_repost")


def downgrade() -> None:
    """Drop every table created by :func:`upgrade`."""
    op.drop_table("thread_repost")
    op.drop_table("thread_like")
    op.drop_index("ix_thread_parent_created", table_name="thread")
    op.drop_index(op.f("ix_thread_community_pk"), table_name="thread")
    op.drop_index(op.f("ix_thread_author_pk"), table_name="thread")
    op.drop_table("thread")
    op.drop_table("community_member")
    op.drop_index(op.f("ix_community_clerk_id"), table_name="community")
    op.drop_index(op.f("ix_community_id"), table_name="community")
    op.drop_table("community")
    op.drop_index(op.f("ix_app_user_id"), table_name="app_user")
    op.drop_table("app_user")
