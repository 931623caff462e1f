"""Initial voice schema: users, communities, posts, voice channels and participants

Revision ID: 7c2e4f9a1b3d
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7c2e4f9a1b3d"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create identity projection, community/post tables and both voice families."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
        sa.Column("avatar", sa.String(500), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )

    op.create_table(
        "communities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("game", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )

    op.create_table(
        "community_members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "community_id", sa.Integer(),
            sa.ForeignKey("communities.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.String(64),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.UniqueConstraint("community_id", "user_id", name="uq_community_members_pair"),
    )

    op.create_table(
        "posts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "community_id", sa.Integer(),
            sa.ForeignKey("communities.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.String(64),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_posts_community_time", "posts", ["community_id", "created_at"])

    op.create_table(
        "voice_channels",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "community_id", sa.Integer(),
            sa.ForeignKey("communities.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("livekit_room", sa.String(200), nullable=False, unique=True),
        sa.Column(
            "created_by", sa.String(64),
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.CheckConstraint("max_participants >= 1", name="ck_voice_channels_capacity"),
    )
    op.create_index("ix_voice_channels_community", "voice_channels", ["community_id"])

    op.create_table(
        "voice_channel_participants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "channel_id", sa.Integer(),
            sa.ForeignKey("voice_channels.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.String(64),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("channel_id", "user_id", name="uq_voice_participants_pair"),
    )
    op.create_index(
        "ix_voice_participants_user", "voice_channel_participants", ["user_id"]
    )

    op.create_table(
        "post_voice_channels",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "post_id", sa.Integer(),
            sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, unique=True,
        ),
        sa.Column("max_slots", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("livekit_room", sa.String(200), nullable=False, unique=True),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.CheckConstraint("max_slots >= 1", name="ck_post_voice_channels_slots"),
    )

    op.create_table(
        "post_voice_channel_participants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "channel_id", sa.Integer(),
            sa.ForeignKey("post_voice_channels.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.String(64),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "channel_id", "user_id", name="uq_post_voice_participants_pair"
        ),
    )
    op.create_index(
        "ix_post_voice_participants_user", "post_voice_channel_participants", ["user_id"]
    )


def downgrade() -> None:
    """Drop every table created by this revision, children first."""
    op.drop_index(
        "ix_post_voice_participants_user", table_name="post_voice_channel_participants"
    )
    op.drop_table("post_voice_channel_participants")
    op.drop_table("post_voice_channels")

    op.drop_index("ix_voice_participants_user", table_name="voice_channel_participants")
    op.drop_table("voice_channel_participants")
    op.drop_index("ix_voice_channels_community", table_name="voice_channels")
    op.drop_table("voice_channels")

    op.drop_index("ix_posts_community_time", table_name="posts")
    op.drop_table("posts")
    op.drop_table("community_members")
    op.drop_table("communities")
    op.drop_table("users")
