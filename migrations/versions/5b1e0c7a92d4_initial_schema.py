"""initial schema: users, communities, songs

Revision ID: 5b1e0c7a92d4
Revises:
Create Date: 2026-10-19 09:12:44.031582

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

import melodyshare.db.time

# revision identifiers, used by Alembic.
revision: str = "5b1e0c7a92d4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the identity, community and song tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("community_code", sa.Text(), nullable=True),
        sa.Column("last_song_added", melodyshare.db.time.UTCDateTime(), nullable=True),
        sa.Column("is_guest", sa.Boolean(), nullable=False),
        sa.Column("created_at", melodyshare.db.time.UTCDateTime(), nullable=False),
        sa.Column("updated_at", melodyshare.db.time.UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )
    op.create_index("ix_users_community_code", "users", ["community_code"], unique=False)

    op.create_table(
        "community",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("code", sa.String(length=16), nullable=False),
        sa.Column("creation_date", melodyshare.db.time.UTCDateTime(), nullable=False),
        sa.Column("members", sa.Integer(), nullable=False),
        sa.CheckConstraint("members >= 1", name="ck_community_members_positive"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )

    op.create_table(
        "song",
        sa.Column("seq", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("community_code", sa.String(length=16), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("artist", sa.Text(), nullable=False),
        sa.Column("album_art", sa.Text(), nullable=False),
        sa.Column("spotify_uri", sa.Text(), nullable=False),
        sa.Column("spotify_id", sa.Text(), nullable=False),
        sa.Column("youtube_url", sa.Text(), nullable=True),
        sa.Column("added_by", sa.Text(), nullable=False),
        sa.Column("added_by_id", sa.String(length=32), nullable=False),
        sa.Column("added_at", melodyshare.db.time.UTCDateTime(), nullable=False),
        sa.Column("mood", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("seq"),
        sa.UniqueConstraint("id"),
    )
    op.create_index(
        "ix_song_community_feed", "song", ["community_code", "added_at", "seq"], unique=False
    )
    op.create_index("ix_song_added_by_id", "song", ["added_by_id", "added_at"], unique=False)


def downgrade() -> None:
    """Drop the identity, community and song tables."""
    op.drop_index("ix_song_added_by_id", table_name="song")
    op.drop_index("ix_song_community_feed", table_name="song")
    op.drop_table("song")
    op.drop_table("community")
    op.drop_index("ix_users_community_code", table_name="users")
    op.drop_table("users")
