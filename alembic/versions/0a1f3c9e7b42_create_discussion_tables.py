"""Create forums, profiles, posts, replies, likes and comment tables

Revision ID: 0a1f3c9e7b42
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0a1f3c9e7b42"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "forums",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("display_name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "profiles",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("nickname", sa.String(100), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "posts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "forum_id",
            sa.String(36),
            sa.ForeignKey("forums.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("media_url", sa.String(500), nullable=True),
        sa.Column("media_type", sa.String(10), nullable=True),
        sa.Column("is_pinned", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_locked", sa.Boolean(), server_default=sa.false()),
        sa.Column("accepted_reply_id", sa.String(36), nullable=True),
        sa.Column("view_count", sa.Integer(), server_default="0"),
        sa.Column("like_count", sa.Integer(), server_default="0"),
        sa.Column("reply_count", sa.Integer(), server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_posts_forum_pinned_created", "posts", ["forum_id", "is_pinned", "created_at"]
    )
    op.create_index("ix_posts_author_created", "posts", ["author_id", "created_at"])

    op.create_table(
        "replies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "post_id",
            sa.String(36),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author_id", sa.String(64), nullable=False),
        sa.Column(
            "parent_reply_id",
            sa.String(36),
            sa.ForeignKey("replies.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("like_count", sa.Integer(), server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_replies_post_parent", "replies", ["post_id", "parent_reply_id"])
    op.create_index("ix_replies_author_created", "replies", ["author_id", "created_at"])
    op.create_foreign_key(
        "fk_posts_accepted_reply_id",
        "posts",
        "replies",
        ["accepted_reply_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "likes",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("target_type", sa.String(10), primary_key=True),
        sa.Column("target_id", sa.String(36), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_likes_target", "likes", ["target_type", "target_id"])

    op.create_table(
        "blog_comments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("blog_post_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column(
            "parent_id",
            sa.String(36),
            sa.ForeignKey("blog_comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_blog_comments_post_created", "blog_comments", ["blog_post_id", "created_at"]
    )

    op.create_table(
        "announcement_comments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("announcement_id", sa.String(64), nullable=False),
        sa.Column("author_id", sa.String(64), nullable=False),
        sa.Column(
            "parent_id",
            sa.String(36),
            sa.ForeignKey("announcement_comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_announcement_comments_target_created",
        "announcement_comments",
        ["announcement_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_constraint("fk_posts_accepted_reply_id", "posts", type_="foreignkey")
    op.drop_table("announcement_comments")
    op.drop_table("blog_comments")
    op.drop_table("likes")
    op.drop_table("replies")
    op.drop_table("posts")
    op.drop_table("profiles")
    op.drop_table("forums")
