"""Repositories for channels and their posts, comments and likes."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from volunteerhub.models.channel import Comment, CommunicationChannel, Like, Post


class ChannelRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, event_id: UUID, commit: bool = True) -> CommunicationChannel:
        channel = CommunicationChannel(event_id=event_id)
        self.db.add(channel)
        if commit:
            self.db.commit()
            self.db.refresh(channel)
        else:
            self.db.flush()
        return channel

    def get_by_id(self, channel_id: UUID) -> CommunicationChannel | None:
        return (
            self.db.query(CommunicationChannel)
            .filter(CommunicationChannel.id == channel_id)
            .first()
        )

    def get_by_event_id(self, event_id: UUID) -> CommunicationChannel | None:
        return (
            self.db.query(CommunicationChannel)
            .filter(CommunicationChannel.event_id == event_id)
            .first()
        )


class PostRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self, channel_id: UUID, author_id: UUID, content: str, image_url: str | None = None
    ) -> Post:
        post = Post(
            channel_id=channel_id,
            author_id=author_id,
            content=content,
            image_url=image_url,
        )
        self.db.add(post)
        self.db.commit()
        self.db.refresh(post)
        return post

    def get_by_id(self, post_id: UUID) -> Post | None:
        return self.db.query(Post).filter(Post.id == post_id).first()

    def list_for_channel(self, channel_id: UUID, skip: int = 0, limit: int = 20) -> list[Post]:
        return (
            self.db.query(Post)
            .filter(Post.channel_id == channel_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count_for_channel(self, channel_id: UUID) -> int:
        return self.db.query(Post).filter(Post.channel_id == channel_id).count()

    def delete(self, post: Post) -> None:
        self.db.delete(post)
        self.db.commit()

    # ── Comments ──

    def add_comment(self, post_id: UUID, author_id: UUID, content: str) -> Comment:
        comment = Comment(post_id=post_id, author_id=author_id, content=content)
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def list_comments(self, post_id: UUID) -> list[Comment]:
        return (
            self.db.query(Comment)
            .filter(Comment.post_id == post_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
            .all()
        )

    def list_recent_comments(self, post_ids: list[UUID], per_post: int) -> dict[UUID, list[Comment]]:
        """Latest ``per_post`` comments of each post, oldest first."""
        if not post_ids:
            return {}
        ranked = (
            self.db.query(
                Comment.id.label("comment_id"),
                func.row_number()
                .over(
                    partition_by=Comment.post_id,
                    order_by=[Comment.created_at.desc(), Comment.id.desc()],
                )
                .label("position"),
            )
            .filter(Comment.post_id.in_(set(post_ids)))
            .subquery()
        )
        comments = (
            self.db.query(Comment)
            .join(ranked, Comment.id == ranked.c.comment_id)
            .filter(ranked.c.position <= per_post)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
            .all()
        )
        grouped: dict[UUID, list[Comment]] = {}
        for comment in comments:
            grouped.setdefault(comment.post_id, []).append(comment)  # type: ignore[arg-type]
        return grouped

    def comment_counts(self, post_ids: list[UUID]) -> dict[UUID, int]:
        if not post_ids:
            return {}
        rows = (
            self.db.query(Comment.post_id, func.count(Comment.id))
            .filter(Comment.post_id.in_(set(post_ids)))
            .group_by(Comment.post_id)
            .all()
        )
        return {post_id: count for post_id, count in rows}

    # ── Likes ──

    def get_like(self, post_id: UUID, user_id: UUID) -> Like | None:
        return self.db.query(Like).filter(Like.post_id == post_id, Like.user_id == user_id).first()

    def add_like(self, post_id: UUID, user_id: UUID) -> Like:
        like = Like(post_id=post_id, user_id=user_id)
        self.db.add(like)
        self.db.commit()
        return like

    def remove_like(self, like: Like) -> None:
        self.db.delete(like)
        self.db.commit()

    def like_counts(self, post_ids: list[UUID]) -> dict[UUID, int]:
        if not post_ids:
            return {}
        rows = (
            self.db.query(Like.post_id, func.count(Like.id))
            .filter(Like.post_id.in_(set(post_ids)))
            .group_by(Like.post_id)
            .all()
        )
        return {post_id: count for post_id, count in rows}

    def liked_post_ids(self, post_ids: list[UUID], user_id: UUID) -> set[UUID]:
        if not post_ids:
            return set()
        rows = (
            self.db.query(Like.post_id)
            .filter(Like.post_id.in_(set(post_ids)), Like.user_id == user_id)
            .all()
        )
        return {row[0] for row in rows}
