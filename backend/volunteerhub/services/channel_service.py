"""Channel store: posts, comments and likes behind the membership gate."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from volunteerhub.core.errors import DomainError, ErrorKind
from volunteerhub.models.channel import Comment, CommunicationChannel, Post
from volunteerhub.models.event import Event, EventStatus
from volunteerhub.models.participation import ParticipationStatus
from volunteerhub.models.user import User
from volunteerhub.repositories.channel_repository import ChannelRepository, PostRepository
from volunteerhub.repositories.event_repository import EventRepository
from volunteerhub.repositories.participation_repository import ParticipationRepository
from volunteerhub.repositories.user_repository import UserRepository
from volunteerhub.schemas.channel import (
    ChannelResponse,
    CommentResponse,
    LikeToggleResponse,
    PostCreate,
    PostResponse,
)
from volunteerhub.schemas.event import EventSummary
from volunteerhub.schemas.user import UserSummary
from volunteerhub.services.blob_store import (
    BlobStore,
    check_media_reference,
    delete_quietly,
    is_owned_by,
)

logger = logging.getLogger(__name__)

ROLE_ORGANIZER = "organizer"
ROLE_PARTICIPANT = "participant"

RECENT_COMMENTS_PER_POST = 3

_MEMBER_STATUSES = {ParticipationStatus.APPROVED.value, ParticipationStatus.COMPLETED.value}


class ChannelService:
    def __init__(self, db: Session, blob_store: BlobStore | None = None):
        self.db = db
        self.blob_store = blob_store
        self.channel_repo = ChannelRepository(db)
        self.post_repo = PostRepository(db)
        self.event_repo = EventRepository(db)
        self.participation_repo = ParticipationRepository(db)
        self.user_repo = UserRepository(db)

    # ── Access gate ───────────────────────────────────────────────

    def role_in_event(self, event: Event, user: User) -> str | None:
        """``organizer``, ``participant`` or None when the user has no access."""
        if event.organizer_id == user.id:
            return ROLE_ORGANIZER
        participation = self.participation_repo.get_by_event_and_volunteer(
            event.id, user.id  # type: ignore[arg-type]
        )
        if participation is not None and participation.status in _MEMBER_STATUSES:
            return ROLE_PARTICIPANT
        return None

    def _authorize_channel(
        self, channel_id: UUID, user: User
    ) -> tuple[CommunicationChannel, Event, str]:
        channel = self.channel_repo.get_by_id(channel_id)
        if channel is None:
            raise DomainError(ErrorKind.CHANNEL_NOT_FOUND)
        event = self.event_repo.get_by_id(channel.event_id)  # type: ignore[arg-type]
        if event is None:
            raise DomainError(ErrorKind.CHANNEL_NOT_FOUND)
        role = self.role_in_event(event, user)
        if role is None:
            raise DomainError(ErrorKind.ACCESS_DENIED)
        return channel, event, role

    def _authorize_post(self, post_id: UUID, user: User) -> tuple[Post, Event, str]:
        post = self.post_repo.get_by_id(post_id)
        if post is None:
            raise DomainError(ErrorKind.POST_NOT_FOUND)
        _, event, role = self._authorize_channel(post.channel_id, user)  # type: ignore[arg-type]
        return post, event, role

    # ── Channels ──────────────────────────────────────────────────

    def _channel_response(
        self, channel: CommunicationChannel, event: Event, role: str
    ) -> ChannelResponse:
        return ChannelResponse(
            id=channel.id,  # type: ignore[arg-type]
            event=EventSummary.model_validate(event),
            role_in_event=role,
            post_count=self.post_repo.count_for_channel(channel.id),  # type: ignore[arg-type]
            created_at=channel.created_at,  # type: ignore[arg-type]
        )

    def get_channel(self, channel_id: UUID, user: User) -> ChannelResponse:
        channel, event, role = self._authorize_channel(channel_id, user)
        return self._channel_response(channel, event, role)

    def get_channel_by_event(self, event_id: UUID, user: User) -> ChannelResponse:
        event = self.event_repo.get_by_id(event_id)
        if event is None:
            raise DomainError(ErrorKind.EVENT_NOT_FOUND)
        if event.status != EventStatus.APPROVED.value:
            raise DomainError(ErrorKind.EVENT_NOT_APPROVED)
        channel = self.channel_repo.get_by_event_id(event_id)
        if channel is None:
            raise DomainError(ErrorKind.CHANNEL_NOT_CREATED)
        role = self.role_in_event(event, user)
        if role is None:
            raise DomainError(ErrorKind.ACCESS_DENIED)
        return self._channel_response(channel, event, role)

    # ── Posts ─────────────────────────────────────────────────────

    def _comment_responses(self, comments: list[Comment]) -> list[CommentResponse]:
        authors = self.user_repo.get_by_ids([c.author_id for c in comments])
        return [
            CommentResponse(
                id=c.id,  # type: ignore[arg-type]
                post_id=c.post_id,  # type: ignore[arg-type]
                content=c.content,  # type: ignore[arg-type]
                author=UserSummary.model_validate(authors[c.author_id]),  # type: ignore[index]
                created_at=c.created_at,  # type: ignore[arg-type]
            )
            for c in comments
        ]

    def build_posts(self, posts: list[Post], event: Event, user: User) -> list[PostResponse]:
        post_ids = [p.id for p in posts]
        authors = self.user_repo.get_by_ids([p.author_id for p in posts])
        like_counts = self.post_repo.like_counts(post_ids)  # type: ignore[arg-type]
        comment_counts = self.post_repo.comment_counts(post_ids)  # type: ignore[arg-type]
        liked = self.post_repo.liked_post_ids(post_ids, user.id)  # type: ignore[arg-type]
        recent = self.post_repo.list_recent_comments(post_ids, RECENT_COMMENTS_PER_POST)  # type: ignore[arg-type]
        is_organizer = event.organizer_id == user.id

        return [
            PostResponse(
                id=post.id,  # type: ignore[arg-type]
                channel_id=post.channel_id,  # type: ignore[arg-type]
                content=post.content,  # type: ignore[arg-type]
                image_url=post.image_url,  # type: ignore[arg-type]
                author=UserSummary.model_validate(authors[post.author_id]),  # type: ignore[index]
                like_count=like_counts.get(post.id, 0),  # type: ignore[call-overload]
                comment_count=comment_counts.get(post.id, 0),  # type: ignore[call-overload]
                is_liked_by_user=post.id in liked,
                can_edit=is_organizer or post.author_id == user.id,
                recent_comments=self._comment_responses(recent.get(post.id, [])),  # type: ignore[call-overload]
                created_at=post.created_at,  # type: ignore[arg-type]
                updated_at=post.updated_at,  # type: ignore[arg-type]
            )
            for post in posts
        ]

    def list_posts(
        self, channel_id: UUID, user: User, page: int = 1, limit: int = 20
    ) -> tuple[list[PostResponse], int]:
        channel, event, _ = self._authorize_channel(channel_id, user)
        posts = self.post_repo.list_for_channel(
            channel.id, skip=(page - 1) * limit, limit=limit  # type: ignore[arg-type]
        )
        total = self.post_repo.count_for_channel(channel.id)  # type: ignore[arg-type]
        return self.build_posts(posts, event, user), total

    def create_post(self, channel_id: UUID, user: User, data: PostCreate) -> PostResponse:
        channel, event, _ = self._authorize_channel(channel_id, user)
        check_media_reference(data.image_url, user.id)  # type: ignore[arg-type]
        post = self.post_repo.create(
            channel.id, user.id, data.content.strip(), image_url=data.image_url  # type: ignore[arg-type]
        )
        logger.info("User %s posted %s in channel %s", user.id, post.id, channel.id)
        return self.build_posts([post], event, user)[0]

    def delete_post(self, post_id: UUID, user: User) -> None:
        """Only the author or the event's organizer may delete a post.

        The attached image is removed after the row is gone; a failing
        blob delete does not undo the post deletion.
        """
        post, event, _ = self._authorize_post(post_id, user)
        if post.author_id != user.id and event.organizer_id != user.id:
            raise DomainError(ErrorKind.DELETE_PERMISSION_DENIED)

        image_url = post.image_url
        author_id = post.author_id
        self.post_repo.delete(post)
        logger.info("User %s deleted post %s", user.id, post_id)

        # Only the author's own upload is removed, never a blob it merely links to.
        if (
            image_url
            and self.blob_store is not None
            and is_owned_by(str(image_url), author_id)  # type: ignore[arg-type]
        ):
            delete_quietly(self.blob_store, str(image_url))

    # ── Likes & comments ──────────────────────────────────────────

    def toggle_like(self, post_id: UUID, user: User) -> LikeToggleResponse:
        post, _, _ = self._authorize_post(post_id, user)
        existing = self.post_repo.get_like(post.id, user.id)  # type: ignore[arg-type]
        if existing is not None:
            self.post_repo.remove_like(existing)
            is_liked = False
        else:
            try:
                self.post_repo.add_like(post.id, user.id)  # type: ignore[arg-type]
            except IntegrityError:
                # A concurrent toggle already stored this like.
                self.db.rollback()
            is_liked = True

        like_count = self.post_repo.like_counts([post.id]).get(post.id, 0)  # type: ignore[list-item, call-overload]
        return LikeToggleResponse(post_id=post.id, is_liked=is_liked, like_count=like_count)  # type: ignore[arg-type]

    def add_comment(self, post_id: UUID, user: User, content: str) -> CommentResponse:
        post, _, _ = self._authorize_post(post_id, user)
        comment = self.post_repo.add_comment(post.id, user.id, content.strip())  # type: ignore[arg-type]
        return self._comment_responses([comment])[0]

    def list_comments(self, post_id: UUID, user: User) -> list[CommentResponse]:
        post, _, _ = self._authorize_post(post_id, user)
        return self._comment_responses(self.post_repo.list_comments(post.id))  # type: ignore[arg-type]
