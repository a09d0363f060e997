"""Per-event discussion channel with posts, comments and likes."""

from sqlalchemy import Column, ForeignKey, String, Text, UniqueConstraint

from volunteerhub.core.database import Base
from volunteerhub.models.shared import UTCDateTime, UUIDType, generate_uuid, utc_now


class CommunicationChannel(Base):
    __tablename__ = "communication_channels"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    event_id = Column(
        UUIDType,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)


class Post(Base):
    __tablename__ = "posts"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    channel_id = Column(
        UUIDType,
        ForeignKey("communication_channels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id = Column(
        UUIDType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content = Column(Text, nullable=False)
    image_url = Column(String(500), nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utc_now, index=True)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)


class Comment(Base):
    __tablename__ = "comments"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    post_id = Column(
        UUIDType, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id = Column(
        UUIDType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content = Column(Text, nullable=False)

    created_at = Column(UTCDateTime, nullable=False, default=utc_now)


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_likes_post_id_user_id"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    post_id = Column(
        UUIDType, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(
        UUIDType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
