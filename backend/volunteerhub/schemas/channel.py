"""Channel, post and comment schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from volunteerhub.schemas.common import Pagination
from volunteerhub.schemas.event import EventSummary
from volunteerhub.schemas.user import UserSummary


class ChannelResponse(BaseModel):
    id: UUID
    event: EventSummary
    role_in_event: str
    post_count: int
    created_at: datetime


class PostCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)
    image_url: str | None = Field(default=None, max_length=500)


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=500)


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    post_id: UUID
    content: str
    author: UserSummary
    created_at: datetime


class PostResponse(BaseModel):
    id: UUID
    channel_id: UUID
    content: str
    image_url: str | None = None
    author: UserSummary
    like_count: int
    comment_count: int
    is_liked_by_user: bool
    can_edit: bool
    recent_comments: list[CommentResponse] = []
    created_at: datetime
    updated_at: datetime


class PostListResponse(BaseModel):
    posts: list[PostResponse]
    pagination: Pagination


class LikeToggleResponse(BaseModel):
    post_id: UUID
    is_liked: bool
    like_count: int
