"""Event channel endpoints: posts, likes and comments."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from volunteerhub.core.auth import get_current_user
from volunteerhub.core.dependencies import get_channel_service
from volunteerhub.models.user import User
from volunteerhub.schemas.channel import (
    ChannelResponse,
    CommentCreate,
    CommentResponse,
    LikeToggleResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
)
from volunteerhub.schemas.common import Pagination
from volunteerhub.services.channel_service import ChannelService

router = APIRouter()

_ACCESS_RESPONSES = {
    401: {"description": "Not authenticated"},
    403: {"description": "Not a member of this channel"},
}


@router.get(
    "/by-event/{event_id}",
    response_model=ChannelResponse,
    summary="Get the channel of an event",
    responses={
        **_ACCESS_RESPONSES,
        400: {"description": "Event not approved"},
        404: {"description": "Event or channel not found"},
    },
)
async def get_channel_by_event(
    event_id: UUID,
    user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
) -> ChannelResponse:
    return service.get_channel_by_event(event_id, user)


@router.get(
    "/{channel_id}",
    response_model=ChannelResponse,
    summary="Get a channel",
    responses={**_ACCESS_RESPONSES, 404: {"description": "Channel not found"}},
)
async def get_channel(
    channel_id: UUID,
    user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
) -> ChannelResponse:
    return service.get_channel(channel_id, user)


@router.get(
    "/{channel_id}/posts",
    response_model=PostListResponse,
    summary="List channel posts",
    responses={**_ACCESS_RESPONSES, 404: {"description": "Channel not found"}},
)
async def list_posts(
    channel_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
) -> PostListResponse:
    """Newest first, each with its latest comments."""
    posts, total = service.list_posts(channel_id, user, page=page, limit=limit)
    return PostListResponse(posts=posts, pagination=Pagination.build(page, limit, total))


@router.post(
    "/{channel_id}/posts",
    response_model=PostResponse,
    status_code=201,
    summary="Create a post",
    responses={**_ACCESS_RESPONSES, 404: {"description": "Channel not found"}},
)
async def create_post(
    channel_id: UUID,
    data: PostCreate,
    user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
) -> PostResponse:
    return service.create_post(channel_id, user, data)


@router.delete(
    "/posts/{post_id}",
    status_code=204,
    summary="Delete a post",
    responses={**_ACCESS_RESPONSES, 404: {"description": "Post not found"}},
)
async def delete_post(
    post_id: UUID,
    user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
) -> None:
    service.delete_post(post_id, user)


@router.post(
    "/posts/{post_id}/like",
    response_model=LikeToggleResponse,
    summary="Like or unlike a post",
    responses={**_ACCESS_RESPONSES, 404: {"description": "Post not found"}},
)
async def toggle_like(
    post_id: UUID,
    user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
) -> LikeToggleResponse:
    return service.toggle_like(post_id, user)


@router.get(
    "/posts/{post_id}/comments",
    response_model=list[CommentResponse],
    summary="List comments of a post",
    responses={**_ACCESS_RESPONSES, 404: {"description": "Post not found"}},
)
async def list_comments(
    post_id: UUID,
    user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
) -> list[CommentResponse]:
    return service.list_comments(post_id, user)


@router.post(
    "/posts/{post_id}/comments",
    response_model=CommentResponse,
    status_code=201,
    summary="Comment on a post",
    responses={**_ACCESS_RESPONSES, 404: {"description": "Post not found"}},
)
async def add_comment(
    post_id: UUID,
    data: CommentCreate,
    user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
) -> CommentResponse:
    return service.add_comment(post_id, user, data.content)
