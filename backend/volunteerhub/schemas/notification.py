"""Pydantic schemas for notifications and push subscriptions."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from volunteerhub.schemas.common import Pagination


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    title: str
    body: str
    data: dict[str, Any]
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class NotificationPage(BaseModel):
    notifications: list[NotificationResponse]
    pagination: Pagination
    unread_count: int


class NotificationCountResponse(BaseModel):
    unread_count: int


class PushKeys(BaseModel):
    p256dh: str = Field(min_length=1, max_length=255)
    auth: str = Field(min_length=1, max_length=255)


class PushSubscriptionCreate(BaseModel):
    endpoint: str = Field(min_length=1, max_length=1000)
    keys: PushKeys
    user_agent: str | None = None


class PushUnsubscribeRequest(BaseModel):
    endpoint: str = Field(min_length=1, max_length=1000)


class PushSubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    endpoint: str
    user_agent: str | None = None
    created_at: datetime


class PushStatusResponse(BaseModel):
    has_valid_subscriptions: bool
    subscription_count: int


class VapidKeyResponse(BaseModel):
    public_key: str
