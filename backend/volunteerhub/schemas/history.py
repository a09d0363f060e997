"""Volunteer participation history and statistics schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from volunteerhub.schemas.event import EventSummary


class Achievement(BaseModel):
    id: str
    title: str
    description: str


class HistoryStats(BaseModel):
    total_events: int
    completed_events: int
    total_hours: int
    completion_rate: int
    average_rating: float
    favorite_category: str | None = None
    streak: int
    categories: list[str]


class HistoryItem(BaseModel):
    participation_id: UUID
    status: str
    registered_at: datetime
    completed_at: datetime | None = None
    rating: int | None = None
    feedback: str | None = None
    event: EventSummary
    duration_hours: int
    can_rate: bool


class HistoryResponse(BaseModel):
    stats: HistoryStats
    achievements: list[Achievement]
    upcoming: list[HistoryItem]
    completed: list[HistoryItem]
    pending: list[HistoryItem]
    rejected: list[HistoryItem]
