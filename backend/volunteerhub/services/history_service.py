"""Volunteer history aggregation.

Everything here is derived on read from the participation ledger; there
is no write path. Results may be memoized per volunteer for a short TTL.
"""

from __future__ import annotations

import math
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from volunteerhub.core.config import settings
from volunteerhub.models.event import Event, EventStatus
from volunteerhub.models.participation import Participation, ParticipationStatus
from volunteerhub.models.shared import utc_now
from volunteerhub.repositories.participation_repository import ParticipationRepository
from volunteerhub.schemas.event import EventSummary
from volunteerhub.schemas.history import (
    Achievement,
    HistoryItem,
    HistoryResponse,
    HistoryStats,
)

STREAK_WINDOW = timedelta(days=30)


@dataclass(frozen=True)
class AchievementRule:
    id: str
    title: str
    description: str
    min_events: int = 0
    min_hours: int = 0
    min_categories: int = 0


ACHIEVEMENT_RULES = (
    AchievementRule("first_volunteer", "First steps", "Completed a first volunteer event", min_events=1),
    AchievementRule("committed_volunteer", "Committed volunteer", "Completed 5 events", min_events=5),
    AchievementRule("dedicated_volunteer", "Dedicated volunteer", "Completed 10 events", min_events=10),
    AchievementRule("veteran_volunteer", "Veteran volunteer", "Completed 25 events", min_events=25),
    AchievementRule("ten_hours", "10 hours given", "Volunteered for 10 hours", min_hours=10),
    AchievementRule("fifty_hours", "50 hours given", "Volunteered for 50 hours", min_hours=50),
    AchievementRule("hundred_hours", "100 hours given", "Volunteered for 100 hours", min_hours=100),
    AchievementRule(
        "diverse_volunteer",
        "Diverse volunteer",
        "Took part in at least 3 different categories",
        min_categories=3,
    ),
)


def event_hours(event: Event) -> int:
    """Duration of the event rounded up to whole hours."""
    seconds = (event.end_date - event.start_date).total_seconds()
    return max(math.ceil(seconds / 3600), 0)


def counts_as_completed(participation: Participation, event: Event, now: datetime) -> bool:
    if participation.status == ParticipationStatus.COMPLETED.value:
        return True
    return participation.status == ParticipationStatus.APPROVED.value and event.has_ended(now)


def participation_streak(end_dates: list[datetime], window: timedelta = STREAK_WINDOW) -> int:
    """Count completed events walking back from the most recent one while
    consecutive events end no more than ``window`` apart."""
    if not end_dates:
        return 0
    ordered = sorted(end_dates, reverse=True)
    streak = 1
    for newer, older in zip(ordered, ordered[1:]):
        if newer - older > window:
            break
        streak += 1
    return streak


def average_rating(ratings: list[int]) -> float:
    if not ratings:
        return 0.0
    return round(sum(ratings) / len(ratings), 1)


def favorite_category(categories: list[str]) -> str | None:
    if not categories:
        return None
    return Counter(categories).most_common(1)[0][0]


def earned_achievements(event_count: int, total_hours: int, category_count: int) -> list[Achievement]:
    return [
        Achievement(id=rule.id, title=rule.title, description=rule.description)
        for rule in ACHIEVEMENT_RULES
        if event_count >= rule.min_events
        and total_hours >= rule.min_hours
        and category_count >= rule.min_categories
    ]


def _format_item(participation: Participation, event: Event) -> HistoryItem:
    return HistoryItem(
        participation_id=participation.id,  # type: ignore[arg-type]
        status=str(participation.status),
        registered_at=participation.registered_at,  # type: ignore[arg-type]
        completed_at=participation.completed_at,  # type: ignore[arg-type]
        rating=participation.rating,  # type: ignore[arg-type]
        feedback=participation.feedback,  # type: ignore[arg-type]
        event=EventSummary.model_validate(event),
        duration_hours=event_hours(event),
        can_rate=(
            participation.status == ParticipationStatus.COMPLETED.value
            and participation.rating is None
        ),
    )


def build_history(rows: list[tuple[Participation, Event]], now: datetime) -> HistoryResponse:
    completed = [(p, e) for p, e in rows if counts_as_completed(p, e, now)]
    upcoming = [
        (p, e)
        for p, e in rows
        if p.status == ParticipationStatus.APPROVED.value
        and not e.has_ended(now)
        and e.status == EventStatus.APPROVED.value
    ]
    pending = [(p, e) for p, e in rows if p.status == ParticipationStatus.PENDING.value]
    rejected = [(p, e) for p, e in rows if p.status == ParticipationStatus.REJECTED.value]
    non_rejected = len(rows) - len(rejected)

    total_hours = sum(event_hours(e) for _, e in completed)
    categories = [str(e.category) for _, e in completed]
    distinct_categories = sorted(set(categories))
    ratings = [int(p.rating) for p, _ in completed if p.rating is not None]  # type: ignore[arg-type]

    stats = HistoryStats(
        total_events=len(rows),
        completed_events=len(completed),
        total_hours=total_hours,
        completion_rate=round(len(completed) / non_rejected * 100) if non_rejected else 0,
        average_rating=average_rating(ratings),
        favorite_category=favorite_category(categories),
        streak=participation_streak([e.end_date for _, e in completed]),  # type: ignore[misc]
        categories=distinct_categories,
    )
    return HistoryResponse(
        stats=stats,
        achievements=earned_achievements(len(completed), total_hours, len(distinct_categories)),
        upcoming=[_format_item(p, e) for p, e in upcoming],
        completed=[_format_item(p, e) for p, e in completed],
        pending=[_format_item(p, e) for p, e in pending],
        rejected=[_format_item(p, e) for p, e in rejected],
    )


# volunteer_id -> (expires_at, response)
_history_cache: dict[UUID, tuple[float, HistoryResponse]] = {}


def invalidate_history(volunteer_id: UUID) -> None:
    _history_cache.pop(volunteer_id, None)


def clear_history_cache() -> None:
    _history_cache.clear()


class HistoryService:
    def __init__(self, db: Session, cache_ttl: int | None = None):
        self.db = db
        self.repo = ParticipationRepository(db)
        self.cache_ttl = settings.HISTORY_CACHE_TTL_SECONDS if cache_ttl is None else cache_ttl

    def get_history(self, volunteer_id: UUID, now: datetime | None = None) -> HistoryResponse:
        if self.cache_ttl > 0:
            cached = _history_cache.get(volunteer_id)
            if cached is not None and cached[0] > time.monotonic():
                return cached[1]

        rows = self.repo.list_for_volunteer_with_events(volunteer_id)
        history = build_history(rows, now or utc_now())

        if self.cache_ttl > 0:
            _history_cache[volunteer_id] = (time.monotonic() + self.cache_ttl, history)
        return history
