"""Mark approved participations of ended events as completed.

Completion is an organizer decision, so nothing schedules this. It is a
one-off backfill for operators closing out events whose organizer never
marked anyone. Pass event IDs to limit it; no notifications are sent.

Usage: python -m scripts.complete_ended_participations [EVENT_ID ...]
"""

import logging
import sys
from uuid import UUID

from volunteerhub.core import database as db_module
from volunteerhub.models.shared import utc_now
from volunteerhub.repositories.participation_repository import ParticipationRepository
from volunteerhub.services.history_service import clear_history_cache

logger = logging.getLogger(__name__)


def complete_ended_participations(event_ids: list[UUID] | None = None) -> int:
    """Complete every APPROVED row of an ended event, optionally only for some events."""
    db = db_module.SessionLocal()
    try:
        count = ParticipationRepository(db).complete_ended(utc_now(), event_ids=event_ids)
    finally:
        db.close()
    clear_history_cache()
    logger.info("Completed %d participations of ended events", count)
    return count


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    ids = [UUID(arg) for arg in sys.argv[1:]]
    print(complete_ended_participations(ids or None))
