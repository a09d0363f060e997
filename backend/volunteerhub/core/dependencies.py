"""FastAPI providers for services that take injected collaborators."""

from fastapi import Depends
from sqlalchemy.orm import Session

from volunteerhub.core.database import get_db
from volunteerhub.services.blob_store import BlobStore, get_blob_store
from volunteerhub.services.channel_service import ChannelService
from volunteerhub.services.event_service import EventService
from volunteerhub.services.live_bus import LiveBus, get_live_bus
from volunteerhub.services.notification_dispatcher import NotificationDispatcher
from volunteerhub.services.participation_service import ParticipationService
from volunteerhub.services.push_delivery import PushScheduler, get_push_scheduler
from volunteerhub.services.push_provider import PushProvider, get_push_provider


def get_notification_dispatcher(
    db: Session = Depends(get_db),
    live_bus: LiveBus = Depends(get_live_bus),
    push_provider: PushProvider = Depends(get_push_provider),
    push_scheduler: PushScheduler = Depends(get_push_scheduler),
) -> NotificationDispatcher:
    return NotificationDispatcher(db, live_bus, push_provider, push_scheduler=push_scheduler)


def get_event_service(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> EventService:
    return EventService(db, dispatcher)


def get_participation_service(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> ParticipationService:
    return ParticipationService(db, dispatcher)


def get_channel_service(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> ChannelService:
    return ChannelService(db, blob_store)
