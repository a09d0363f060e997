from volunteerhub.repositories.channel_repository import ChannelRepository, PostRepository
from volunteerhub.repositories.event_repository import EventRepository
from volunteerhub.repositories.notification_log_repository import NotificationLogRepository
from volunteerhub.repositories.participation_repository import ParticipationRepository
from volunteerhub.repositories.push_subscription_repository import PushSubscriptionRepository
from volunteerhub.repositories.refresh_token_repository import RefreshTokenRepository
from volunteerhub.repositories.user_repository import UserRepository

__all__ = [
    "ChannelRepository",
    "EventRepository",
    "NotificationLogRepository",
    "ParticipationRepository",
    "PostRepository",
    "PushSubscriptionRepository",
    "RefreshTokenRepository",
    "UserRepository",
]
