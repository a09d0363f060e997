"""Web Push delivery to stored browser subscriptions."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Protocol

from pywebpush import WebPushException, webpush

from volunteerhub.core.config import settings

logger = logging.getLogger(__name__)

GONE_STATUS_CODES = frozenset({404, 410})


class PushResult(str, Enum):
    OK = "ok"
    # The endpoint no longer exists; the subscription should be deleted.
    GONE = "gone"
    ERROR = "error"


class PushProvider(Protocol):
    def send(
        self,
        subscription_info: dict[str, Any],
        payload: dict[str, Any],
        ttl: int,
        urgency: str = "normal",
    ) -> PushResult: ...


class WebPushProvider:
    def __init__(
        self,
        private_key: str | None = None,
        subject: str | None = None,
        timeout: float | None = None,
    ):
        self.private_key = private_key or settings.VAPID_PRIVATE_KEY
        self.subject = subject or settings.VAPID_SUBJECT
        self.timeout = timeout or settings.PUSH_TIMEOUT_SECONDS

    def send(
        self,
        subscription_info: dict[str, Any],
        payload: dict[str, Any],
        ttl: int,
        urgency: str = "normal",
    ) -> PushResult:
        try:
            webpush(
                subscription_info=subscription_info,
                data=json.dumps(payload, default=str),
                vapid_private_key=self.private_key,
                # webpush mutates the claims dict, so build a fresh one per call
                vapid_claims={"sub": self.subject},
                ttl=ttl,
                timeout=self.timeout,
                headers={"Urgency": urgency},
            )
        except WebPushException as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            if status_code in GONE_STATUS_CODES:
                return PushResult.GONE
            logger.warning(
                "Push delivery to %s failed with status %s: %s",
                subscription_info.get("endpoint"),
                status_code,
                exc,
            )
            return PushResult.ERROR
        except Exception:
            logger.exception("Push delivery to %s failed", subscription_info.get("endpoint"))
            return PushResult.ERROR
        return PushResult.OK


class DisabledPushProvider:
    """Used when push is switched off or no VAPID key is configured."""

    def send(
        self,
        subscription_info: dict[str, Any],
        payload: dict[str, Any],
        ttl: int,
        urgency: str = "normal",
    ) -> PushResult:
        return PushResult.ERROR


_push_provider: PushProvider | None = None


def get_push_provider() -> PushProvider:
    global _push_provider
    if _push_provider is None:
        if settings.push_configured:
            _push_provider = WebPushProvider()
        else:
            logger.info("Push delivery disabled; notifications are live and in-app only")
            _push_provider = DisabledPushProvider()
    return _push_provider
