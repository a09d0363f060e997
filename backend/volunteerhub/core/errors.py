"""Domain error taxonomy and its mapping to HTTP responses."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    # Identity
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"
    EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    CANNOT_MODIFY_SELF = "CANNOT_MODIFY_SELF"

    # Event registry
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENT_ALREADY_PROCESSED = "EVENT_ALREADY_PROCESSED"
    START_DATE_MUST_BE_FUTURE = "START_DATE_MUST_BE_FUTURE"
    END_DATE_MUST_BE_AFTER_START = "END_DATE_MUST_BE_AFTER_START"
    INVALID_EVENT_IDS = "INVALID_EVENT_IDS"
    REJECTION_REASON_REQUIRED = "REJECTION_REASON_REQUIRED"
    NO_PENDING_EVENTS = "NO_PENDING_EVENTS"

    # Participation ledger
    EVENT_NOT_APPROVED = "EVENT_NOT_APPROVED"
    EVENT_FULL = "EVENT_FULL"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    NOT_YOUR_REGISTRATION = "NOT_YOUR_REGISTRATION"
    EVENT_ALREADY_STARTED = "EVENT_ALREADY_STARTED"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"
    NOT_EVENT_ORGANIZER = "NOT_EVENT_ORGANIZER"
    EVENT_NOT_ENDED = "EVENT_NOT_ENDED"
    SOME_EVENTS_NOT_ENDED = "SOME_EVENTS_NOT_ENDED"
    PARTICIPANT_NOT_APPROVED = "PARTICIPANT_NOT_APPROVED"
    SOME_PARTICIPANTS_NOT_FOUND_OR_NOT_AUTHORIZED = "SOME_PARTICIPANTS_NOT_FOUND_OR_NOT_AUTHORIZED"
    INVALID_RATING = "INVALID_RATING"
    PARTICIPATION_NOT_FOUND = "PARTICIPATION_NOT_FOUND"
    PARTICIPATION_NOT_COMPLETED = "PARTICIPATION_NOT_COMPLETED"
    ALREADY_RATED = "ALREADY_RATED"

    # Channel store
    CHANNEL_NOT_FOUND = "CHANNEL_NOT_FOUND"
    CHANNEL_NOT_CREATED = "CHANNEL_NOT_CREATED"
    POST_NOT_FOUND = "POST_NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    DELETE_PERMISSION_DENIED = "DELETE_PERMISSION_DENIED"

    # Notifications
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_SUBSCRIPTION = "INVALID_SUBSCRIPTION"

    # Uploads
    INVALID_FILE = "INVALID_FILE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_MEDIA_REFERENCE = "INVALID_MEDIA_REFERENCE"


_NOT_FOUND = {
    ErrorKind.USER_NOT_FOUND,
    ErrorKind.EVENT_NOT_FOUND,
    ErrorKind.REGISTRATION_NOT_FOUND,
    ErrorKind.PARTICIPANT_NOT_FOUND,
    ErrorKind.PARTICIPATION_NOT_FOUND,
    ErrorKind.CHANNEL_NOT_FOUND,
    ErrorKind.CHANNEL_NOT_CREATED,
    ErrorKind.POST_NOT_FOUND,
    ErrorKind.NOTIFICATION_NOT_FOUND,
}

_UNAUTHENTICATED = {
    ErrorKind.NOT_AUTHENTICATED,
    ErrorKind.TOKEN_EXPIRED,
    ErrorKind.INVALID_TOKEN,
    ErrorKind.INVALID_REFRESH_TOKEN,
    ErrorKind.INVALID_CREDENTIALS,
}

_FORBIDDEN = {
    ErrorKind.ACCOUNT_LOCKED,
    ErrorKind.INSUFFICIENT_ROLE,
    ErrorKind.CANNOT_MODIFY_SELF,
    ErrorKind.NOT_YOUR_REGISTRATION,
    ErrorKind.NOT_EVENT_ORGANIZER,
    ErrorKind.SOME_PARTICIPANTS_NOT_FOUND_OR_NOT_AUTHORIZED,
    ErrorKind.ACCESS_DENIED,
    ErrorKind.DELETE_PERMISSION_DENIED,
    ErrorKind.UNAUTHORIZED,
}

# Authorization failures share one message so they never reveal whether
# the target resource exists.
_GENERIC_FORBIDDEN_MESSAGE = "Access denied"

MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NOT_AUTHENTICATED: "Authentication credentials were not provided",
    ErrorKind.TOKEN_EXPIRED: "Session has expired, please sign in again",
    ErrorKind.INVALID_TOKEN: "Invalid session credential",
    ErrorKind.INVALID_REFRESH_TOKEN: "Invalid or expired refresh token",
    ErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    ErrorKind.ACCOUNT_LOCKED: "This account has been deactivated",
    ErrorKind.EMAIL_ALREADY_EXISTS: "An account with this email already exists",
    ErrorKind.USER_NOT_FOUND: "User not found",
    ErrorKind.EVENT_NOT_FOUND: "Event not found",
    ErrorKind.EVENT_ALREADY_PROCESSED: "Event has already been approved or rejected",
    ErrorKind.START_DATE_MUST_BE_FUTURE: "Event start must be in the future",
    ErrorKind.END_DATE_MUST_BE_AFTER_START: "Event end must be after its start",
    ErrorKind.INVALID_EVENT_IDS: "A non-empty list of event ids is required",
    ErrorKind.REJECTION_REASON_REQUIRED: "A rejection reason is required",
    ErrorKind.NO_PENDING_EVENTS: "None of the selected events are pending",
    ErrorKind.EVENT_NOT_APPROVED: "Event is not open for registration",
    ErrorKind.EVENT_FULL: "Event has reached its capacity",
    ErrorKind.ALREADY_REGISTERED: "You are already registered for this event",
    ErrorKind.REGISTRATION_NOT_FOUND: "Registration not found",
    ErrorKind.EVENT_ALREADY_STARTED: "Event has already started",
    ErrorKind.PARTICIPANT_NOT_FOUND: "Participant not found",
    ErrorKind.EVENT_NOT_ENDED: "Event has not ended yet",
    ErrorKind.SOME_EVENTS_NOT_ENDED: "Some of the events have not ended yet",
    ErrorKind.PARTICIPANT_NOT_APPROVED: "Participant must be approved first",
    ErrorKind.INVALID_RATING: "Rating must be an integer between 1 and 5",
    ErrorKind.PARTICIPATION_NOT_FOUND: "Participation not found",
    ErrorKind.PARTICIPATION_NOT_COMPLETED: "Only completed participations can be rated",
    ErrorKind.ALREADY_RATED: "You have already rated this event",
    ErrorKind.CHANNEL_NOT_FOUND: "Channel not found",
    ErrorKind.CHANNEL_NOT_CREATED: "Channel has not been created for this event",
    ErrorKind.POST_NOT_FOUND: "Post not found",
    ErrorKind.NOTIFICATION_NOT_FOUND: "Notification not found",
    ErrorKind.INVALID_SUBSCRIPTION: "Push subscription is missing its endpoint or keys",
    ErrorKind.INVALID_FILE: "Unsupported file type",
    ErrorKind.FILE_TOO_LARGE: "File exceeds the maximum upload size",
    ErrorKind.INVALID_MEDIA_REFERENCE: "Image must be one of your own uploads or an http(s) URL",
}


def status_code_for(kind: ErrorKind) -> int:
    if kind in _NOT_FOUND:
        return 404
    if kind in _UNAUTHENTICATED:
        return 401
    if kind in _FORBIDDEN:
        return 403
    return 400


class DomainError(Exception):
    """A business-rule violation identified by its ``kind``."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.kind = kind
        self.message = message or MESSAGES.get(kind, kind.value)
        self.details = details
        super().__init__(f"{kind.value}: {self.message}")

    @property
    def status_code(self) -> int:
        return status_code_for(self.kind)

    def to_response_body(self) -> dict[str, Any]:
        message = self.message
        if self.status_code == 403:
            message = _GENERIC_FORBIDDEN_MESSAGE
        body: dict[str, Any] = {"error_code": self.kind.value, "message": message}
        if self.details:
            body["details"] = self.details
        return body


async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, DomainError)
    return JSONResponse(status_code=exc.status_code, content=exc.to_response_body())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error_code": "INTERNAL_ERROR", "message": "Internal server error"},
    )
