from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from volunteerhub.core.config import settings
from volunteerhub.core.errors import DomainError, domain_error_handler, unhandled_error_handler
from volunteerhub.routers import (
    admin,
    auth,
    channels,
    events,
    history,
    notifications,
    registrations,
    uploads,
)

OPENAPI_TAGS = [
    {"name": "Auth", "description": "Sign-up, sign-in, credential refresh and profile."},
    {"name": "Events", "description": "Browse, create and review volunteer events."},
    {"name": "Registrations", "description": "Volunteer registrations and roster decisions."},
    {"name": "Channels", "description": "Per-event discussion: posts, comments and likes."},
    {"name": "Notifications", "description": "Notification history, live stream and push."},
    {"name": "History", "description": "Volunteer participation history and achievements."},
    {"name": "Admin", "description": "Dashboard, event approval and user management."},
    {"name": "Uploads", "description": "Image uploads for events, channels and avatars."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Volunteer event platform API. "
        "Organizers publish events, admins approve them, volunteers register, "
        "take part, rate events and talk in per-event channels."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(DomainError, domain_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)


@app.middleware("http")
async def options_handler(request: Request, call_next):  # type: ignore[no-untyped-def]
    if request.method == "OPTIONS":
        origin = request.headers.get("origin", "*")
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": origin,
                "Access-Control-Allow-Methods": "*",
                "Access-Control-Allow-Headers": "*",
                "Access-Control-Allow-Credentials": "true",
                "Access-Control-Max-Age": "86400",
            },
        )
    return await call_next(request)


app.include_router(auth.router, prefix="/v1/auth", tags=["Auth"])
app.include_router(events.router, prefix="/v1/events", tags=["Events"])
app.include_router(
    registrations.router,
    prefix="/v1/registrations",
    tags=["Registrations"],
)
app.include_router(channels.router, prefix="/v1/channels", tags=["Channels"])
app.include_router(
    notifications.router,
    prefix="/v1/notifications",
    tags=["Notifications"],
)
app.include_router(history.router, prefix="/v1/history", tags=["History"])
app.include_router(admin.router, prefix="/v1/admin", tags=["Admin"])
app.include_router(uploads.router, prefix="/v1/uploads", tags=["Uploads"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }
