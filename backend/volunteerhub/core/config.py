from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "VolunteerHub"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    APP_DOMAIN: str = "example.com"
    APP_DATA_PATH: str = "/tmp"
    APP_DATABASE_DSN: str = "sqlite:////tmp/volunteerhub.db"
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Session credentials
    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Live delivery
    LIVE_BUS_BACKEND: str = "redis"  # "redis" or "memory"
    SSE_HEARTBEAT_SECONDS: float = 15.0

    # Web Push
    PUSH_ENABLED: bool = True
    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_SUBJECT: str = "mailto:admin@example.com"
    PUSH_TTL_SECONDS: int = 86400
    PUSH_TIMEOUT_SECONDS: float = 10.0
    PUSH_DELIVERY_BACKEND: str = "worker"  # "worker" (arq) or "background" (API threadpool)

    # Notification retention (worker cleanup)
    NOTIFICATION_READ_RETENTION_DAYS: int = 30
    NOTIFICATION_RETENTION_DAYS: int = 90

    # Uploads
    UPLOAD_MAX_BYTES: int = 5 * 1024 * 1024
    UPLOAD_ALLOWED_CONTENT_TYPES: str = "image/jpeg,image/png,image/gif,image/webp"

    # Volunteer history memoization, 0 disables
    HISTORY_CACHE_TTL_SECONDS: int = 0

    @property
    def version(self) -> str:
        return self.APP_VERSION

    @property
    def push_configured(self) -> bool:
        return self.PUSH_ENABLED and bool(self.VAPID_PRIVATE_KEY)

    @property
    def allowed_upload_types(self) -> set[str]:
        return {t.strip() for t in self.UPLOAD_ALLOWED_CONTENT_TYPES.split(",") if t.strip()}


settings = Settings()
