"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with STREAMHUB_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).

Learn: the hub itself never reads `settings` directly. The app's lifespan
builds an EventHub from these values and hands it to the routes, so tests
can construct as many isolated hubs as they like.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via STREAMHUB_* env vars."""

    # Auth
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Hub
    queue_capacity: int = 100  # per-connection outbound buffer
    heartbeat_interval_seconds: float = 30.0
    max_connections_per_subscriber: int = 0  # 0 = unbounded

    model_config = {"env_prefix": "STREAMHUB_"}

    @model_validator(mode="after")
    def validate_settings(self):
        """Reject hub values that can't work and insecure production defaults."""
        if self.queue_capacity <= 0:
            raise ValueError("STREAMHUB_QUEUE_CAPACITY must be positive")
        if self.heartbeat_interval_seconds <= 0:
            raise ValueError("STREAMHUB_HEARTBEAT_INTERVAL_SECONDS must be positive")
        if self.max_connections_per_subscriber < 0:
            raise ValueError("STREAMHUB_MAX_CONNECTIONS_PER_SUBSCRIBER must be >= 0")
        if (
            self.environment != "development"
            and self.jwt_secret == "change-me-in-production"
        ):
            raise ValueError(
                "STREAMHUB_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


# Singleton — import this everywhere
settings = Settings()
