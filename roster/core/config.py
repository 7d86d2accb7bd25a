# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration: all env-driven, zero hardcode.
Single source of truth for every tunable parameter.
"""

import os


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "tennis-roster")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.2.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8010"))

    # "empathy" (star rating) or "preferences" (preferred / unwanted partners)
    ROSTER_VARIANT: str = os.getenv("ROSTER_VARIANT", "empathy").lower()

    # Realtime document store (Firebase Realtime Database REST endpoint)
    REALTIME_DB_URL: str = os.getenv("REALTIME_DB_URL", "").rstrip("/")
    REALTIME_AUTH_TOKEN: str = os.getenv("REALTIME_AUTH_TOKEN", "")
    REALTIME_COLLECTION: str = os.getenv("REALTIME_COLLECTION", "players")
    REALTIME_TIMEOUT: float = float(os.getenv("REALTIME_TIMEOUT", "5.0"))
    REALTIME_LISTEN: bool = os.getenv("REALTIME_LISTEN", "true").lower() == "true"
    REALTIME_RECONNECT_DELAY: float = float(os.getenv("REALTIME_RECONNECT_DELAY", "3.0"))

    # Local fallback: one JSON blob under a fixed key
    LOCAL_DATABASE_URL: str = os.getenv("LOCAL_DATABASE_URL", "sqlite:///tennis_roster.db")
    LOCAL_STORAGE_KEY: str = os.getenv("LOCAL_STORAGE_KEY", "tennis_players")

    NOTIFICATION_DURATION: float = float(os.getenv("NOTIFICATION_DURATION", "3.0"))

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
