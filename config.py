# config.py
import os
from dataclasses import dataclass, field
from typing import List
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

STORE_MONGO = "mongo"
STORE_MEMORY = "memory"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "parlour_dashboard"
    attendance_store: str = STORE_MONGO
    # Calendar day boundaries are computed in this zone, never the host's.
    attendance_timezone: str = "UTC"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"
    seed_demo_data: bool = False
    # Seconds a real-time client gets to take one message before it is dropped.
    ws_send_timeout: float = 5.0
    host: str = "0.0.0.0"
    port: int = 5000

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.attendance_timezone)


def get_settings() -> Settings:
    """Read settings from the environment (and a local .env file)."""
    store = os.getenv("ATTENDANCE_STORE", STORE_MONGO).strip().lower()
    if store not in (STORE_MONGO, STORE_MEMORY):
        raise ValueError(f"ATTENDANCE_STORE must be '{STORE_MONGO}' or '{STORE_MEMORY}', got '{store}'")

    tz_name = os.getenv("ATTENDANCE_TIMEZONE", "UTC")
    # raises ZoneInfoNotFoundError for unknown zones
    ZoneInfo(tz_name)

    return Settings(
        mongodb_uri=os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
        mongodb_db=os.getenv("MONGODB_DB", "parlour_dashboard"),
        attendance_store=store,
        attendance_timezone=tz_name,
        cors_origins=_as_list(os.getenv("CORS_ORIGINS", "http://localhost:3000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        seed_demo_data=_as_bool(os.getenv("SEED_DEMO_DATA", "false")),
        ws_send_timeout=float(os.getenv("WS_SEND_TIMEOUT", "5")),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5000")),
    )
