import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_CORS_ORIGIN = "http://localhost:5173"
LOG_FORMAT = "%(levelname)s:%(name)s:%(message)s"


def parse_cors_origins(raw: str | None) -> tuple[list[str], bool]:
    raw = (raw or "").strip()
    if not raw:
        return [DEFAULT_CORS_ORIGIN], True
    if raw == "*":
        return ["*"], False
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        return [DEFAULT_CORS_ORIGIN], True
    return origins, True


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    youtube_api_key: str
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "youtube_videos"
    mongodb_collection: str = "videos"
    cors_origins: tuple[str, ...] = (DEFAULT_CORS_ORIGIN,)
    cors_credentials: bool = True
    youtube_api_timeout: int = 15
    channel_resolve_ttl: int = 7 * 24 * 60 * 60
    max_channels_per_request: int = 3
    log_level: str = "INFO"
    port: int = 4000


def load_settings() -> Settings:
    load_dotenv()

    api_key = (os.getenv("YOUTUBE_API_KEY") or "").strip()
    if not api_key:
        raise RuntimeError("Missing YOUTUBE_API_KEY in backend/.env")

    cors_origins, cors_credentials = parse_cors_origins(os.getenv("CORS_ALLOWED_ORIGINS"))
    return Settings(
        youtube_api_key=api_key,
        mongodb_uri=os.getenv("MONGODB_URI") or "mongodb://localhost:27017",
        mongodb_database=os.getenv("MONGODB_DATABASE") or "youtube_videos",
        mongodb_collection=os.getenv("MONGODB_COLLECTION") or "videos",
        cors_origins=tuple(cors_origins),
        cors_credentials=cors_credentials,
        youtube_api_timeout=_int_env("YOUTUBE_API_TIMEOUT_SECONDS", 15),
        channel_resolve_ttl=_int_env("CHANNEL_RESOLVE_TTL_SECONDS", 7 * 24 * 60 * 60),
        max_channels_per_request=_int_env("MAX_CHANNELS_PER_REQUEST", 3),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        port=_int_env("PORT", 4000),
    )


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
