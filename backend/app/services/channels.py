import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union
from urllib.parse import urlparse

from .youtube_api import YouTubeApiClient, YouTubeApiError

logger = logging.getLogger(__name__)

YOUTUBE_HOSTS = {"www.youtube.com", "youtube.com"}
CHANNEL_RESOLVE_TTL_SECONDS = 7 * 24 * 60 * 60


def extract_channel_identifier(url: str) -> str | None:
    """
    Parse a channel URL into a channel id or an @handle.

    Supports:
      https://www.youtube.com/channel/UC_x5XG1OV2P6uZZ5FSM9Ttw -> UC_x5XG1OV2P6uZZ5FSM9Ttw
      https://www.youtube.com/@GoogleDevelopers               -> @GoogleDevelopers
    Anything else, including strings that are not URLs, yields None.
    """
    try:
        parsed = urlparse((url or "").strip())
        hostname = parsed.hostname
    except ValueError:
        return None

    if hostname not in YOUTUBE_HOSTS:
        return None

    path = parsed.path
    if path.startswith("/channel/"):
        channel_id = path.split("/")[2]
        return channel_id or None

    if path.startswith("/@"):
        handle = path[1:]
        return handle if len(handle) > 1 else None

    return None


def is_handle(identifier: str) -> bool:
    return identifier.startswith("@")


# channels.list answers with a flat string id, search.list nests it under id.channelId.
@dataclass(frozen=True)
class FlatChannelRef:
    channel_id: str


@dataclass(frozen=True)
class NestedChannelRef:
    kind: str
    channel_id: str


ChannelRef = Union[FlatChannelRef, NestedChannelRef]


def decode_channel_ref(raw_id: Any) -> ChannelRef | None:
    if isinstance(raw_id, str) and raw_id:
        return FlatChannelRef(channel_id=raw_id)
    if isinstance(raw_id, dict):
        channel_id = raw_id.get("channelId")
        if isinstance(channel_id, str) and channel_id:
            return NestedChannelRef(kind=str(raw_id.get("kind") or ""), channel_id=channel_id)
    return None


def first_channel_ref(payload: dict[str, Any]) -> ChannelRef | None:
    items = payload.get("items") or []
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        return None
    return decode_channel_ref(items[0].get("id"))


class ResolveReason(str, Enum):
    PASSTHROUGH = "passthrough"
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    UPSTREAM_ERROR = "upstream_error"


@dataclass(frozen=True)
class ChannelResolution:
    identifier: str
    channel_id: str | None
    reason: ResolveReason
    source: ChannelRef | None = None

    @property
    def ok(self) -> bool:
        return self.channel_id is not None


class ChannelResolver:
    """Turns channel ids and @handles into channel ids without ever raising."""

    def __init__(self, youtube: YouTubeApiClient, cache_ttl: int = CHANNEL_RESOLVE_TTL_SECONDS):
        self.youtube = youtube
        self.cache_ttl = cache_ttl
        self._cache: dict[str, tuple[float, str]] = {}
        self._lock = threading.Lock()

    def resolve(self, identifier: str) -> ChannelResolution:
        identifier = (identifier or "").strip()
        if not identifier:
            return ChannelResolution(identifier, None, ResolveReason.NOT_FOUND)
        if not is_handle(identifier):
            return ChannelResolution(identifier, identifier, ResolveReason.PASSTHROUGH)

        cached = self._cache_get(identifier)
        if cached:
            return ChannelResolution(identifier, cached, ResolveReason.RESOLVED)

        handle = identifier[1:]
        if not handle:
            return ChannelResolution(identifier, None, ResolveReason.NOT_FOUND)
        try:
            ref = first_channel_ref(self.youtube.channels_by_handle(handle))
            if ref is None:
                ref = first_channel_ref(self.youtube.search_channels(handle, max_results=1))
        except YouTubeApiError as exc:
            logger.warning("Could not resolve channel id for %s: %s", identifier, exc)
            return ChannelResolution(identifier, None, ResolveReason.UPSTREAM_ERROR)
        except (AttributeError, TypeError, KeyError, ValueError) as exc:
            logger.warning("Malformed YouTube response while resolving %s: %s", identifier, exc)
            return ChannelResolution(identifier, None, ResolveReason.UPSTREAM_ERROR)

        if ref is None:
            logger.warning("Could not resolve channel id for %s", identifier)
            return ChannelResolution(identifier, None, ResolveReason.NOT_FOUND)

        self._cache_set(identifier, ref.channel_id)
        return ChannelResolution(identifier, ref.channel_id, ResolveReason.RESOLVED, source=ref)

    def _cache_get(self, identifier: str) -> str | None:
        key = identifier.lower()
        with self._lock:
            hit = self._cache.get(key)
            if not hit:
                return None
            expires_at, value = hit
            if time.time() > expires_at:
                self._cache.pop(key, None)
                return None
            return value

    def _cache_set(self, identifier: str, channel_id: str) -> None:
        if self.cache_ttl <= 0:
            return
        with self._lock:
            self._cache[identifier.lower()] = (time.time() + self.cache_ttl, channel_id)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
