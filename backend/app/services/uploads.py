import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum

from ..models import Video
from .channels import ChannelResolver, ResolveReason
from .youtube_api import YouTubeApiClient, YouTubeApiError, YouTubeQuotaExceededError

logger = logging.getLogger(__name__)


class UploadsReason(str, Enum):
    OK = "ok"
    UNRESOLVED = "unresolved"
    CHANNEL_NOT_FOUND = "channel_not_found"
    NO_UPLOADS_PLAYLIST = "no_uploads_playlist"
    UPSTREAM_ERROR = "upstream_error"
    QUOTA_EXCEEDED = "quota_exceeded"


@dataclass
class UploadsResult:
    """
    Outcome of walking one channel's uploads playlist.

    ``videos`` is empty whenever ``reason`` is not OK; an OK result may also be
    empty when the channel simply has no uploads.
    """

    identifier: str
    channel_id: str | None
    reason: UploadsReason
    videos: list[Video] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.reason is UploadsReason.OK


def uploads_playlist_id(channel_item: dict) -> str | None:
    return ((channel_item.get("contentDetails") or {}).get("relatedPlaylists") or {}).get("uploads")


class UploadEnumerator:
    def __init__(self, youtube: YouTubeApiClient, resolver: ChannelResolver):
        self.youtube = youtube
        self.resolver = resolver

    def fetch_channel_videos(self, identifier: str) -> UploadsResult:
        """Resolve ``identifier`` and collect every upload of that channel."""
        resolution = self.resolver.resolve(identifier)
        if not resolution.ok:
            logger.warning(
                "Skipping channel %s - could not resolve channel id (%s)",
                identifier,
                resolution.reason.value,
            )
            reason = UploadsReason.UNRESOLVED
            if resolution.reason is ResolveReason.UPSTREAM_ERROR:
                reason = UploadsReason.UPSTREAM_ERROR
            return UploadsResult(identifier, None, reason)

        channel_id = resolution.channel_id
        try:
            return self._walk_uploads(identifier, channel_id)
        except YouTubeQuotaExceededError as exc:
            logger.warning("Skipping channel %s - %s", channel_id, exc)
            return UploadsResult(identifier, channel_id, UploadsReason.QUOTA_EXCEEDED)
        except YouTubeApiError as exc:
            logger.warning("Error fetching videos for channel %s: %s", channel_id, exc)
            return UploadsResult(identifier, channel_id, UploadsReason.UPSTREAM_ERROR)
        except (AttributeError, TypeError, KeyError, ValueError) as exc:
            # Unexpected payload shape from upstream; ValidationError is a ValueError.
            logger.warning("Malformed YouTube response for channel %s: %s", channel_id, exc)
            return UploadsResult(identifier, channel_id, UploadsReason.UPSTREAM_ERROR)

    def _walk_uploads(self, identifier: str, channel_id: str) -> UploadsResult:
        payload = self.youtube.channel_details(channel_id)
        items = payload.get("items") or []
        if not isinstance(items, list) or not items:
            logger.warning("Skipping channel %s - channel not found", channel_id)
            return UploadsResult(identifier, channel_id, UploadsReason.CHANNEL_NOT_FOUND)

        playlist_id = uploads_playlist_id(items[0])
        if not playlist_id:
            logger.warning("Skipping channel %s - could not find uploads playlist", channel_id)
            return UploadsResult(identifier, channel_id, UploadsReason.NO_UPLOADS_PLAYLIST)

        videos: list[Video] = []
        page_token = None
        while True:
            page = self.youtube.playlist_items(playlist_id, page_token)
            video_ids = []
            for item in page.get("items") or []:
                video_id = (item.get("contentDetails") or {}).get("videoId")
                if video_id:
                    video_ids.append(video_id)

            if video_ids:
                details = self.youtube.videos(video_ids)
                for item in details.get("items") or []:
                    video = Video.from_youtube(item)
                    if video is not None:
                        videos.append(video)

            page_token = page.get("nextPageToken")
            if not page_token:
                break

        logger.info("Fetched %d videos for channel %s", len(videos), channel_id)
        return UploadsResult(identifier, channel_id, UploadsReason.OK, videos)

    def fetch_many(self, identifiers: list[str]) -> list[UploadsResult]:
        """Enumerate several channels concurrently; results keep request order."""
        if not identifiers:
            return []
        if len(identifiers) == 1:
            return [self.fetch_channel_videos(identifiers[0])]
        with ThreadPoolExecutor(max_workers=len(identifiers)) as pool:
            return list(pool.map(self.fetch_channel_videos, identifiers))
