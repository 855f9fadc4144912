from typing import Any

import requests

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"
YOUTUBE_SEARCH_LIST = f"{YOUTUBE_API_BASE}/search"
YOUTUBE_CHANNELS_LIST = f"{YOUTUBE_API_BASE}/channels"
YOUTUBE_PLAYLIST_ITEMS_LIST = f"{YOUTUBE_API_BASE}/playlistItems"
YOUTUBE_VIDEOS_LIST = f"{YOUTUBE_API_BASE}/videos"

DEFAULT_TIMEOUT_SECONDS = 15
MAX_PAGE_SIZE = 50


class YouTubeApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class YouTubeQuotaExceededError(YouTubeApiError):
    pass


def is_quota_exceeded_response(status_code: int, body: str) -> bool:
    lowered = (body or "").lower()
    return status_code in {403, 429} and (
        "quotaexceeded" in lowered or "quota exceeded" in lowered or "youtube.quota" in lowered
    )


class YouTubeApiClient:
    """
    Thin wrapper over the YouTube Data API v3 list endpoints used for ingestion.
    Every call returns the decoded JSON payload or raises YouTubeApiError.
    """

    def __init__(
        self,
        api_key: str,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def get(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        query = {key: value for key, value in params.items() if value is not None}
        query["key"] = self.api_key
        try:
            response = self.session.get(url, params=query, timeout=self.timeout)
        except requests.RequestException as exc:
            raise YouTubeApiError(f"YouTube request failed: {exc}") from exc

        if response.status_code == 200:
            try:
                payload = response.json()
            except ValueError as exc:
                raise YouTubeApiError("YouTube returned a malformed response", 200) from exc
            if not isinstance(payload, dict):
                raise YouTubeApiError("YouTube returned a malformed response", 200)
            return payload

        if is_quota_exceeded_response(response.status_code, response.text):
            raise YouTubeQuotaExceededError("YouTube API quota exceeded", response.status_code)

        raise YouTubeApiError(
            f"YouTube API responded with HTTP {response.status_code}",
            response.status_code,
        )

    def channels_by_handle(self, handle: str) -> dict[str, Any]:
        return self.get(
            YOUTUBE_CHANNELS_LIST,
            {"part": "id", "forHandle": handle, "maxResults": 1},
        )

    def search_channels(self, query: str, max_results: int = 1) -> dict[str, Any]:
        return self.get(
            YOUTUBE_SEARCH_LIST,
            {"part": "snippet", "type": "channel", "q": query, "maxResults": max_results},
        )

    def channel_details(self, channel_id: str) -> dict[str, Any]:
        return self.get(
            YOUTUBE_CHANNELS_LIST,
            {"part": "snippet,contentDetails", "id": channel_id},
        )

    def playlist_items(self, playlist_id: str, page_token: str | None = None) -> dict[str, Any]:
        return self.get(
            YOUTUBE_PLAYLIST_ITEMS_LIST,
            {
                "part": "snippet,contentDetails",
                "playlistId": playlist_id,
                "maxResults": MAX_PAGE_SIZE,
                "pageToken": page_token,
            },
        )

    def videos(self, video_ids: list[str]) -> dict[str, Any]:
        return self.get(
            YOUTUBE_VIDEOS_LIST,
            {"part": "snippet,contentDetails,statistics", "id": ",".join(video_ids)},
        )

    def close(self) -> None:
        self.session.close()
