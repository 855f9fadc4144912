import os
import re
from types import SimpleNamespace

import pytest
from pymongo import UpdateOne
from pymongo.errors import BulkWriteError

os.environ.setdefault("YOUTUBE_API_KEY", "test-key")

from backend.app.config import Settings  # noqa: E402
from backend.app.services.video_store import VideoStore  # noqa: E402
from backend.app.services.youtube_api import YouTubeApiError  # noqa: E402


# ---------------------------
# In-memory stand-in for a pymongo collection
# ---------------------------

def _matches(document: dict, query: dict) -> bool:
    for key, condition in query.items():
        value = document.get(key)
        if isinstance(condition, dict):
            if "$in" in condition and value not in condition["$in"]:
                return False
            if "$regex" in condition:
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                if not isinstance(value, str) or not re.search(condition["$regex"], value, flags):
                    return False
        elif value != condition:
            return False
    return True


def _project(document: dict, projection: dict | None) -> dict:
    copied = dict(document)
    if projection and projection.get("_id") == 0:
        copied.pop("_id", None)
    return copied


def update_one_parts(operation: UpdateOne) -> tuple[dict, dict, bool]:
    """Filter, update document and upsert flag of a pymongo UpdateOne (pymongo 4.x attribute names)."""
    try:
        return operation._filter, operation._doc, bool(operation._upsert)
    except AttributeError as exc:
        raise AssertionError(f"Unsupported pymongo UpdateOne layout: {exc}") from exc


class FakeCursor:
    def __init__(self, documents: list[dict]):
        self.documents = documents

    def sort(self, key: str, direction: int):
        self.documents = sorted(self.documents, key=lambda doc: doc.get(key) or "", reverse=direction < 0)
        return self

    def skip(self, count: int):
        self.documents = self.documents[count:]
        return self

    def limit(self, count: int):
        if count:
            self.documents = self.documents[:count]
        return self

    def __iter__(self):
        return iter(self.documents)


class FakeCollection:
    def __init__(self):
        self.documents: list[dict] = []
        self.indexes: list = []
        self._next_id = 1

    def create_index(self, keys, unique: bool = False):
        self.indexes.append((keys, unique))

    def _insert(self, document: dict) -> None:
        stored = dict(document)
        stored["_id"] = self._next_id
        self._next_id += 1
        self.documents.append(stored)

    def bulk_write(self, operations, ordered: bool = True):
        for operation in operations:
            query, update, upsert = update_one_parts(operation)
            existing = next((doc for doc in self.documents if _matches(doc, query)), None)
            if existing is not None:
                existing.update(update.get("$set", {}))
            elif upsert:
                document = dict(query)
                document.update(update.get("$setOnInsert", {}))
                document.update(update.get("$set", {}))
                self._insert(document)
        return SimpleNamespace(acknowledged=True)

    def insert_many(self, documents, ordered: bool = True):
        errors = []
        for index, document in enumerate(documents):
            if any(existing["id"] == document["id"] for existing in self.documents):
                errors.append({"index": index, "code": 11000})
                continue
            self._insert(document)
        if errors:
            raise BulkWriteError({"writeErrors": errors})
        return SimpleNamespace(acknowledged=True)

    def find(self, query: dict | None = None, projection: dict | None = None):
        query = query or {}
        return FakeCursor([_project(doc, projection) for doc in self.documents if _matches(doc, query)])

    def find_one(self, query: dict, projection: dict | None = None):
        for document in self.documents:
            if _matches(document, query):
                return _project(document, projection)
        return None

    def count_documents(self, query: dict) -> int:
        return sum(1 for doc in self.documents if _matches(doc, query))

    def delete_many(self, query: dict):
        kept = [doc for doc in self.documents if not _matches(doc, query)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return SimpleNamespace(deleted_count=deleted)


# ---------------------------
# Fake YouTube Data API
# ---------------------------

def make_video_item(
    video_id: str,
    channel_id: str = "UC_TEST",
    channel_title: str = "Test Channel",
    category_id: str | None = "22",
    title: str | None = None,
    published_at: str = "2024-01-01T00:00:00Z",
    tags: list[str] | None = None,
) -> dict:
    snippet = {
        "title": title or f"Video {video_id}",
        "description": f"About {video_id}",
        "publishedAt": published_at,
        "channelId": channel_id,
        "channelTitle": channel_title,
        "tags": tags or [],
    }
    if category_id is not None:
        snippet["categoryId"] = category_id
    return {"id": video_id, "snippet": snippet, "contentDetails": {"duration": "PT3M"}}


class FakeYouTube:
    """
    Serves channels.list / search.list / playlistItems.list / videos.list from
    dicts. ``channels`` maps channel id -> list of videos.list items.
    """

    def __init__(self, channels=None, handles=None, search=None, page_size: int = 50, no_uploads=()):
        self.channels = channels or {}
        self.handles = handles or {}
        self.search = search or {}
        self.page_size = page_size
        self.no_uploads = set(no_uploads)
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, object]] = []
        self.closed = False

    def fail(self, method: str, exc: Exception | None = None) -> None:
        self.failures[method] = exc or YouTubeApiError("boom", 500)

    def _call(self, method: str, argument) -> None:
        self.calls.append((method, argument))
        if method in self.failures:
            raise self.failures[method]

    def calls_to(self, method: str) -> list:
        return [argument for name, argument in self.calls if name == method]

    def channels_by_handle(self, handle: str) -> dict:
        self._call("channels_by_handle", handle)
        channel_id = self.handles.get(handle)
        return {"items": [{"id": channel_id}]} if channel_id else {"items": []}

    def search_channels(self, query: str, max_results: int = 1) -> dict:
        self._call("search_channels", query)
        channel_id = self.search.get(query)
        if not channel_id:
            return {"items": []}
        return {"items": [{"id": {"kind": "youtube#channel", "channelId": channel_id}}]}

    def channel_details(self, channel_id: str) -> dict:
        self._call("channel_details", channel_id)
        if channel_id not in self.channels:
            return {"items": []}
        related = {} if channel_id in self.no_uploads else {"uploads": f"UU-{channel_id}"}
        return {
            "items": [
                {
                    "id": channel_id,
                    "snippet": {"title": f"Channel {channel_id}"},
                    "contentDetails": {"relatedPlaylists": related},
                }
            ]
        }

    def playlist_items(self, playlist_id: str, page_token: str | None = None) -> dict:
        self._call("playlist_items", page_token)
        channel_id = playlist_id.removeprefix("UU-")
        videos = self.channels[channel_id]
        start = int(page_token) if page_token else 0
        chunk = videos[start:start + self.page_size]
        payload = {"items": [{"contentDetails": {"videoId": video["id"]}} for video in chunk]}
        if start + self.page_size < len(videos):
            payload["nextPageToken"] = str(start + self.page_size)
        return payload

    def videos(self, video_ids: list[str]) -> dict:
        self._call("videos", list(video_ids))
        wanted = set(video_ids)
        items = [video for videos in self.channels.values() for video in videos if video["id"] in wanted]
        return {"items": items}

    def close(self) -> None:
        self.closed = True


# ---------------------------
# Fixtures
# ---------------------------

@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def store(collection):
    return VideoStore(collection)


@pytest.fixture
def settings():
    return Settings(youtube_api_key="test-key", log_level="WARNING")


@pytest.fixture
def youtube():
    return FakeYouTube()
