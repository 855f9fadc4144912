import logging
import re
from datetime import datetime, timezone
from typing import Any

from pymongo import ASCENDING, DESCENDING, UpdateOne
from pymongo.collection import Collection
from pymongo.errors import BulkWriteError, PyMongoError

from ..models import Pagination, Video, VideoPage

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
NO_MONGO_ID = {"_id": 0}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VideoStore:
    """
    Videos collection keyed by the YouTube video id.

    createdAt is written only when a document is first inserted, so re-ingesting
    a video refreshes its upstream fields but keeps its original createdAt.
    """

    def __init__(self, collection: Collection, ensure_indexes: bool = True):
        self.collection = collection
        if ensure_indexes:
            self.ensure_indexes()

    def ensure_indexes(self) -> None:
        self.collection.create_index([("id", ASCENDING)], unique=True)
        self.collection.create_index([("channelId", ASCENDING)])
        self.collection.create_index([("categoryId", ASCENDING)])
        self.collection.create_index([("publishedAt", DESCENDING)])

    def save_videos(self, videos: list[Video]) -> list[Video]:
        if not videos:
            return []

        now = utcnow()
        operations = [
            UpdateOne(
                {"id": video.id},
                {"$set": video.upstream_fields(), "$setOnInsert": {"createdAt": now}},
                upsert=True,
            )
            for video in videos
        ]

        try:
            self.collection.bulk_write(operations, ordered=False)
        except BulkWriteError as exc:
            errors = exc.details.get("writeErrors", [])
            logger.warning("Bulk upsert finished with %d failed writes", len(errors))
        except PyMongoError as exc:
            logger.error("Error during bulk write operation: %s", exc)
            documents = [{**video.upstream_fields(), "createdAt": now} for video in videos]
            self.collection.insert_many(documents, ordered=False)

        return self.find_by_ids([video.id for video in videos])

    def find_by_ids(self, video_ids: list[str]) -> list[Video]:
        """Return stored videos in the order of ``video_ids``, each id at most once."""
        wanted = list(dict.fromkeys(video_ids))
        cursor = self.collection.find({"id": {"$in": wanted}}, NO_MONGO_ID)
        found = {document["id"]: Video.model_validate(document) for document in cursor}
        return [found[video_id] for video_id in wanted if video_id in found]

    def get_video(self, video_id: str) -> Video | None:
        document = self.collection.find_one({"id": video_id}, NO_MONGO_ID)
        if document is None:
            return None
        return Video.model_validate(document)

    def get_videos_by_channel(self, channel_id: str) -> list[Video]:
        cursor = self.collection.find({"channelId": channel_id}, NO_MONGO_ID).sort("publishedAt", DESCENDING)
        return [Video.model_validate(document) for document in cursor]

    def list_videos(
        self,
        channel_title: str | None = None,
        category_id: str | None = None,
        channel_ids: list[str] | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> VideoPage:
        query = build_video_filter(channel_title, category_id, channel_ids)
        skip = (page - 1) * limit

        cursor = (
            self.collection.find(query, NO_MONGO_ID)
            .sort("publishedAt", DESCENDING)
            .skip(skip)
            .limit(limit)
        )
        videos = [Video.model_validate(document) for document in cursor]
        total_count = self.collection.count_documents(query)

        return VideoPage(videos=videos, pagination=Pagination.build(page, limit, total_count))

    def count(self) -> int:
        return self.collection.count_documents({})

    def clear_videos(self) -> int:
        result = self.collection.delete_many({})
        return result.deleted_count


def build_video_filter(
    channel_title: str | None = None,
    category_id: str | None = None,
    channel_ids: list[str] | None = None,
) -> dict[str, Any]:
    query: dict[str, Any] = {}
    if channel_title:
        query["channelTitle"] = {"$regex": re.escape(channel_title), "$options": "i"}
    if category_id:
        query["categoryId"] = category_id
    if channel_ids is not None:
        query["channelId"] = {"$in": list(channel_ids)}
    return query
