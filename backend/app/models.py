import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Video(ApiModel):
    """
    A channel upload as stored in the videos collection.
    Keys are camelCase both on the wire and in MongoDB.
    """

    id: str
    title: str = ""
    description: str = ""
    published_at: str = ""
    channel_id: str = ""
    channel_title: str = ""
    category_id: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None

    @classmethod
    def from_youtube(cls, item: dict[str, Any]) -> "Video | None":
        """Build from a videos.list item; items without id or snippet are dropped."""
        video_id = item.get("id")
        snippet = item.get("snippet")
        if not isinstance(video_id, str) or not video_id or not isinstance(snippet, dict):
            return None
        return cls(
            id=video_id,
            title=snippet.get("title") or "",
            description=snippet.get("description") or "",
            published_at=snippet.get("publishedAt") or "",
            channel_id=snippet.get("channelId") or "",
            channel_title=snippet.get("channelTitle") or "",
            category_id=snippet.get("categoryId") or None,
            tags=list(snippet.get("tags") or []),
        )

    def upstream_fields(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"created_at"}, exclude_none=True)


class CategoryWithVideos(ApiModel):
    id: str
    name: str
    videos: list[Video] = Field(default_factory=list)


class Pagination(ApiModel):
    current_page: int
    total_pages: int
    total_count: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total_count: int) -> "Pagination":
        total_pages = math.ceil(total_count / limit) if limit > 0 else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total_count,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class VideoPage(ApiModel):
    videos: list[Video] = Field(default_factory=list)
    pagination: Pagination
