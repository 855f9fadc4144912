import logging
from dataclasses import dataclass, field

from ..models import CategoryWithVideos, Video
from .categories import categorize_videos
from .uploads import UploadEnumerator, UploadsResult
from .video_store import VideoStore

logger = logging.getLogger(__name__)


@dataclass
class IngestReport:
    results: list[UploadsResult] = field(default_factory=list)
    videos: list[Video] = field(default_factory=list)
    categories: list[CategoryWithVideos] = field(default_factory=list)

    @property
    def fetched_count(self) -> int:
        return sum(len(result.videos) for result in self.results)


class ChannelIngestService:
    """Fetch channel uploads, upsert them, and categorize what this run stored."""

    def __init__(self, enumerator: UploadEnumerator, store: VideoStore):
        self.enumerator = enumerator
        self.store = store

    def ingest(self, identifiers: list[str]) -> IngestReport:
        results = self.enumerator.fetch_many(identifiers)
        for result in results:
            if not result.ok:
                logger.info("Channel %s contributed no videos (%s)", result.identifier, result.reason.value)

        fetched = [video for result in results for video in result.videos]
        saved = self.store.save_videos(fetched)
        return IngestReport(results=results, videos=saved, categories=categorize_videos(saved))
