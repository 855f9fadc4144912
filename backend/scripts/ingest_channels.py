from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pymongo import MongoClient

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from backend.app.config import configure_logging, load_settings  # noqa: E402
from backend.app.services.channels import ChannelResolver, extract_channel_identifier  # noqa: E402
from backend.app.services.ingest import ChannelIngestService  # noqa: E402
from backend.app.services.uploads import UploadEnumerator  # noqa: E402
from backend.app.services.video_store import VideoStore  # noqa: E402
from backend.app.services.youtube_api import YouTubeApiClient  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Fetch channel uploads from YouTube into MongoDB.")
    parser.add_argument("channel_urls", nargs="+", help="https://www.youtube.com/@handle or /channel/<id> URLs")
    parser.add_argument("--clear", action="store_true", help="Delete every stored video before ingesting.")
    args = parser.parse_args()

    settings = load_settings()
    configure_logging(settings.log_level)

    identifiers = []
    for url in args.channel_urls:
        identifier = extract_channel_identifier(url)
        if identifier is None:
            print(f"Skipping invalid channel URL: {url}")
            continue
        identifiers.append(identifier)
    if not identifiers:
        print("No valid channel URLs given.")
        return 2

    youtube = YouTubeApiClient(settings.youtube_api_key, timeout=settings.youtube_api_timeout)
    mongo_client = MongoClient(settings.mongodb_uri)
    try:
        store = VideoStore(mongo_client[settings.mongodb_database][settings.mongodb_collection])
        if args.clear:
            print(f"Cleared {store.clear_videos()} stored videos")

        resolver = ChannelResolver(youtube, cache_ttl=settings.channel_resolve_ttl)
        service = ChannelIngestService(UploadEnumerator(youtube, resolver), store)
        report = service.ingest(identifiers)
    finally:
        youtube.close()
        mongo_client.close()

    for result in report.results:
        print(f"{result.identifier}: {len(result.videos)} videos ({result.reason.value})")
    print(f"\nStored {len(report.videos)} videos in {len(report.categories)} categories")
    for category in report.categories:
        print(f"- {category.name}: {len(category.videos)} videos")
    return 0 if report.videos else 1


if __name__ == "__main__":
    raise SystemExit(main())
