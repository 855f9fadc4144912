from __future__ import annotations

import argparse
import sys
from typing import Any, Callable

import requests

DEFAULT_BASE_URL = "http://localhost:4000"
DEFAULT_CHANNEL_URL = "https://www.youtube.com/@GoogleDevelopers"


class SmokeClient:
    def __init__(self, base_url: str, timeout: int = 120):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def get(self, path: str, params: dict[str, Any] | None = None) -> requests.Response:
        return requests.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)


def assert_true(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def assert_error(response: requests.Response, status_code: int, label: str) -> None:
    assert_true(response.status_code == status_code, f"{label} should return {status_code}, got {response.status_code}")
    body = response.json()
    assert_true(isinstance(body.get("error"), str) and body["error"], f"{label} should carry an error message")


def assert_pagination(payload: dict[str, Any], label: str) -> None:
    pagination = payload.get("pagination") or {}
    for key in ("currentPage", "totalPages", "totalCount", "hasNext", "hasPrev"):
        assert_true(key in pagination, f"{label} pagination is missing {key}")
    assert_true(isinstance(payload.get("videos"), list), f"{label} should return a videos list")


def check_health(client: SmokeClient) -> None:
    response = client.get("/health")
    assert_true(response.status_code == 200, "/health should return 200")
    assert_true(response.json().get("ok") is True, "/health should return ok=true")


def check_input_errors(client: SmokeClient) -> None:
    assert_error(client.get("/api/channel/videos"), 400, "/api/channel/videos without channelUrl")
    assert_error(
        client.get("/api/channel/videos", {"channelUrl": "https://example.com/@nobody"}),
        400,
        "/api/channel/videos with a foreign URL",
    )
    too_many = ",".join(f"https://www.youtube.com/@creator{index}" for index in range(4))
    assert_error(client.get("/api/channels/videos", {"channelUrls": too_many}), 400, "/api/channels/videos with 4 URLs")
    assert_error(client.get("/api/channels/paginated-videos"), 400, "/api/channels/paginated-videos without identifiers")
    assert_error(client.get("/api/videos", {"page": "0"}), 400, "/api/videos?page=0")
    assert_error(client.get("/api/videos", {"limit": "101"}), 400, "/api/videos?limit=101")


def check_all_videos(client: SmokeClient) -> None:
    response = client.get("/api/videos", {"page": "1", "limit": "5"})
    assert_true(response.status_code == 200, "/api/videos should return 200")
    payload = response.json()
    assert_pagination(payload, "/api/videos")
    assert_true(len(payload["videos"]) <= 5, "/api/videos should honour limit")


def make_ingest_check(channel_url: str) -> Callable[[SmokeClient], None]:
    def check_ingest(client: SmokeClient) -> None:
        response = client.get("/api/channels/videos", {"channelUrls": channel_url})
        assert_true(response.status_code == 200, f"ingest of {channel_url} returned {response.status_code}")
        payload = response.json()
        identifiers = payload.get("channelIdentifiers") or []
        assert_true(len(identifiers) == 1, "ingest should echo one channel identifier")

        counts = [len(category.get("videos") or []) for category in payload.get("categories") or []]
        assert_true(counts == sorted(counts, reverse=True), "categories should be sorted by size")

        page = client.get(
            "/api/channels/paginated-videos",
            {"channelIdentifiers": identifiers[0], "page": "1", "limit": "10"},
        )
        assert_true(page.status_code == 200, "/api/channels/paginated-videos should return 200")
        paged = page.json()
        assert_pagination(paged, "/api/channels/paginated-videos")
        assert_true(paged["pagination"]["totalCount"] >= sum(counts), "stored count should cover ingested videos")

    return check_ingest


def run(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Smoke-check a running channel videos API.")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    parser.add_argument("--channel-url", default=DEFAULT_CHANNEL_URL)
    parser.add_argument("--skip-ingest", action="store_true", help="Do not spend YouTube API quota.")
    args = parser.parse_args(argv)

    client = SmokeClient(args.base_url)
    checks = [
        ("health", check_health),
        ("input errors", check_input_errors),
        ("all videos", check_all_videos),
    ]
    if not args.skip_ingest:
        checks.append(("ingest + paginate", make_ingest_check(args.channel_url)))

    failures = []
    for check_name, check_fn in checks:
        try:
            check_fn(client)
            print(f"[PASS] {check_name}")
        except Exception as exc:  # pragma: no cover - smoke script output path
            failures.append((check_name, str(exc)))
            print(f"[FAIL] {check_name}: {exc}")

    if failures:
        print(f"\nSmoke checks failed: {len(failures)}")
        for check_name, message in failures:
            print(f"- {check_name}: {message}")
        return 1

    print("\nAll smoke checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
