import re

import pytest
from pymongo import UpdateOne
from pymongo.errors import BulkWriteError, ServerSelectionTimeoutError

from backend.app.models import Video
from backend.app.services.video_store import VideoStore, build_video_filter

from conftest import update_one_parts


def make_video(video_id: str, **overrides) -> Video:
    fields = {
        "id": video_id,
        "title": f"Video {video_id}",
        "description": "",
        "published_at": "2024-01-01T00:00:00Z",
        "channel_id": "UC_TEST",
        "channel_title": "Test Channel",
        "category_id": "22",
        "tags": [],
    }
    fields.update(overrides)
    return Video(**fields)


def test_creates_unique_id_index(collection):
    VideoStore(collection)
    assert ([("id", 1)], True) in collection.indexes


def test_upsert_same_id_keeps_one_record_with_latest_fields(store, collection):
    store.save_videos([make_video("abc", title="First")])
    saved = store.save_videos([make_video("abc", title="Second")])

    assert len(collection.documents) == 1
    assert [video.title for video in saved] == ["Second"]
    assert store.get_video("abc").title == "Second"


def test_created_at_is_kept_on_reingestion(store, monkeypatch):
    first = store.save_videos([make_video("abc")])[0]
    assert first.created_at is not None

    later = first.created_at.replace(year=first.created_at.year + 1)
    monkeypatch.setattr("backend.app.services.video_store.utcnow", lambda: later)
    again = store.save_videos([make_video("abc", title="Renamed")])[0]

    assert again.created_at == first.created_at
    assert again.title == "Renamed"


def test_save_returns_records_in_input_order(store):
    saved = store.save_videos([make_video("b"), make_video("a"), make_video("c"), make_video("a")])
    assert [video.id for video in saved] == ["b", "a", "c"]


def test_uncategorized_video_has_no_category_field(store, collection):
    saved = store.save_videos([make_video("plain", category_id=None)])[0]

    assert "categoryId" not in collection.documents[0]
    assert saved.category_id is None
    assert "categoryId" not in saved.to_json()


def test_save_nothing_skips_the_database(store, collection):
    collection.bulk_write = None
    assert store.save_videos([]) == []


def test_partial_bulk_failure_keeps_surviving_writes(store, collection):
    original = collection.bulk_write

    def partial(operations, ordered=True):
        original(operations[1:], ordered=ordered)
        raise BulkWriteError({"writeErrors": [{"index": 0, "code": 121}]})

    collection.bulk_write = partial
    saved = store.save_videos([make_video("bad"), make_video("good")])
    assert [video.id for video in saved] == ["good"]


def test_bulk_failure_falls_back_to_insert_many(store, collection):
    def unavailable(operations, ordered=True):
        raise ServerSelectionTimeoutError("no primary")

    collection.bulk_write = unavailable
    saved = store.save_videos([make_video("x"), make_video("y")])

    assert [video.id for video in saved] == ["x", "y"]
    assert all(video.created_at is not None for video in saved)


def test_fallback_failure_propagates(store, collection):
    store.save_videos([make_video("x")])

    def unavailable(operations, ordered=True):
        raise ServerSelectionTimeoutError("no primary")

    collection.bulk_write = unavailable
    with pytest.raises(BulkWriteError):
        store.save_videos([make_video("x")])


def test_list_videos_sorts_newest_first_and_paginates(store):
    store.save_videos(
        [make_video(f"v{day:02d}", published_at=f"2024-01-{day:02d}T00:00:00Z") for day in range(1, 26)]
    )

    first = store.list_videos(page=1, limit=10)
    last = store.list_videos(page=3, limit=10)

    assert [video.id for video in first.videos][:3] == ["v25", "v24", "v23"]
    assert first.pagination.total_count == 25
    assert first.pagination.total_pages == 3
    assert first.pagination.has_next and not first.pagination.has_prev
    assert [video.id for video in last.videos] == ["v05", "v04", "v03", "v02", "v01"]
    assert not last.pagination.has_next and last.pagination.has_prev


def test_list_videos_filters(store):
    store.save_videos(
        [
            make_video("a", channel_title="Google Developers", channel_id="UC_G", category_id="28"),
            make_video("b", channel_title="google for startups", channel_id="UC_S", category_id="22"),
            make_video("c", channel_title="Other", channel_id="UC_O", category_id="28"),
        ]
    )

    by_title = store.list_videos(channel_title="GOOGLE")
    assert sorted(video.id for video in by_title.videos) == ["a", "b"]

    by_category = store.list_videos(category_id="28")
    assert sorted(video.id for video in by_category.videos) == ["a", "c"]

    by_channel = store.list_videos(channel_ids=["UC_G", "UC_O"], category_id="28")
    assert sorted(video.id for video in by_channel.videos) == ["a", "c"]

    assert store.list_videos(channel_ids=[]).pagination.total_count == 0


def test_channel_title_is_matched_literally():
    pattern = build_video_filter(channel_title="a.b (c)")["channelTitle"]["$regex"]
    assert re.search(pattern, "Channel a.b (c)")
    assert not re.search(pattern, "axb c")
    assert build_video_filter() == {}


def test_videos_by_channel_and_clear(store):
    store.save_videos([make_video("a", channel_id="UC_A"), make_video("b", channel_id="UC_B")])
    assert [video.id for video in store.get_videos_by_channel("UC_A")] == ["a"]

    assert store.clear_videos() == 2
    assert store.count() == 0
    assert store.get_video("a") is None


def test_fake_collection_understands_update_one():
    operation = UpdateOne({"id": "abc"}, {"$set": {"title": "x"}}, upsert=True)
    assert update_one_parts(operation) == ({"id": "abc"}, {"$set": {"title": "x"}}, True)
