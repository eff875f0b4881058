"""Tests for PostQueue: CRUD, pruning, due-checking, result bookkeeping."""

import json
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from insta_sake.adapters.storage.json_store import JsonStorage
from insta_sake.domain.models import STATUS_FAILED, STATUS_POSTED, STATUS_SCHEDULED
from insta_sake.domain.post_queue import PostQueue
from insta_sake.ports.outbound import PublishResult

NOW = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def storage(tmp_dir):
    return JsonStorage(str(Path(tmp_dir) / "db.json"))


@pytest.fixture
def queue(storage):
    return PostQueue(storage)


class TestAdd:
    def test_add_and_list(self, queue):
        post = queue.add("https://cdn.example.com/a.jpg", "hello", "2025-01-15T10:00:00Z", now=NOW)
        posts = queue.list_posts()
        assert len(posts) == 1
        assert posts[0].id == post.id
        assert post.status == STATUS_SCHEDULED
        assert post.caption == "hello"

    def test_id_is_epoch_millis(self, queue):
        post = queue.add("a.jpg", "", "2025-01-15T10:00:00Z", now=NOW)
        assert post.id == int(NOW.timestamp() * 1000)

    def test_created_at_is_utc_iso(self, queue):
        post = queue.add("a.jpg", "", "2025-01-15T10:00:00Z", now=NOW)
        assert post.created_at == "2025-01-15T09:00:00.000Z"

    def test_ids_unique_within_same_millisecond(self, queue):
        a = queue.add("a.jpg", "", "2025-01-15T10:00:00Z", now=NOW)
        b = queue.add("b.jpg", "", "2025-01-15T10:00:00Z", now=NOW)
        c = queue.add("c.jpg", "", "2025-01-15T10:00:00Z", now=NOW)
        assert len({a.id, b.id, c.id}) == 3
        assert b.id == a.id + 1

    def test_persisted_as_document(self, queue, storage):
        queue.add("a.jpg", "cap", "2025-01-15T10:00:00Z", now=NOW)
        raw = json.loads(storage.path.read_text(encoding="utf-8"))
        assert isinstance(raw["posts"], list)
        assert raw["posts"][0]["imagePath"] == "a.jpg"
        assert raw["posts"][0]["scheduleTime"] == "2025-01-15T10:00:00Z"

    def test_reload_from_disk(self, queue, storage):
        post = queue.add("a.jpg", "cap", "2025-01-15T10:00:00Z", now=NOW)
        reloaded = PostQueue(storage)
        assert [p.id for p in reloaded.list_posts()] == [post.id]
        assert reloaded.get(post.id).caption == "cap"


class TestGetRemove:
    def test_get_missing(self, queue):
        assert queue.get(123) is None

    def test_remove(self, queue):
        post = queue.add("a.jpg", "", "2025-01-15T10:00:00Z", now=NOW)
        assert queue.remove(post.id) is True
        assert queue.list_posts() == []

    def test_remove_nonexistent(self, queue):
        assert queue.remove(999) is False


class TestPrune:
    def test_no_prune_under_limit(self, storage):
        queue = PostQueue(storage, limit=3)
        for i in range(3):
            queue.add(f"{i}.jpg", "", "2025-01-15T10:00:00Z", now=NOW + timedelta(seconds=i))
        assert len(queue.list_posts()) == 3
        assert queue.prune() == 0

    def test_add_prunes_oldest(self, storage):
        queue = PostQueue(storage, limit=3)
        for i in range(5):
            queue.add(f"{i}.jpg", "", "2025-01-15T10:00:00Z", now=NOW + timedelta(seconds=i))
        paths = [p.image_path for p in queue.list_posts()]
        assert paths == ["2.jpg", "3.jpg", "4.jpg"]

    def test_prune_orders_by_created_at(self, storage):
        storage.save("posts", [
            {"id": 3, "imagePath": "newest.jpg", "caption": "", "scheduleTime": "", "status": "posted",
             "createdAt": "2025-01-03T00:00:00.000Z"},
            {"id": 1, "imagePath": "oldest.jpg", "caption": "", "scheduleTime": "", "status": "posted",
             "createdAt": "2025-01-01T00:00:00.000Z"},
            {"id": 2, "imagePath": "middle.jpg", "caption": "", "scheduleTime": "", "status": "posted",
             "createdAt": "2025-01-02T00:00:00.000Z"},
        ])
        queue = PostQueue(storage)
        assert queue.prune(limit=2) == 1
        assert sorted(p.image_path for p in queue.list_posts()) == ["middle.jpg", "newest.jpg"]

    def test_prune_falls_back_to_id(self, storage):
        storage.save("posts", [
            {"id": 20, "imagePath": "b.jpg", "caption": "", "scheduleTime": "", "status": "posted"},
            {"id": 10, "imagePath": "a.jpg", "caption": "", "scheduleTime": "", "status": "posted"},
        ])
        queue = PostQueue(storage)
        queue.prune(limit=1)
        assert [p.image_path for p in queue.list_posts()] == ["b.jpg"]


class TestDuePosts:
    def test_due_when_time_passed(self, queue):
        post = queue.add("a.jpg", "", "2025-01-15T08:59:00Z", now=NOW)
        assert [p.id for p in queue.due_posts(NOW)] == [post.id]

    def test_due_at_exact_time(self, queue):
        queue.add("a.jpg", "", "2025-01-15T09:00:00.000Z", now=NOW)
        assert len(queue.due_posts(NOW)) == 1

    def test_not_due_in_future(self, queue):
        queue.add("a.jpg", "", "2025-01-15T09:01:00Z", now=NOW)
        assert queue.due_posts(NOW) == []

    def test_offset_timezone(self, queue):
        # 17:30 in Tokyo is 08:30 UTC
        queue.add("a.jpg", "", "2025-01-15T17:30:00+09:00", now=NOW)
        assert len(queue.due_posts(NOW)) == 1

    def test_only_scheduled_posts_are_due(self, queue):
        post = queue.add("a.jpg", "", "2025-01-15T08:00:00Z", now=NOW)
        queue.record_result(post.id, PublishResult(success=False, error="boom"), now=NOW)
        assert queue.due_posts(NOW) == []

    def test_unparseable_time_never_due(self, queue):
        queue.add("a.jpg", "", "not a date", now=NOW)
        assert queue.due_posts(NOW) == []

    def test_keeps_queue_order(self, queue):
        a = queue.add("a.jpg", "", "2025-01-15T08:30:00Z", now=NOW)
        b = queue.add("b.jpg", "", "2025-01-15T08:00:00Z", now=NOW)
        assert [p.id for p in queue.due_posts(NOW)] == [a.id, b.id]


class TestRecordResult:
    def test_success(self, queue):
        post = queue.add("a.jpg", "", "2025-01-15T08:00:00Z", now=NOW)
        updated = queue.record_result(post.id, PublishResult(success=True, media_id="m1"), now=NOW)
        assert updated.status == STATUS_POSTED
        assert updated.media_id == "m1"
        assert updated.error is None
        assert updated.posted_at == "2025-01-15T09:00:00.000Z"

    def test_failure(self, queue):
        post = queue.add("a.jpg", "", "2025-01-15T08:00:00Z", now=NOW)
        updated = queue.record_result(post.id, PublishResult(success=False, error="bad token"), now=NOW)
        assert updated.status == STATUS_FAILED
        assert updated.error == "bad token"
        assert updated.posted_at is not None

    def test_success_after_failure_clears_error(self, queue):
        post = queue.add("a.jpg", "", "2025-01-15T08:00:00Z", now=NOW)
        queue.record_result(post.id, PublishResult(success=False, error="bad token"))
        updated = queue.record_result(post.id, PublishResult(success=True, media_id="m2"))
        assert updated.status == STATUS_POSTED
        assert updated.error is None

    def test_persisted(self, queue, storage):
        post = queue.add("a.jpg", "", "2025-01-15T08:00:00Z", now=NOW)
        queue.record_result(post.id, PublishResult(success=False, error="x"))
        assert PostQueue(storage).get(post.id).status == STATUS_FAILED

    def test_missing_post(self, queue):
        assert queue.record_result(42, PublishResult(success=True)) is None


class TestLoad:
    def test_corrupt_file_loads_empty(self, storage):
        storage.path.write_text("{not json", encoding="utf-8")
        assert PostQueue(storage).list_posts() == []

    def test_skips_malformed_records(self, storage):
        storage.save("posts", [
            {"id": 1, "imagePath": "a.jpg", "caption": "", "scheduleTime": "", "status": "scheduled"},
            {"imagePath": "no-id.jpg"},
            "garbage",
            {"id": "not-a-number"},
        ])
        assert [p.id for p in PostQueue(storage).list_posts()] == [1]

    def test_duplicate_ids_keep_first(self, storage):
        storage.save("posts", [
            {"id": 7, "imagePath": "first.jpg", "caption": "", "scheduleTime": "", "status": "scheduled"},
            {"id": 8, "imagePath": "other.jpg", "caption": "", "scheduleTime": "", "status": "scheduled"},
            {"id": 7, "imagePath": "copy.jpg", "caption": "", "scheduleTime": "", "status": "posted"},
        ])
        queue = PostQueue(storage)
        assert [p.id for p in queue.list_posts()] == [7, 8]
        assert queue.get(7).image_path == "first.jpg"
        assert queue.remove(7) is True
        assert queue.get(7) is None

    def test_non_string_error_is_stringified(self, storage):
        storage.save("posts", [
            {"id": 1, "imagePath": "a.jpg", "caption": "", "scheduleTime": "", "status": "failed",
             "error": {"message": "Invalid OAuth"}},
        ])
        post = PostQueue(storage).get(1)
        assert isinstance(post.error, str)
        assert "Invalid OAuth" in post.error
