"""Post queue: durable list of scheduled posts, due-checking and bookkeeping.

Pure domain logic; persistence goes through a StoragePort.
"""

import sys
from datetime import datetime
from typing import List, Optional

from insta_sake.domain.models import (
    STATUS_FAILED,
    STATUS_POSTED,
    STATUS_SCHEDULED,
    ScheduledPost,
    iso_utc,
    now_utc,
    parse_schedule_time,
)
from insta_sake.ports.outbound import PublishResult, StoragePort

_STORAGE_KEY = "posts"
DEFAULT_POST_LIMIT = 100


def _log(msg: str):
    print(msg, file=sys.stderr)


class PostQueue:
    """Manages scheduled posts: CRUD, pruning, due-checking, result recording."""

    def __init__(self, storage: StoragePort, limit: int = DEFAULT_POST_LIMIT):
        self._storage = storage
        self._limit = limit
        self._posts: List[ScheduledPost] = []
        self._load()

    def add(
        self,
        image_path: str,
        caption: str,
        schedule_time: str,
        now: Optional[datetime] = None,
    ) -> ScheduledPost:
        """Create a scheduled post, persist, and prune the oldest overflow."""
        now = now or now_utc()
        post_id = int(now.timestamp() * 1000)
        taken = {p.id for p in self._posts}
        while post_id in taken:
            post_id += 1

        post = ScheduledPost(
            id=post_id,
            image_path=image_path,
            caption=caption,
            schedule_time=schedule_time,
            status=STATUS_SCHEDULED,
            created_at=iso_utc(now),
        )
        self._posts.append(post)
        self._save()
        self.prune()
        return post

    def list_posts(self) -> List[ScheduledPost]:
        return list(self._posts)

    def get(self, post_id: int) -> Optional[ScheduledPost]:
        return next((p for p in self._posts if p.id == post_id), None)

    def remove(self, post_id: int) -> bool:
        """Remove post by ID. Returns True if found and removed."""
        before = len(self._posts)
        self._posts = [p for p in self._posts if p.id != post_id]
        if len(self._posts) == before:
            return False
        self._save()
        return True

    def prune(self, limit: Optional[int] = None) -> int:
        """Drop the oldest posts beyond ``limit``. Returns how many were removed."""
        limit = self._limit if limit is None else limit
        overflow = len(self._posts) - limit
        if overflow <= 0:
            return 0
        oldest = sorted(self._posts, key=lambda p: p.created_sort_key())[:overflow]
        doomed = {p.id for p in oldest}
        self._posts = [p for p in self._posts if p.id not in doomed]
        self._save()
        _log(f"[PostQueue] pruned {len(doomed)} old post(s), {len(self._posts)} kept")
        return len(doomed)

    def due_posts(self, now: datetime) -> List[ScheduledPost]:
        """Return scheduled posts whose time has come, in queue order."""
        due = []
        for post in self._posts:
            if post.status != STATUS_SCHEDULED:
                continue
            try:
                when = parse_schedule_time(post.schedule_time)
            except ValueError:
                _log(f"[PostQueue] post {post.id}: bad scheduleTime {post.schedule_time!r}, skipped")
                continue
            if when <= now:
                due.append(post)
        return due

    def record_result(
        self,
        post_id: int,
        result: PublishResult,
        now: Optional[datetime] = None,
    ) -> Optional[ScheduledPost]:
        """Store the outcome of a publish attempt on the post."""
        post = self.get(post_id)
        if post is None:
            return None
        post.status = STATUS_POSTED if result.success else STATUS_FAILED
        post.posted_at = iso_utc(now or now_utc())
        post.error = None if result.success else result.error
        if result.success:
            post.media_id = result.media_id
        self._save()
        return post

    def _load(self):
        self._posts = []
        seen = set()
        for item in self._storage.load(_STORAGE_KEY):
            if not isinstance(item, dict) or "id" not in item:
                continue
            try:
                post = ScheduledPost.from_dict(item)
            except (TypeError, ValueError) as e:
                _log(f"[PostQueue] skipping malformed record {item.get('id')!r}: {e}")
                continue
            if post.id in seen:
                _log(f"[PostQueue] skipping duplicate record {post.id}")
                continue
            seen.add(post.id)
            self._posts.append(post)

    def _save(self):
        self._storage.save(_STORAGE_KEY, [p.to_dict() for p in self._posts])
