"""Publishing: one-shot publish with bookkeeping, and the polling dispatcher."""

import asyncio
import sys
from datetime import datetime
from typing import List, Optional, Set

from insta_sake.domain.models import now_utc
from insta_sake.domain.post_queue import PostQueue
from insta_sake.ports.outbound import PublisherPort, PublishResult


def _log(msg: str):
    print(msg, file=sys.stderr)


class PostNotFound(LookupError):
    """Raised when a post id is not in the queue."""


class PublishInProgress(RuntimeError):
    """Raised when the post is already being published."""


# Post IDs currently being published, shared by the dispatcher and manual retries
_in_flight: Set[int] = set()


async def publish_post(queue: PostQueue, publisher: PublisherPort, post_id: int) -> PublishResult:
    """Publish a single post now and record the outcome on it."""
    post = queue.get(post_id)
    if post is None:
        raise PostNotFound(post_id)
    if post_id in _in_flight:
        raise PublishInProgress(post_id)

    _in_flight.add(post_id)
    try:
        _log(f"[publish] post {post_id}: publishing")
        try:
            result = await publisher.publish(post.image_path, post.caption)
        except Exception as e:
            result = PublishResult(success=False, error=str(e) or type(e).__name__)
        queue.record_result(post_id, result)
        if result.success:
            _log(f"[publish] post {post_id}: posted (media {result.media_id})")
        else:
            _log(f"[publish] post {post_id}: failed: {result.error}")
        return result
    finally:
        _in_flight.discard(post_id)


class PostDispatcher:
    """Polls the queue and publishes posts whose schedule time has passed."""

    def __init__(self, queue: PostQueue, publisher: PublisherPort, interval_seconds: float = 60):
        self._queue = queue
        self._publisher = publisher
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, now: Optional[datetime] = None) -> List[PublishResult]:
        """Publish every due post, one after another."""
        now = now or now_utc()
        due = self._queue.due_posts(now)
        if due:
            _log(f"[dispatcher] {len(due)} post(s) due (UTC={now.strftime('%H:%M')})")
        results = []
        for post in due:
            try:
                results.append(await publish_post(self._queue, self._publisher, post.id))
            except PublishInProgress:
                _log(f"[dispatcher] post {post.id}: already publishing, skipped")
            except PostNotFound:
                _log(f"[dispatcher] post {post.id}: deleted before publishing")
        return results

    async def run_forever(self):
        """Check the queue every ``interval_seconds`` and publish due posts."""
        _log(f"[dispatcher] started, polling every {self._interval}s")
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.run_once()
            except Exception as e:
                _log(f"[dispatcher] loop error: {e}")

    def start(self) -> asyncio.Task:
        if not self.running:
            self._task = asyncio.create_task(self.run_forever())
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        _log("[dispatcher] stopped")
