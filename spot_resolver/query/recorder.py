"""
Background recording of successful query results.

The ResultRecorder writes (type, title, link, cover, track count) rows to
a RecordStore without delaying the caller. Each write is an asyncio task
running the blocking store call in a worker thread. Failures are logged
at ERROR from a done-callback and never reach the caller.

Shutdown:
    drain() waits for in-flight writes. With a timeout, whatever is still
    running afterwards is cancelled. A cancelled task stops waiting on its
    worker thread; a write already inside the store still completes.
"""

import asyncio

from spot_resolver.core.logger import get_logger
from spot_resolver.core.models import PlatformQueryResult
from spot_resolver.providers.base import RecordStore

logger = get_logger(__name__)


class ResultRecorder:
    """
    Fire-and-forget writer of PlatformQueryResult records.

    Attributes:
        _store: The record store written to.
        _tasks: Strong references to in-flight tasks, so the event loop
                cannot garbage-collect them mid-write.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of writes not finished yet."""
        return len(self._tasks)

    def record_async(self, link: str, result: PlatformQueryResult) -> None:
        """
        Schedule a write of result to the store and return immediately.

        Args:
            link: The link that was queried; the store's unique key.
            result: Snapshot to record. Callers pass a copy so later edits
                    to their own result are not seen here.

        Without a running event loop the write happens synchronously, with
        errors logged instead of raised.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write_guarded(link, result)
            return

        task = loop.create_task(asyncio.to_thread(self._write, link, result))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _write(self, link: str, result: PlatformQueryResult) -> None:
        self._store.add_record(
            result.folder_type,
            result.title,
            link,
            result.cover_url,
            result.track_count,
        )
        logger.debug(f"Recorded {result.folder_type.name.lower()} '{result.title}' ({link})")

    def _write_guarded(self, link: str, result: PlatformQueryResult) -> None:
        try:
            self._write(link, result)
        except Exception as e:
            logger.error(f"Failed to record result for {link}: {e}", exc_info=True)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Recording task cancelled before it finished")
            return

        error = task.exception()
        if error is not None:
            logger.error(
                f"Failed to record query result: {error}",
                exc_info=(type(error), error, error.__traceback__)
            )

    async def drain(self, timeout: float | None = None) -> int:
        """
        Wait for pending writes.

        Args:
            timeout: Seconds to wait. None waits until all writes finish.

        Returns:
            Number of tasks cancelled because the timeout expired.
        """
        if not self._tasks:
            return 0

        tasks = set(self._tasks)
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        if not still_running:
            return 0

        logger.warning(f"Cancelling {len(still_running)} recording task(s) after {timeout}s")
        for task in still_running:
            task.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)
        return len(still_running)
