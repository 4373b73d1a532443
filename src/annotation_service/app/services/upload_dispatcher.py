import asyncio

from loguru import logger

from .domain import UploadOutcome
from .upload_coordinator import UploadCoordinator


class UploadDispatcher:
    """
    Runs upload coordinator calls as detached tasks.

    The event loop only keeps weak references to tasks, so in-flight uploads
    are held here until they finish. Callers never await the returned task
    on the request path.
    """

    def __init__(self, coordinator: UploadCoordinator | None = None):
        if coordinator is None:
            raise ValueError(
                "UploadCoordinator must be provided via dependency injection"
            )

        self.coordinator = coordinator
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def submit(self, content_type: str, data: bytes) -> asyncio.Task:
        task = asyncio.create_task(self.coordinator.upload(content_type, data))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)

        if task.cancelled():
            logger.warning("Upload task was cancelled before finishing")
            return

        error = task.exception()
        if error is not None:
            logger.opt(exception=error).error(f"Upload task crashed: {error}")

    async def drain(self, timeout: float | None = None) -> list[UploadOutcome]:
        """Wait for in-flight uploads and return the outcomes of those that finished."""
        if not self._tasks:
            return []

        tasks = list(self._tasks)
        logger.info(f"Waiting for {len(tasks)} in-flight uploads")

        done, pending = await asyncio.wait(tasks, timeout=timeout)

        if pending:
            logger.warning(
                f"{len(pending)} uploads still running after {timeout}s, leaving them"
            )

        return [
            task.result()
            for task in done
            if not task.cancelled() and task.exception() is None
        ]
