"""Fire-and-forget notifications for the reporting surface"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Set

logger = logging.getLogger(__name__)

PARTICIPATION_CHANGED = "participation_changed"
RESPONSE_SAVED = "response_saved"
SURVEY_COMPLETED = "survey_completed"

Listener = Callable[[str, Dict[str, Any]], Awaitable[None]]


class Notifier:
    """Runs every listener as a background task, never waits for them"""

    def __init__(self):
        self._listeners: List[Listener] = []
        self._tasks: Set[asyncio.Task] = set()

    def subscribe(self, listener: Listener):
        self._listeners.append(listener)

    def emit(self, event: str, payload: Dict[str, Any]):
        for listener in self._listeners:
            task = asyncio.create_task(listener(event, payload))
            self._tasks.add(task)
            task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Notification listener failed: %r", error, exc_info=error)

    async def drain(self):
        """Wait for pending notifications (shutdown and tests)"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


async def log_event(event: str, payload: Dict[str, Any]):
    logger.info("Event %s: %s", event, payload)
