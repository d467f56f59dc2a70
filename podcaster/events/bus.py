"""
In-process asynchronous publish/subscribe.
publish() schedules one task per subscriber on the running loop and returns immediately; handler errors are logged, never raised to the publisher.
"""
import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Set

logger = logging.getLogger(__name__)

PODCAST_REQUESTED = "podcast.requested"
PODCAST_SCRAPED = "podcast.scraped"
SEGMENT_AUDIO_REQUESTED = "podcast.segment.audio_requested"
SEGMENT_AUDIO_GENERATED = "podcast.segment.audio_generated"
ALL_AUDIO_GENERATED = "podcast.all_audio_generated"
PODCAST_COMPLETED = "podcast.completed"
PODCAST_FAILED = "podcast.failed"

Handler = Callable[[Any], Any]


class EventBus:
    """Fire-and-forget event dispatcher decoupling pipeline stages.
    Why available: A stage reports its result by publishing; the next stage is whoever subscribed, so no stage calls another directly."""

    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, event: str, handler: Handler) -> None:
        """Register handler (sync or async callable taking the payload) for event."""
        self._subscribers[event].append(handler)

    def subscribers(self, event: str) -> List[Handler]:
        return list(self._subscribers.get(event, []))

    @property
    def pending(self) -> int:
        return len(self._pending)

    def publish(self, event: str, payload: Any) -> None:
        """Schedule every subscriber of event with payload and return without waiting. Must be called from code running on the event loop.
        Why available: Used by the submit path and by every stage to hand off to the next step."""
        loop = asyncio.get_running_loop()
        handlers = self._subscribers.get(event, [])
        if not handlers:
            logger.debug("event_without_subscribers", extra={"event": event})
        for handler in handlers:
            task = loop.create_task(self._dispatch(event, handler, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _dispatch(self, event: str, handler: Handler, payload: Any) -> None:
        try:
            result = handler(payload)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "event_handler_failed",
                extra={"event": event, "handler": getattr(handler, "__qualname__", repr(handler))},
            )

    async def drain(self) -> None:
        """Wait until no handler tasks are in flight, including tasks scheduled by handlers while draining.
        Why available: Lets tests and graceful shutdown wait for a job to settle without polling."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
