import asyncio
import logging
import random
from collections.abc import Callable

from hybrid_ai.utils.speeches import format_speech, get_random_speech

logger = logging.getLogger(__name__)

Emitter = Callable[[str], None]


class ProgressAnnouncer:
    """
    Periodic user-facing status while a pipeline run is in flight.

    Purely decorative: it never sees pipeline data and its failures never
    reach the pipeline. The owner must call ``stop()`` on every exit path;
    ``async with`` does that automatically.
    """

    def __init__(
        self,
        context: str = "general",
        interval_s: float = 10.0,
        emit: Emitter | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._context = context
        self._interval_s = interval_s
        self._emit = emit or logger.info
        self._rng = rng
        self._task: asyncio.Task[None] | None = None
        self._stats_announcements: int = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def announcements(self) -> int:
        return self._stats_announcements

    async def start(self) -> "ProgressAnnouncer":
        """Start the background task; returns the handle to pass to ``stop()``."""
        if self._task is None:
            self._task = asyncio.create_task(
                self._periodic_announce(), name=f"progress:{self._context}"
            )
        return self

    def _announce(self) -> None:
        speech = get_random_speech(self._context, self._rng)
        try:
            self._emit(format_speech(speech))
        except Exception as e:
            logger.debug("Progress emitter failed: %s", e)
            return
        self._stats_announcements += 1

    async def _periodic_announce(self) -> None:
        self._announce()
        while True:
            await asyncio.sleep(self._interval_s)
            self._announce()

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish. Idempotent."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            # Only the announcer's own cancellation is expected here; a cancel
            # aimed at the caller must keep propagating.
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise

    async def __aenter__(self) -> "ProgressAnnouncer":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


AnnouncerFactory = Callable[[str], ProgressAnnouncer]


def make_announcer_factory(interval_s: float, emit: Emitter | None = None) -> AnnouncerFactory:
    def _factory(context: str) -> ProgressAnnouncer:
        return ProgressAnnouncer(context=context, interval_s=interval_s, emit=emit)

    return _factory
