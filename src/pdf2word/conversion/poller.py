import asyncio
import logging
from typing import Callable

from ..config import DEFAULT_POLL_INTERVAL
from .errors import ClassifiedError, TransportError, classify
from .interfaces import ConversionGateway
from .models import Conversion

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[Conversion], None]
ErrorCallback = Callable[[ClassifiedError], None]


class PollerState:
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class ConversionPoller:
    """Fetches one job until it reaches a terminal state.

    The next fetch is only scheduled once the previous round-trip finished, so
    requests never overlap. Each loop gets a new generation; scheduled
    callbacks and in-flight results from an older generation are dropped.
    A failed status fetch stops the loop without retrying.
    """

    def __init__(self, gateway: ConversionGateway, *, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._gateway = gateway
        self._interval = interval
        self._state = PollerState.IDLE
        self._generation = 0
        self._timer: asyncio.TimerHandle | None = None
        self._inflight: set[asyncio.Task] = set()
        self._done = asyncio.Event()
        self._done.set()

    @property
    def state(self) -> str:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def running(self) -> bool:
        return self._state == PollerState.RUNNING

    def start(
        self,
        job_id: str,
        on_update: UpdateCallback,
        on_error: ErrorCallback,
        *,
        immediate: bool = True,
    ) -> int:
        if self._state == PollerState.RUNNING:
            raise RuntimeError("poller is already running; stop() it first")
        self._generation += 1
        self._state = PollerState.RUNNING
        self._done.clear()
        logger.debug("Polling conversion %s (generation %d)", job_id, self._generation)
        self._schedule(job_id, on_update, on_error, 0 if immediate else self._interval)
        return self._generation

    def stop(self) -> None:
        if self._state != PollerState.RUNNING:
            return
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        # an in-flight fetch may still finish; its generation no longer matches
        self._finish()

    async def wait(self) -> None:
        await self._done.wait()

    def _finish(self) -> None:
        self._state = PollerState.STOPPED
        self._done.set()

    def _schedule(self, job_id: str, on_update: UpdateCallback, on_error: ErrorCallback, delay: float) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._fire, self._generation, job_id, on_update, on_error)

    def _fire(self, generation: int, job_id: str, on_update: UpdateCallback, on_error: ErrorCallback) -> None:
        if generation != self._generation:
            return
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._fetch(generation, job_id, on_update, on_error))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _fetch(self, generation: int, job_id: str, on_update: UpdateCallback, on_error: ErrorCallback) -> None:
        try:
            job = await asyncio.to_thread(self._gateway.get_conversion, job_id)
        except TransportError as e:
            if generation != self._generation:
                logger.debug("Dropping stale poll failure for %s", job_id)
                return
            logger.warning("Status check for %s failed: %s", job_id, e)
            self._finish()
            on_error(classify(e))
            return

        if generation != self._generation:
            logger.debug("Dropping stale poll result for %s (%s)", job_id, job.status)
            return

        if job.is_terminal:
            logger.info("Conversion %s finished with status %s", job_id, job.status)
            self._finish()

        try:
            on_update(job)
        except Exception:
            logger.exception("Update handler for %s failed; polling stopped", job_id)
            if generation == self._generation:
                self.stop()
            return

        # on_update may have stopped us
        if not job.is_terminal and generation == self._generation:
            self._schedule(job_id, on_update, on_error, self._interval)
