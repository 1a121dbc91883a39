import asyncio
import logging
import math
from typing import Callable

from .interfaces import ConversionGateway
from .models import CandidateFile, Conversion

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


def percent(sent: int, total: int) -> int | None:
    """Rounded upload percentage, or None when the total is unknown."""
    if total <= 0:
        return None
    value = math.floor(sent * 100 / total + 0.5)
    return min(max(value, 0), 100)


class UploadController:
    """Submits one validated file and reports progress on the event loop."""

    def __init__(self, gateway: ConversionGateway) -> None:
        self._gateway = gateway

    async def upload(self, file: CandidateFile, on_progress: ProgressCallback | None = None) -> Conversion:
        loop = asyncio.get_running_loop()
        last = -1

        def deliver(value: int) -> None:
            nonlocal last
            if value <= last:
                return
            last = value
            if on_progress is not None:
                on_progress(value)

        def on_bytes(sent: int, total: int) -> None:
            # runs on the worker thread
            value = percent(sent, total)
            if value is not None:
                loop.call_soon_threadsafe(deliver, value)

        logger.info("Uploading %s (%d bytes)", file.name, file.size)
        job = await asyncio.to_thread(self._gateway.create_conversion, file, on_bytes)
        logger.info("Created conversion %s with status %s", job.id, job.status)
        return job
