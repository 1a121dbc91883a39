import logging
from functools import partial
from pathlib import Path
from typing import Callable

from ..config import DEFAULT_POLL_INTERVAL
from .download import DownloadHandler
from .errors import ClassifiedError, ConversionFailure, classify, explain_job_failure
from .interfaces import ConversionGateway, FileSaver
from .models import CandidateFile, Conversion, ConversionStatus, SessionState
from .poller import ConversionPoller
from .upload import UploadController
from .validation import validate

logger = logging.getLogger(__name__)

Listener = Callable[[SessionState], None]

STATUS_LABELS: dict[str, tuple[str, str]] = {
    ConversionStatus.PENDING: (
        "Queued for processing",
        "Your file is in the queue and will be processed shortly",
    ),
    ConversionStatus.PROCESSING: (
        "Converting PDF to Word",
        "Analyzing and converting your document...",
    ),
    ConversionStatus.COMPLETED: (
        "Conversion complete!",
        "Your document is ready for download",
    ),
    ConversionStatus.FAILED: (
        "Conversion failed",
        "Unable to convert the file. Please try again with a different PDF.",
    ),
}


def processing_hint(job: Conversion) -> str | None:
    if job.status != ConversionStatus.PROCESSING:
        return None
    return "Applying OCR technology..." if job.is_scanned_pdf else "Processing your document..."


class SessionController:
    """Owns the state of one conversion session.

    Composes validation, upload, polling and download. It is the only writer
    of `SessionState`; every change is pushed to subscribers as a new
    immutable snapshot. `reset()` bumps the session counter so callbacks and
    results belonging to an earlier session are ignored.
    """

    def __init__(
        self,
        gateway: ConversionGateway,
        saver: FileSaver,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._uploader = UploadController(gateway)
        self._poller = ConversionPoller(gateway, interval=poll_interval)
        self._downloader = DownloadHandler(gateway, saver)
        self._state = SessionState()
        self._session = 0
        self._listeners: list[Listener] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def poller(self) -> ConversionPoller:
        return self._poller

    @property
    def can_download(self) -> bool:
        job = self._state.active_job
        return job is not None and job.status == ConversionStatus.COMPLETED

    @property
    def failure_explanation(self) -> str | None:
        job = self._state.active_job
        if job is None or job.status != ConversionStatus.FAILED:
            return None
        return explain_job_failure(job.error_message)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, state: SessionState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _update(self, **changes: object) -> None:
        self._set(self._state.evolve(**changes))

    async def start(self, file: CandidateFile) -> bool:
        """Validate, upload and begin polling. Returns False if the session ended in an error."""
        if self._state.is_uploading or self._state.active_job is not None:
            raise RuntimeError("a conversion is already in progress; reset() first")

        result = validate(file)
        if not result.ok:
            logger.info("Rejected %s: %s", file.name, result.error.code)
            self._update(file_name=file.name, last_error=result.error, large_file_warning=False)
            return False

        session = self._session
        self._update(
            file_name=file.name,
            last_error=None,
            large_file_warning=result.large_file_warning,
            is_uploading=True,
            upload_progress=0,
        )

        def on_progress(value: int) -> None:
            if session == self._session and value > self._state.upload_progress:
                self._update(upload_progress=value)

        try:
            job = await self._uploader.upload(file, on_progress)
        except Exception as e:
            if session != self._session:
                return False
            logger.warning("Upload of %s failed: %s", file.name, e)
            self._update(is_uploading=False, last_error=classify(e))
            return False

        if session != self._session:
            logger.info("Discarding conversion %s created before reset", job.id)
            return False

        self._update(is_uploading=False, upload_progress=100, active_job=job)
        if not job.is_terminal:
            generation = self._poller.start(
                job.id,
                partial(self._on_job_update, session),
                partial(self._on_poll_error, session),
            )
            self._update(poll_generation=generation)
        return True

    def _on_job_update(self, session: int, job: Conversion) -> None:
        if session != self._session:
            return
        if job.is_terminal:
            self._update(active_job=job, poll_generation=None)
        else:
            self._update(active_job=job)

    def _on_poll_error(self, session: int, error: ClassifiedError) -> None:
        if session != self._session:
            return
        self._update(last_error=error, poll_generation=None)

    def reset(self) -> None:
        """Stop polling and return to the pre-start state. Safe to call at any time."""
        self._poller.stop()
        self._session += 1
        self._set(SessionState())

    def dismiss_error(self) -> None:
        if self._state.last_error is not None:
            self._update(last_error=None)

    async def download(self) -> Path:
        if not self.can_download:
            raise RuntimeError("download is only available for a completed conversion")
        job = self._state.active_job
        session = self._session
        try:
            path = await self._downloader.download(job.id, job.original_file_name)
        except ConversionFailure as e:
            if session == self._session:
                self._update(last_error=e.error)
            raise
        if session == self._session:
            self._update(saved_path=path)
        return path

    async def wait(self) -> None:
        """Wait for the current poll loop to stop."""
        await self._poller.wait()

    def __enter__(self) -> "SessionController":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.reset()
