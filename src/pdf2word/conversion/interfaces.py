from pathlib import Path
from typing import Callable, Protocol

from .models import CandidateFile, Conversion

BytesProgress = Callable[[int, int], None]


class ConversionGateway(Protocol):
    """HTTP contract of the remote conversion service.

    Implementations are blocking; callers offload them with asyncio.to_thread.
    Every failure is raised as `TransportError`.
    """

    def create_conversion(self, file: CandidateFile, on_bytes: BytesProgress | None = None) -> Conversion:
        """Upload `file` as multipart field `file`; `on_bytes(sent, total)` tracks the body."""

    def get_conversion(self, conversion_id: str) -> Conversion:
        ...

    def download_conversion(self, conversion_id: str) -> bytes:
        ...

    def list_conversions(self, skip: int = 0, limit: int = 50) -> list[Conversion]:
        ...

    def delete_conversion(self, conversion_id: str) -> None:
        ...


class FileSaver(Protocol):
    def save(self, file_name: str, data: bytes) -> Path:
        """Persist `data` under `file_name` and return where it went."""
