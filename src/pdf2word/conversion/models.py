import mimetypes
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any

from .errors import ClassifiedError


class ConversionStatus:
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    ALL = frozenset({PENDING, PROCESSING, COMPLETED, FAILED})
    TERMINAL = frozenset({COMPLETED, FAILED})


class ConversionType:
    PDF_TO_WORD = "PDF_TO_WORD"


def _parse_timestamp(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Conversion:
    """Read-only snapshot of a job as reported by the conversion service."""

    id: str
    original_file_name: str
    file_size: int
    status: str
    conversion_type: str = ConversionType.PDF_TO_WORD
    is_scanned_pdf: bool = False
    error_message: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ConversionStatus.TERMINAL

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Conversion":
        status = str(data.get("status", "")).upper()
        if status not in ConversionStatus.ALL:
            raise ValueError(f"unknown conversion status: {data.get('status')!r}")
        return cls(
            id=str(data["id"]),
            original_file_name=str(data.get("original_file_name", "")),
            file_size=int(data.get("file_size") or 0),
            status=status,
            # Unknown kinds are kept verbatim so newer services do not break parsing
            conversion_type=str(data.get("conversion_type") or ConversionType.PDF_TO_WORD),
            is_scanned_pdf=bool(data.get("is_scanned_pdf") or False),
            error_message=data.get("error_message"),
            created_at=_parse_timestamp(data.get("created_at")),
            completed_at=_parse_timestamp(data.get("completed_at")),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "original_file_name": self.original_file_name,
            "file_size": self.file_size,
            "status": self.status,
            "conversion_type": self.conversion_type,
            "is_scanned_pdf": self.is_scanned_pdf,
            "error_message": self.error_message,
            "created_at": _format_timestamp(self.created_at),
            "completed_at": _format_timestamp(self.completed_at),
        }


@dataclass(frozen=True)
class CandidateFile:
    """A file picked by the user, not yet validated.

    Content is either held in memory (`data`) or read lazily from `path`.
    """

    name: str
    size: int
    content_type: str = ""
    data: bytes | None = None
    path: Path | None = None

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> "CandidateFile":
        p = Path(path)
        if content_type is None:
            content_type = mimetypes.guess_type(p.name)[0] or ""
        return cls(name=p.name, size=p.stat().st_size, content_type=content_type, path=p)

    @classmethod
    def from_bytes(cls, name: str, data: bytes, content_type: str = "") -> "CandidateFile":
        return cls(name=name, size=len(data), content_type=content_type, data=data)

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError(f"{self.name} has no content")
        return self.path.read_bytes()


@dataclass(frozen=True)
class SessionState:
    """Everything the presentation layer needs to render one session."""

    file_name: str | None = None
    upload_progress: int = 0
    is_uploading: bool = False
    active_job: Conversion | None = None
    poll_generation: int | None = None
    last_error: ClassifiedError | None = None
    large_file_warning: bool = False
    saved_path: Path | None = None

    def evolve(self, **changes: Any) -> "SessionState":
        return replace(self, **changes)
