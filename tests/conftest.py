import threading
from collections import Counter
from datetime import datetime, timezone

import pytest

from pdf2word.conversion import CandidateFile, Conversion, ConversionStatus, MemorySaver

MB = 1024 * 1024


def make_job(status: str = ConversionStatus.PENDING, **overrides) -> Conversion:
    data = {
        "id": "job-1",
        "original_file_name": "report.pdf",
        "file_size": 2 * MB,
        "status": status,
        "conversion_type": "PDF_TO_WORD",
        "is_scanned_pdf": False,
        "error_message": None,
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "completed_at": None,
    }
    data.update(overrides)
    return Conversion(**data)


class FakeGateway:
    """In-memory conversion service.

    `responses` is consumed by get_conversion one entry per call; each entry is
    a Conversion, a status string, or an exception to raise. The last entry
    repeats once the list is exhausted.
    """

    def __init__(self, responses=(), *, upload_error=None, download_error=None, artifact=b"PK\x03\x04docx", chunks=4):
        self.responses = list(responses)
        self.upload_error = upload_error
        self.download_error = download_error
        self.artifact = artifact
        self.chunks = chunks
        self.calls = Counter()
        self.uploaded: list[CandidateFile] = []
        self.deleted: list[str] = []
        self.lock = threading.Lock()
        self.file_name = "report.pdf"

    @property
    def network_calls(self) -> int:
        return sum(self.calls.values())

    def create_conversion(self, file, on_bytes=None):
        self.calls["create"] += 1
        if self.upload_error is not None:
            raise self.upload_error
        self.uploaded.append(file)
        self.file_name = file.name
        if on_bytes is not None and self.chunks:
            for i in range(1, self.chunks + 1):
                on_bytes(file.size * i // self.chunks, file.size)
        return make_job(original_file_name=file.name, file_size=file.size)

    def get_conversion(self, conversion_id):
        with self.lock:
            self.calls["get"] += 1
            if not self.responses:
                raise AssertionError("unexpected status fetch")
            entry = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(entry, BaseException):
            raise entry
        if isinstance(entry, str):
            entry = make_job(entry, id=conversion_id, original_file_name=self.file_name)
        return entry

    def download_conversion(self, conversion_id):
        self.calls["download"] += 1
        if self.download_error is not None:
            raise self.download_error
        return self.artifact

    def list_conversions(self, skip=0, limit=50):
        self.calls["list"] += 1
        return [make_job(ConversionStatus.COMPLETED), make_job(ConversionStatus.FAILED, id="job-2")][skip:skip + limit]

    def delete_conversion(self, conversion_id):
        self.calls["delete"] += 1
        self.deleted.append(conversion_id)


@pytest.fixture
def pdf_file():
    """A 2 MiB PDF held in memory."""
    return CandidateFile.from_bytes("report.pdf", b"%PDF-1.4\n" + b"0" * (2 * MB - 9), "application/pdf")


@pytest.fixture
def empty_pdf():
    return CandidateFile.from_bytes("empty.pdf", b"", "application/pdf")


@pytest.fixture
def saver():
    return MemorySaver()
