from dataclasses import dataclass

from ..config import MAX_FILE_SIZE, RECOMMENDED_SIZE
from .errors import ERROR_MESSAGES, ClassifiedError, ErrorCode
from .models import CandidateFile

PDF_MIME = "application/pdf"
_MB = 1024 * 1024


@dataclass(frozen=True)
class ValidationResult:
    error: ClassifiedError | None = None
    large_file_warning: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def is_pdf(file: CandidateFile) -> bool:
    return file.content_type == PDF_MIME or file.name.lower().endswith(".pdf")


def validate(file: CandidateFile) -> ValidationResult:
    """Check type, then upper size bound, then emptiness. Never touches the network."""
    if not is_pdf(file):
        return ValidationResult(
            error=ERROR_MESSAGES[ErrorCode.INVALID_FILE_TYPE].with_message(
                "Invalid file type. Please upload a PDF file only."
            )
        )

    if file.size > MAX_FILE_SIZE:
        return ValidationResult(
            error=ERROR_MESSAGES[ErrorCode.FILE_TOO_LARGE].with_message(
                f"File too large. Maximum size is {MAX_FILE_SIZE // _MB}MB. "
                f"Your file is {file.size / _MB:.2f}MB."
            )
        )

    if file.size <= 0:
        return ValidationResult(error=ERROR_MESSAGES[ErrorCode.EMPTY_FILE])

    return ValidationResult(large_file_warning=file.size > RECOMMENDED_SIZE)
