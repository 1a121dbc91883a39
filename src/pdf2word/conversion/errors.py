"""
Failure taxonomy for the conversion client.

Every failure signal (validation, transport, job-level) ends up as a
`ClassifiedError`: a stable code plus the title/message/severity shown to the
user. Transport failures are classified by walking `CLASSIFICATION_RULES`
top to bottom; the first matching predicate wins.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable


class Severity:
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ErrorCode:
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    EMPTY_FILE = "EMPTY_FILE"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    NOT_FOUND = "NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    PASSWORD_PROTECTED = "PASSWORD_PROTECTED"
    INVALID_PDF = "INVALID_PDF"
    EMPTY_PDF = "EMPTY_PDF"
    CONVERSION_FAILED = "CONVERSION_FAILED"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    PROCESSING_TIMEOUT = "PROCESSING_TIMEOUT"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ClassifiedError:
    code: str
    title: str
    message: str
    severity: str = Severity.ERROR

    def with_message(self, message: str | None) -> "ClassifiedError":
        """Return a copy using `message` when it is non-empty."""
        if not message:
            return self
        return replace(self, message=message)


ERROR_MESSAGES: dict[str, ClassifiedError] = {
    c.code: c
    for c in (
        ClassifiedError(
            ErrorCode.INVALID_FILE_TYPE,
            "Invalid File Type",
            "Please upload a PDF file only. Other file types are not supported.",
        ),
        ClassifiedError(
            ErrorCode.FILE_TOO_LARGE,
            "File Too Large",
            "The file size exceeds the maximum limit. Please upload a smaller PDF file.",
        ),
        ClassifiedError(
            ErrorCode.EMPTY_FILE,
            "Empty File",
            "The selected file is empty. Please choose a valid PDF file.",
        ),
        ClassifiedError(
            ErrorCode.UPLOAD_FAILED,
            "Upload Failed",
            "Failed to upload the file. Please check your internet connection and try again.",
        ),
        ClassifiedError(
            ErrorCode.NOT_FOUND,
            "Not Found",
            "The requested resource was not found. Please try uploading the file again.",
        ),
        ClassifiedError(
            ErrorCode.SERVER_ERROR,
            "Server Error",
            "The server encountered an error. Please try again later.",
        ),
        ClassifiedError(
            ErrorCode.SERVICE_UNAVAILABLE,
            "Service Unavailable",
            "The service is temporarily unavailable. Please try again in a few minutes.",
        ),
        ClassifiedError(
            ErrorCode.TIMEOUT_ERROR,
            "Request Timeout",
            "The request took too long to complete. Please try again.",
        ),
        ClassifiedError(
            ErrorCode.NETWORK_ERROR,
            "Network Error",
            "Unable to connect to the server. Please check your internet connection.",
        ),
        ClassifiedError(
            ErrorCode.PASSWORD_PROTECTED,
            "Password Protected PDF",
            "This PDF is password-protected. Please remove the password and try again.",
            Severity.WARNING,
        ),
        ClassifiedError(
            ErrorCode.INVALID_PDF,
            "Invalid PDF",
            "The PDF file appears to be corrupted or invalid. Please try a different file.",
        ),
        ClassifiedError(
            ErrorCode.EMPTY_PDF,
            "Empty PDF",
            "The PDF file appears to be empty or has no content to convert.",
            Severity.WARNING,
        ),
        ClassifiedError(
            ErrorCode.CONVERSION_FAILED,
            "Conversion Failed",
            "Unable to convert the PDF. The file might be corrupted or password-protected.",
        ),
        ClassifiedError(
            ErrorCode.DOWNLOAD_FAILED,
            "Download Failed",
            "Failed to download the converted file. Please try again.",
        ),
        ClassifiedError(
            ErrorCode.PROCESSING_TIMEOUT,
            "Processing Timeout",
            "The conversion is taking longer than expected. Please try again with a smaller file.",
        ),
    )
}


class TransportError(Exception):
    """Raised by gateways when a request fails.

    `status_code` is None when no HTTP response was received at all.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail
        self.code = code

    @property
    def has_response(self) -> bool:
        return self.status_code is not None


class ConversionFailure(Exception):
    """An operation failed; `error` is what the user should see."""

    def __init__(self, error: ClassifiedError) -> None:
        super().__init__(f"[{error.code}] {error.title}: {error.message}")
        self.error = error


Predicate = Callable[[BaseException], bool]
Resolver = Callable[[BaseException], ClassifiedError]


def _status(error: BaseException) -> int | None:
    return getattr(error, "status_code", None)


def _detail(error: BaseException) -> str:
    return str(getattr(error, "detail", None) or "")


def _message(error: BaseException) -> str:
    return str(getattr(error, "message", None) or error)


def _http(status: int, needle: str | None = None) -> Predicate:
    def predicate(error: BaseException) -> bool:
        if _status(error) != status:
            return False
        return needle is None or needle in _detail(error).lower()

    return predicate


def _no_response(error: BaseException) -> bool:
    return isinstance(error, TransportError) and not error.has_response


def _timed_out(error: BaseException) -> bool:
    if not _no_response(error):
        return False
    code = str(getattr(error, "code", None) or "").lower()
    return "timeout" in code or code == "econnaborted" or "timeout" in _message(error).lower()


def _mentions(*needles: str) -> Predicate:
    def predicate(error: BaseException) -> bool:
        text = _message(error).lower()
        return any(n in text for n in needles)

    return predicate


def _preset(code: str) -> Resolver:
    return lambda _error: ERROR_MESSAGES[code]


def _preset_with_detail(code: str) -> Resolver:
    return lambda error: ERROR_MESSAGES[code].with_message(_detail(error))


def _unknown(error: BaseException) -> ClassifiedError:
    return ClassifiedError(
        ErrorCode.UNKNOWN,
        "An Error Occurred",
        _message(error) or "Something went wrong. Please try again.",
    )


CLASSIFICATION_RULES: list[tuple[Predicate, Resolver]] = [
    # HTTP responses take precedence over anything in the exception text
    (_http(400, "file type"), _preset(ErrorCode.INVALID_FILE_TYPE)),
    (_http(400, "size"), _preset(ErrorCode.FILE_TOO_LARGE)),
    (_http(400, "password"), _preset(ErrorCode.PASSWORD_PROTECTED)),
    (_http(400), _preset_with_detail(ErrorCode.UPLOAD_FAILED)),
    (_http(404), _preset(ErrorCode.NOT_FOUND)),
    (_http(413), _preset(ErrorCode.FILE_TOO_LARGE)),
    (_http(500), _preset_with_detail(ErrorCode.SERVER_ERROR)),
    (_http(503), _preset(ErrorCode.SERVICE_UNAVAILABLE)),
    (_timed_out, _preset(ErrorCode.TIMEOUT_ERROR)),
    (_no_response, _preset(ErrorCode.NETWORK_ERROR)),
    (_mentions("file type"), _preset(ErrorCode.INVALID_FILE_TYPE)),
    (_mentions("too large", "size"), _preset(ErrorCode.FILE_TOO_LARGE)),
    (_mentions("corrupt"), _preset(ErrorCode.INVALID_PDF)),
    (_mentions("password"), _preset(ErrorCode.PASSWORD_PROTECTED)),
    (_mentions("empty"), _preset(ErrorCode.EMPTY_PDF)),
]


def classify(error: BaseException) -> ClassifiedError:
    """Map any failure to a user-facing error; see CLASSIFICATION_RULES."""
    if isinstance(error, ConversionFailure):
        return error.error
    for predicate, resolve in CLASSIFICATION_RULES:
        if predicate(error):
            return resolve(error)
    return _unknown(error)


_JOB_FAILURE_FAMILIES: list[tuple[tuple[str, ...], str]] = [
    (("password", "encrypted"), "This PDF is password-protected. Please remove the password and try again."),
    (("corrupt", "invalid pdf"), "The PDF file appears to be corrupted or invalid. Please try a different file."),
    (("empty", "no content"), "The PDF appears to be empty or has no content to convert."),
    (("timeout", "took too long"), "The conversion took too long. Please try again with a smaller file."),
    (("ocr", "tesseract"), "OCR processing failed. The scanned document may be too complex or low quality."),
    (("memory", "resource"), "The server ran out of resources. Please try again later or use a smaller file."),
]


def explain_job_failure(error_message: str | None) -> str:
    """Turn a FAILED job's `error_message` into a sentence for the user."""
    if not error_message:
        return "An unknown error occurred. Please try again."
    text = error_message.lower()
    for needles, explanation in _JOB_FAILURE_FAMILIES:
        if any(n in text for n in needles):
            return explanation
    return error_message


def extract_detail(body: Any) -> str | None:
    """Pull the human-readable `detail`/`message` out of an error body."""
    if not isinstance(body, dict):
        return None
    for key in ("detail", "message"):
        value = body.get(key)
        if isinstance(value, dict):
            value = value.get("message")
        if isinstance(value, list):
            # validation errors arrive as a list of {"msg": ...}
            value = "; ".join(str(v.get("msg", v)) if isinstance(v, dict) else str(v) for v in value)
        if value:
            return str(value)
    return None
