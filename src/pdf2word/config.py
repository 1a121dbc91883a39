import os
from dataclasses import dataclass

MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB
RECOMMENDED_SIZE = 50 * 1024 * 1024  # 50MB

DEFAULT_API_BASE = "http://localhost:8000"
DEFAULT_POLL_INTERVAL = 2.0

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    """Client configuration, usually built from the environment."""

    api_base: str = DEFAULT_API_BASE
    poll_interval: float = DEFAULT_POLL_INTERVAL
    upload_timeout: float = 60.0
    request_timeout: float = 30.0
    log_level: str = "INFO"
    show_error_codes: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        api_base = os.getenv("PDF2WORD_API_BASE", os.getenv("API_BASE", DEFAULT_API_BASE)).rstrip("/")
        return cls(
            api_base=api_base,
            poll_interval=float(os.getenv("PDF2WORD_POLL_INTERVAL", str(DEFAULT_POLL_INTERVAL))),
            upload_timeout=float(os.getenv("PDF2WORD_UPLOAD_TIMEOUT", "60")),
            request_timeout=float(os.getenv("PDF2WORD_REQUEST_TIMEOUT", "30")),
            log_level=os.getenv("PDF2WORD_LOG_LEVEL", "INFO").upper(),
            show_error_codes=_env_flag("PDF2WORD_UI_SHOW_ERROR_CODES"),
        )
