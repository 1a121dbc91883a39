import logging

from pdf2word.config import DEFAULT_API_BASE, Settings
from pdf2word.logging_config import setup_logging


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("PDF2WORD_API_BASE", "API_BASE", "PDF2WORD_POLL_INTERVAL", "PDF2WORD_UI_SHOW_ERROR_CODES"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.api_base == DEFAULT_API_BASE
        assert settings.poll_interval == 2.0
        assert not settings.show_error_codes

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PDF2WORD_API_BASE", "https://convert.example.com/")
        monkeypatch.setenv("PDF2WORD_POLL_INTERVAL", "0.5")
        monkeypatch.setenv("PDF2WORD_UI_SHOW_ERROR_CODES", "yes")
        monkeypatch.setenv("PDF2WORD_LOG_LEVEL", "debug")
        settings = Settings.from_env()
        assert settings.api_base == "https://convert.example.com"
        assert settings.poll_interval == 0.5
        assert settings.show_error_codes
        assert settings.log_level == "DEBUG"

    def test_generic_api_base_fallback(self, monkeypatch):
        monkeypatch.delenv("PDF2WORD_API_BASE", raising=False)
        monkeypatch.setenv("API_BASE", "http://backend:8000")
        assert Settings.from_env().api_base == "http://backend:8000"


def test_setup_logging_does_not_stack_handlers():
    root = logging.getLogger()
    saved = list(root.handlers)
    saved_level = root.level
    try:
        for h in list(root.handlers):
            root.removeHandler(h)
        setup_logging("DEBUG")
        setup_logging("DEBUG")
        assert len(root.handlers) == 1
        assert logging.getLogger("pdf2word").level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.WARNING
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
        for h in saved:
            root.addHandler(h)
        root.setLevel(saved_level)
