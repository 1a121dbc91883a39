import logging
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(level: str | int = logging.INFO) -> None:
    """Configure console logging for the client.

    Safe to call more than once: no handler is added if the root logger already streams somewhere.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    has_console_handler = any(isinstance(h, logging.StreamHandler) for h in root_logger.handlers)
    if not has_console_handler:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(console_handler)

    # requests/urllib3 connection chatter is noise at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("pdf2word").setLevel(level)
