import logging

from devevent.core.config import get_log_level

LOGGER_NAMESPACE = "devevent"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under ``devevent.``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def configure_logging() -> None:
    """Attach a stream handler to the package logger once, with the level from LOG_LEVEL."""
    root = logging.getLogger(LOGGER_NAMESPACE)
    root.setLevel(get_log_level())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
