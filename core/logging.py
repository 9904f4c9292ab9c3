import logging

from core.config import settings


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging() -> None:
    """
    Configure root logging once for the process.
    Safe to call multiple times (basicConfig is a no-op when handlers exist).
    """
    level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    # uvicorn access log duplicates our request logs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
