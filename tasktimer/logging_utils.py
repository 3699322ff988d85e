import logging
import sys

from .config import settings

# Our request middleware already writes one access line per request
_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine")


def setup_logging(level: str | None = None, stream=None) -> None:
    """Configure logging for the API and the playback client.

    Format: time level logger message k=v ...
    """
    level = (level or settings.LOG_LEVEL).upper()
    root = logging.getLogger()
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if root.handlers:
        # Already configured (uvicorn, pytest): only align the level
        root.setLevel(level)
        return

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(level)
