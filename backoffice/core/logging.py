import logging

from backoffice.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the API process."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    # motor/pymongo are chatty at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)
