from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from worktime.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure root logging once at application start."""
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
    # SQL echo is controlled by ``debug`` on the engine; keep the logger quiet otherwise.
    if not settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
