"""
Logging configuration for the API process.

Modules log through ``logging.getLogger(__name__)``; this helper only wires
the root logger once at startup.
"""

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: int | str = logging.INFO, log_file: Optional[str] = None) -> None:
    """Configure the root logger.

    Parameters
    ----------
    level:
        Logging level, either numeric or a name such as ``"DEBUG"``.
    log_file:
        Optional path; when set, records are also written there.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
