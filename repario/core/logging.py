# repario/core/logging.py

import logging
from typing import Optional

from repario.core.config import get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once for the API process and the scripts."""
    logging.basicConfig(
        level=level or get_settings().LOG_LEVEL,
        format=LOG_FORMAT,
    )
    # httpx logs every outbound request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
