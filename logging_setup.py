# logging_setup.py
import logging
from typing import Optional

import config


def setup_logging(level: Optional[str] = None):
    """Configures global logging based on settings in config.py."""
    logging.basicConfig(
        level=getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO),
        format=config.LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    # requests/urllib3 log every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
