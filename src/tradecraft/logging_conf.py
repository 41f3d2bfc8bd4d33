# src/tradecraft/logging_conf.py
import logging
import sys
from typing import Optional

from tradecraft.config import settings

# Third-party loggers that log every request at INFO.
NOISY_LOGGERS = ("httpx", "stripe", "sqlalchemy.engine")


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger("tradecraft")
    if logger.handlers:
        return logger

    name = level or settings.LOG_LEVEL or ("DEBUG" if settings.ENV == "dev" else "INFO")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, name.upper(), logging.INFO))

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return logger
