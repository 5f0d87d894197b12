# src/school_portal/app_logger.py
import logging, os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DEFAULT_LEVEL = os.getenv("PORTAL_LOG_LEVEL", "INFO").upper()

def setup_logging(level: str | None = None):
    level_value = getattr(logging, (level or _DEFAULT_LEVEL).upper(), logging.INFO)

    # Main package logger
    logger = logging.getLogger("school_portal")
    logger.setLevel(level_value)

    # Avoid duplicate console handlers
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(ch)

    for h in logger.handlers:
        h.setLevel(level_value)

    logger.propagate = False
    return logger

def get_logger(name: str | None = None) -> logging.Logger:
    base = logging.getLogger("school_portal")
    return base.getChild(name) if name else base

logger = setup_logging()
