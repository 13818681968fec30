import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# 第三方库默认太吵，统一压到 WARNING
NOISY_LOGGERS = ("urllib3", "PIL", "multipart")


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Make sure the root logger has a handler and the wanted level.
    Uvicorn installs handlers before importing the app; Celery workers and scripts do not.
    """
    resolved_level = (level or DEFAULT_LEVEL).upper()
    root_logger = logging.getLogger()

    if not root_logger.handlers:
        logging.basicConfig(
            level=resolved_level,
            format=LOG_FORMAT,
            handlers=[logging.StreamHandler(sys.stdout)],
        )
    else:
        root_logger.setLevel(resolved_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    return logging.getLogger("wa_hub")


logger = configure_logging()
