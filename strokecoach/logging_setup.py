import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from strokecoach.config import settings


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger("strokecoach")
    logger.setLevel(level or settings.LOG_LEVEL)

    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        log_path = os.path.join(settings.LOG_DIR, settings.LOG_FILE)
        file_handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)

    # Also configure root logger to see logs from httpx / mistralai
    logging.basicConfig(level=logging.INFO)
    return logger
