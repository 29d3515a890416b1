import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

import seqlog

from core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging_to_console(level: int = logging.INFO) -> None:
    root = logging.getLogger()
    root.setLevel(level)
    if any(getattr(h, "_console_handler", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._console_handler = True
    root.addHandler(handler)


def setup_logging_to_file(
    app: str, level: int = logging.INFO, logger: Optional[logging.Logger] = None
) -> None:
    """Write ``logger`` (root by default) to ``LOG_DIR/<app>.log`` and ship to Seq when configured."""
    logger = logger or logging.getLogger()
    os.makedirs(settings.LOG_DIR, exist_ok=True)

    file_handler = RotatingFileHandler(
        os.path.join(settings.LOG_DIR, f"{app}.log"),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler.setLevel(level)
    logger.addHandler(file_handler)

    if settings.SEQ_SERVER_URL:
        seqlog.log_to_seq(
            server_url=settings.SEQ_SERVER_URL,
            api_key=settings.SEQ_SERVER_API_KEY,
            level=level,
            batch_size=10,
            auto_flush_timeout=10,
            override_root_logger=False,
        )
        seqlog.set_global_log_properties(App=app, Environment=settings.ENVIRONMENT_NAME)
