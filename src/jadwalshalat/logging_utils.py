from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# HTTP plumbing under requests logs every connection at DEBUG.
NOISY_LOGGERS = ("urllib3", "charset_normalizer")


class LoggerFactory:
    @staticmethod
    def create(
        name: str,
        log_file: Optional[Path] = None,
        level: int = logging.INFO,
        quiet: Iterable[str] = NOISY_LOGGERS,
    ) -> logging.Logger:
        """Configure ``name`` for the CLI; ``""`` configures the root logger.

        Diagnostics go to stderr because stdout carries the schedule. The level
        is applied on every call, handlers only on the first.
        """
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for noisy in quiet:
            logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
        if logger.handlers:
            return logger

        formatter = logging.Formatter(LOG_FORMAT)

        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

        if log_file is not None:
            log_path = Path(log_file).expanduser()
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        return logger
