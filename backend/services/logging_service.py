"""
Logging service: rotating file output plus an in-memory ring buffer of recent
records served at /logs/recent. Traverse modules log through the standard
library; this module only decides where the records go.
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from collections import deque
from typing import Deque, Dict, Any, List, Optional

from config import settings


LOG_FILE = os.path.join(settings.LOG_DIR, "traverse.log")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class RingBufferHandler(logging.Handler):
    """Keeps the most recent records in memory."""

    def __init__(self, maxlen: int = 5000):
        super().__init__()
        self.buffer: Deque[Dict[str, Any]] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = {
                "ts": record.created,
                "level": record.levelname,
                "levelno": record.levelno,
                "name": record.name,
                "message": record.getMessage(),
                "lineno": record.lineno,
            }
            if record.exc_info:
                entry["exception"] = self.format(record).splitlines()[-1]
            self.buffer.append(entry)
        except Exception:
            self.handleError(record)

    def get_recent(self, limit: int = 500, min_level: Optional[str] = None, name_prefix: Optional[str] = None) -> List[Dict[str, Any]]:
        entries = list(self.buffer)
        if min_level:
            threshold = logging.getLevelName(min_level.upper())
            if isinstance(threshold, int):
                entries = [e for e in entries if e["levelno"] >= threshold]
        if name_prefix:
            entries = [e for e in entries if e["name"].startswith(name_prefix)]
        return entries[-limit:] if limit > 0 else entries

    def clear(self) -> None:
        self.buffer.clear()


_ring_handler: Optional[RingBufferHandler] = None


def get_ring_handler() -> RingBufferHandler:
    global _ring_handler
    if _ring_handler is None:
        _ring_handler = RingBufferHandler(maxlen=settings.LOG_RING_BUFFER_SIZE)
    return _ring_handler


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def init_logging(log_to_file: bool = True):
    """Attach the file and ring-buffer handlers to the root logger. Safe to call twice."""
    formatter = logging.Formatter(LOG_FORMAT)
    root = logging.getLogger()
    if root.level in (logging.NOTSET, logging.WARNING):
        root.setLevel(_level(settings.LOG_LEVEL))

    if log_to_file and not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=settings.LOG_FILE_MAX_BYTES,
            backupCount=settings.LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    ring = get_ring_handler()
    if ring not in root.handlers:
        ring.setFormatter(formatter)
        ring.setLevel(_level(settings.LOG_RING_BUFFER_MIN_LEVEL))
        root.addHandler(ring)

    # request lines drown out traverse records
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
