import json
import logging
import os
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler

from flask import has_request_context, request

DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "clinic_scheduler.log"

_CONFIGURED = "_clinic_configured"


class JsonFormatter(logging.Formatter):
    """One JSON object per line; request method/path/actor are added inside a request."""

    def format(self, record):
        entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if has_request_context():
            entry["method"] = request.method
            entry["path"] = request.path
            actor = request.headers.get("X-User-Id")
            if actor:
                entry["actor"] = actor

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logger(log_dir: str = DEFAULT_LOG_DIR, log_file: str = DEFAULT_LOG_FILE, level="INFO"):
    """Attach the JSON file and console handlers to the root logger, once per process."""
    root = logging.getLogger()
    root.setLevel(level)
    if getattr(root, _CONFIGURED, False):
        return root

    os.makedirs(log_dir, exist_ok=True)
    formatter = JsonFormatter()

    # daily rotation, two weeks kept
    file_handler = TimedRotatingFileHandler(
        filename=os.path.join(log_dir, log_file),
        when="midnight",
        backupCount=14,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    setattr(root, _CONFIGURED, True)
    return root
