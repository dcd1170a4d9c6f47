import logging
import json
import sys
from datetime import datetime
from typing import Any, Dict


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs JSON strings for structured logging.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # logger.info("msg", extra={"owner": "...", "event": "..."})
        if hasattr(record, "owner"):
            log_record["owner"] = record.owner

        if hasattr(record, "event"):
            log_record["event"] = record.event

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record)


def get_logger(name: str, level=logging.INFO) -> logging.Logger:
    """
    Returns a logger configured with JSON formatting.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Check if handler already exists to avoid duplicates
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

    return logger


def log_event(logger: logging.Logger, event: str, data: Dict[str, Any], level=logging.INFO):
    """
    Log a structured event. data is merged into the JSON payload and the
    payload is emitted as the message.
    """
    payload = {
        "event": event,
        **data
    }
    logger.log(level, json.dumps(payload, default=str), extra={"event": event})
