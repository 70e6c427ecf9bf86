"""
Logging setup for the portal API.

Development gets readable one-line records, production gets JSON lines that
log aggregators can parse. Call setup_logging() once at startup; modules use
logging.getLogger(__name__) as usual.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from config import Config

logger = logging.getLogger("portal")

_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                log_data[key] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def setup_logging(level: Optional[str] = None) -> None:
    handler = logging.StreamHandler(sys.stdout)
    if Config.is_production():
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel((level or Config.LOG_LEVEL).upper())


def log_security_event(event: str, ip: str, **details: Any) -> None:
    logger.warning(
        f"Security Event: {event}",
        extra={"event": event, "ip": ip, "details": details, "severity": "security"},
    )


def log_auth_event(event: str, success: bool = True, email: Optional[str] = None,
                   error: Optional[str] = None) -> None:
    level = logging.INFO if success else logging.WARNING
    logger.log(
        level,
        f"Auth {event}",
        extra={"event": event, "email": email, "success": success, "error": error},
    )
