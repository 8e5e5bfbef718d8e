"""
Standard-library logging channel.

Used for local development and tests. Each record is rendered as a single
JSON line so the output stays machine readable, like the Cloud Logging
channel.
"""

import json
import logging
from typing import Any, Dict, Optional

from app.helpers.environment import env

from .base import BaseLogger


LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class StandardLogger(BaseLogger):
    """Structured logger backed by ``logging.getLogger``."""

    def __init__(self, service_name: str, level: str = "INFO"):
        self.service_name = service_name
        self.level = level.upper()
        self.logger = logging.getLogger(service_name)
        self.logger.setLevel(LEVELS.get(self.level, logging.INFO))

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(handler)

    def _write_log(
        self,
        severity: str,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ) -> None:
        payload = {
            "severity": severity,
            "message": message,
            "service": self.service_name,
            "environment": env("APP_ENVIRONMENT", "unknown"),
            **self._sanitize_data(extra or {}),
        }
        self.logger.log(
            LEVELS.get(severity, logging.INFO),
            json.dumps(payload, default=str),
            exc_info=exc_info,
        )
