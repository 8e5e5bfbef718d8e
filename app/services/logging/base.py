"""
Base logger contract shared by every logging channel.

Loggers accept a message plus an optional ``extra`` dictionary of
structured fields. Field values under sensitive keys are redacted before
they leave the process, which matters here because resolved parameter
values and derived credentials flow through the services.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


REDACTED = "[REDACTED]"

SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "token",
        "secret",
        "secret_value",
        "value",
        "rendered_payload",
        "key",
        "auth",
        "credentials",
        "api_key",
        "access_token",
        "refresh_token",
        "private_key",
        "authorization",
        "cookie",
        "session",
    }
)


class BaseLogger(ABC):
    """Common structured logging interface."""

    _sensitive_fields = SENSITIVE_FIELDS

    def _sanitize_data(self, data: Any) -> Any:
        """
        Recursively redact sensitive fields.

        Args:
            data: Dictionary (or any value) to sanitize

        Returns:
            A copy with sensitive values replaced by ``[REDACTED]``
        """
        if not isinstance(data, dict):
            return data

        sanitized = {}
        for key, value in data.items():
            if str(key).lower() in self._sensitive_fields:
                sanitized[key] = REDACTED
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_data(value)
            elif isinstance(value, list):
                sanitized[key] = [self._sanitize_data(item) for item in value]
            else:
                sanitized[key] = value

        return sanitized

    @abstractmethod
    def _write_log(
        self,
        severity: str,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ) -> None:
        """Emit one log record."""

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self._write_log("DEBUG", message, kwargs.get("extra"))

    def info(self, message: str, **kwargs):
        """Log info message."""
        self._write_log("INFO", message, kwargs.get("extra"))

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self._write_log("WARNING", message, kwargs.get("extra"))

    def error(self, message: str, **kwargs):
        """Log error message."""
        self._write_log("ERROR", message, kwargs.get("extra"))

    def critical(self, message: str, **kwargs):
        """Log critical message."""
        self._write_log("CRITICAL", message, kwargs.get("extra"))

    def exception(self, message: str, **kwargs):
        """Log an error together with the exception currently being handled."""
        import sys

        extra = dict(kwargs.get("extra") or {})
        exc_type, exc_value, _ = sys.exc_info()
        if exc_type is not None:
            extra["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
            }

        self._write_log("ERROR", message, extra, exc_info=True)
