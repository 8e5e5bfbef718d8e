# Logger Helper
# Selects the logging channel configured through LOG_CHANNEL

from functools import lru_cache

from app.helpers.environment import env
from app.services.logging.base import BaseLogger


@lru_cache(maxsize=None)
def get_logger(service_name: str) -> BaseLogger:
    """
    Return the structured logger for a service.

    ``LOG_CHANNEL=gcloud`` selects Google Cloud Logging; anything else
    uses the standard library channel. ``LOG_LEVEL`` sets the threshold.

    Args:
        service_name: Dotted name identifying the emitting component

    Returns:
        A logger exposing debug/info/warning/error/critical/exception
    """
    channel = (env("LOG_CHANNEL", "default") or "default").lower()
    level = env("LOG_LEVEL", "INFO")

    if channel == "gcloud":
        from app.services.logging.gcloud import GCloudLogger

        return GCloudLogger(service_name, level=level)

    from app.services.logging.standard import StandardLogger

    return StandardLogger(service_name, level=level)
