"""
Google Cloud Logging channel.

Writes structured entries (jsonPayload) through the Cloud Logging client
when running outside Cloud Run. On Cloud Run and Cloud Functions 2nd gen
stdout is already collected as structured logs, so entries are printed as
single JSON lines with a ``severity`` field instead.
"""

import inspect
import json
import os
import random
import sys
from functools import lru_cache
from typing import Any, Dict, Optional

from google.cloud import logging as gcp_logging
from google.cloud.logging_v2 import Resource

from app.helpers.environment import env

from .base import BaseLogger


@lru_cache(maxsize=1)
def get_gcp_logging_client():
    """Get or create the shared Cloud Logging client."""
    try:
        return gcp_logging.Client()
    except Exception as e:
        print(
            json.dumps(
                {
                    "severity": "WARNING",
                    "message": "Cloud Logging client unavailable, using stdout",
                    "error": str(e),
                }
            ),
            flush=True,
        )
        return None


class GCloudLogger(BaseLogger):
    """
    Structured logger for Google Cloud Logging.

    Adds source location, trace correlation and the monitored resource
    (Cloud Run revision or Cloud Function) to each entry. Sampling is
    controlled by ``LOG_SAMPLE_RATE``.
    """

    def __init__(
        self,
        service_name: str,
        level: str = "INFO",
        sample_rate: float = None,
    ):
        self.service_name = service_name
        self.level = level.upper()
        self.sample_rate = (
            sample_rate
            if sample_rate is not None
            else float(env("LOG_SAMPLE_RATE", "1.0"))
        )
        self.project_root = os.path.abspath(
            os.path.join(os.path.dirname(__file__), "../../..")
        )

        if env("K_SERVICE") is not None:
            self.client = None
            self.logger = None
            self.use_gcp = False
        else:
            self.client = get_gcp_logging_client()
            self.logger = self.client.logger(service_name) if self.client else None
            self.use_gcp = self.logger is not None

        self.resource = self._get_resource()

    def _get_resource(self) -> Resource:
        """Describe the monitored resource this process runs as."""
        service = env("K_SERVICE")
        function_name = env("FUNCTION_NAME")

        if service:
            return Resource(
                type="cloud_run_revision",
                labels={
                    "service_name": service,
                    "revision_name": env("K_REVISION", "unknown"),
                    "configuration_name": env("K_CONFIGURATION", service),
                    "location": env("FUNCTION_REGION", "us-central1"),
                },
            )
        if function_name:
            return Resource(
                type="cloud_function",
                labels={
                    "function_name": function_name,
                    "region": env("FUNCTION_REGION", "us-central1"),
                },
            )
        return Resource(type="global", labels={})

    def _get_trace_context(self) -> Optional[str]:
        """
        Build the trace resource name from X-Cloud-Trace-Context.

        Header format is ``TRACE_ID/SPAN_ID;o=TRACE_TRUE``.
        """
        trace_header = env("HTTP_X_CLOUD_TRACE_CONTEXT")
        project_id = env("GCP_PROJECT") or env("GOOGLE_CLOUD_PROJECT")
        if not trace_header or not project_id:
            return None

        trace_id = trace_header.split("/")[0]
        if not trace_id:
            return None
        return f"projects/{project_id}/traces/{trace_id}"

    def _get_source_location(self) -> Dict[str, str]:
        """Find the first caller frame outside the logging plumbing."""
        for frame_info in inspect.stack():
            filename = frame_info.filename
            normalized_path = filename.replace("\\", "/")

            if any(
                skip in normalized_path
                for skip in (
                    "/services/logging/",
                    "/helpers/logger.py",
                    "site-packages/",
                )
            ):
                continue

            if filename.startswith(self.project_root):
                return {
                    "file": os.path.relpath(filename, self.project_root),
                    "line": str(frame_info.lineno),
                    "function": frame_info.function or "unknown",
                }

        return {"file": "unknown", "line": "0", "function": "unknown"}

    def _should_sample(self) -> bool:
        return random.random() <= self.sample_rate

    def _build_payload(
        self, severity: str, message: str, extra: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        return {
            "severity": severity,
            "message": message,
            "service": self.service_name,
            "environment": env("APP_ENVIRONMENT", "unknown"),
            "version": env("APP_VERSION", "unknown"),
            **self._sanitize_data(extra or {}),
        }

    def _write_log(
        self,
        severity: str,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ) -> None:
        if not self._should_sample():
            return

        payload = self._build_payload(severity, message, extra)

        if not self.use_gcp:
            print(json.dumps(payload, default=str), flush=True)
            return

        source_location = self._get_source_location()
        try:
            self.logger.log_struct(
                {k: v for k, v in payload.items() if k != "severity"},
                severity=severity,
                resource=self.resource,
                labels={
                    "service": self.service_name,
                    "environment": env("APP_ENVIRONMENT", "production"),
                },
                trace=self._get_trace_context(),
                source_location=(
                    source_location if source_location["file"] != "unknown" else None
                ),
            )
        except Exception as e:
            payload["logging_error"] = str(e)
            print(json.dumps(payload, default=str), file=sys.stderr, flush=True)
