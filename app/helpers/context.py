# Cloud Event Context Helpers
# Payload extraction and a mock Pub/Sub event for local runs

import base64
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from app.requests.parameter_manager import ParameterResolveRequest


PUBSUB_EVENT_TYPE = "google.cloud.pubsub.topic.v1.messagePublished"
REQUEST_FIELDS = ("parameter_name", "parameter_version", "location", "create_credential")


def extract_event_payload(data: Any) -> Dict[str, Any]:
    """
    Return the JSON payload carried by a cloud event.

    Pub/Sub events wrap the payload as base64 in ``message.data``; direct
    events carry it as the data mapping itself.
    """
    if not isinstance(data, dict):
        return {}

    message = data.get("message")
    if isinstance(message, dict) and "data" in message:
        raw = message.get("data") or ""
        if not raw:
            return {}
        decoded = json.loads(base64.b64decode(raw).decode("utf-8"))
        return decoded if isinstance(decoded, dict) else {}

    return data


def request_from_payload(
    payload: Dict[str, Any],
) -> Tuple[ParameterResolveRequest, Dict[str, Any]]:
    """Split an event payload into the binding and the run parameters."""
    request = ParameterResolveRequest(
        **{field: payload.get(field) for field in REQUEST_FIELDS}
    )
    run_parameters = payload.get("run_parameters") or {}
    return request, dict(run_parameters)


class MockCloudEvent:
    """Pub/Sub shaped cloud event for running ``main`` locally."""

    def __init__(
        self,
        parameter_name: str = "db-pass",
        parameter_version: str = "",
        location: str = "global",
        create_credential: bool = False,
        run_parameters: Optional[Dict[str, Any]] = None,
        project: str = "local-project",
        topic: str = "parameter-resolve",
    ):
        self.payload = {
            "parameter_name": parameter_name,
            "parameter_version": parameter_version,
            "location": location,
            "create_credential": create_credential,
            "run_parameters": run_parameters or {},
        }
        self.project = project
        self.topic = topic

    def to_dict(self) -> Dict[str, Any]:
        encoded = base64.b64encode(json.dumps(self.payload).encode("utf-8"))
        return {
            "specversion": "1.0",
            "type": PUBSUB_EVENT_TYPE,
            "source": f"//pubsub.googleapis.com/projects/{self.project}/topics/{self.topic}",
            "id": str(uuid.uuid4()),
            "data": {
                "message": {
                    "data": encoded.decode("ascii"),
                    "messageId": str(uuid.uuid4()),
                    "publishTime": datetime.now(timezone.utc).isoformat(),
                },
                "subscription": (
                    f"projects/{self.project}/subscriptions/{self.topic}-sub"
                ),
            },
        }
