from functools import lru_cache

import functions_framework
from cloudevents.http.event import CloudEvent

from app.helpers.context import extract_event_payload, request_from_payload
from app.helpers.environment import env
from app.helpers.logger import get_logger
from app.services.credential_source import FileCredentialSource
from app.services.parameter_resolver import ParameterResolutionService

logger = get_logger("spartan.parameter_resolver.main")
from config.app import config


@lru_cache(maxsize=1)
def get_resolution_service() -> ParameterResolutionService:
    """One service per instance so the registry and client pool are shared."""
    return ParameterResolutionService.from_config(
        config, FileCredentialSource(config.credentials_dir)
    )


@functions_framework.cloud_event
def main(cloud_event: CloudEvent) -> None:
    try:
        payload = extract_event_payload(cloud_event.data)
        request, run_parameters = request_from_payload(payload)

        logger.info(
            "Spartan Received Cloud Event - Parameter Resolver",
            extra={
                "event_type": cloud_event["type"],
                "event_source": cloud_event["source"],
                "event_id": cloud_event["id"],
                "app_environment": env("APP_ENVIRONMENT", "unknown"),
                "log_level": env("LOG_LEVEL", "INFO"),
                "log_channel": env("LOG_CHANNEL", "default"),
                "parameter_name": request.parameter_name,
                "use_parameter": request.use_parameter,
            },
        )

        if not request.use_parameter:
            logger.info("No parameter bound to this run, nothing to resolve")
            return

        result = get_resolution_service().resolve_for_run(request, run_parameters)

        logger.info(
            "Parameter resolution completed",
            extra={
                **result.parameter.to_output(),
                "credential_created": result.credential is not None,
                "warning": result.warning,
            },
        )

    except Exception as e:
        logger.exception("Failed to process", extra={"error": str(e)})
        raise  # Causes Pub/Sub to retry

    # No return value needed for Pub/Sub triggers


if __name__ == "__main__":
    """
    Local testing entry point.
    Run with: python main.py
    """
    from app.helpers.context import MockCloudEvent

    # Create a mock CloudEvent for testing
    mock_event_data = MockCloudEvent().to_dict()

    # Create CloudEvent from mock data
    test_event = CloudEvent(
        attributes={
            "specversion": mock_event_data["specversion"],
            "type": mock_event_data["type"],
            "source": mock_event_data["source"],
            "id": mock_event_data["id"],
        },
        data=mock_event_data["data"],
    )

    # Test the function locally
    print("=" * 60)
    print("Testing Cloud Function locally with mock GCP CloudEvent")
    print("=" * 60)

    try:
        main(test_event)
        print("\n✓ Function executed successfully")
    except Exception as e:
        print(f"\n✗ Function failed: {e}")
        raise
