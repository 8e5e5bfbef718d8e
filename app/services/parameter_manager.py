# Parameter Manager Service
# Typed access to Google Cloud Parameter Manager for parameter resolution

import json
import threading
import time
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.api_core.client_options import ClientOptions
from google.auth.credentials import Credentials
from google.cloud import parametermanager_v1
from google.oauth2 import service_account

from app.exceptions.parameter_manager import (
    ClientInitException,
    CredentialNotFoundException,
    InvalidParameterValueException,
    ParameterAccessDeniedException,
    ParameterConnectionException,
    ParameterInternalErrorException,
    ParameterManagerException,
    ParameterNotFoundException,
    ParameterQuotaExceededException,
    ParameterTimeoutException,
    ParameterUnavailableException,
    ParameterVersionNotFoundException,
)
from app.helpers.logger import get_logger
from app.models.parameter_manager import (
    GLOBAL_LOCATION,
    ParameterIdentity,
    ParameterMetadata,
    ParameterVersionSummary,
    build_parameter_path,
    build_version_locator,
    is_global_location,
    parse_version_locator,
)
from app.services.credential_source import CredentialSource


CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
REGIONAL_ENDPOINT_TEMPLATE = "parametermanager.{location}.rep.googleapis.com"
ENABLED_VERSIONS_FILTER = "disabled=false"
NEWEST_FIRST_ORDER = "create_time desc"


def regional_endpoint(location: str) -> Optional[str]:
    """API endpoint for a location, or None for the default global endpoint."""
    if is_global_location(location):
        return None
    return REGIONAL_ENDPOINT_TEMPLATE.format(location=location)


class ParameterStoreClient:
    """
    Read-only client for Google Cloud Parameter Manager.

    One instance wraps one channel, scoped to a single location: the
    default global endpoint for "global" (or empty), otherwise the
    regional ``parametermanager.{location}.rep.googleapis.com`` endpoint.

    All remote calls block, are issued without client-side retries, and
    accept an optional ``timeout`` in seconds that is forwarded to the
    transport. Google API errors are mapped to the exceptions in
    ``app.exceptions.parameter_manager``.

    Attributes:
        project_id: Google Cloud project that owns the parameters
        location: Location this client's channel targets
        credentials: Credentials used for the channel (None means ADC)
        client: The underlying ``ParameterManagerClient``

    Example:
        >>> client = ParameterStoreClient("my-project", location="us-central1",
        ...                               credentials=creds)
        >>> identity = ParameterIdentity(name="db-pass", location="us-central1")
        >>> metadata = client.get_parameter_metadata(identity)
        >>> versions = client.list_versions(identity)
        >>> payload = client.render_version(versions[0].locator)
    """

    def __init__(
        self,
        project_id: str,
        location: str = GLOBAL_LOCATION,
        credentials: Optional[Credentials] = None,
        client: Optional[Any] = None,
    ):
        self.logger = get_logger("app.services.parameter_manager")
        self.project_id = project_id
        self.location = location or GLOBAL_LOCATION
        self.credentials = credentials
        self.client = client if client is not None else self._initialize_client()

    def _initialize_client(self):
        """
        Create the Parameter Manager channel for this client's location.

        Raises:
            ClientInitException: If the client cannot be constructed
        """
        start_time = time.time()
        api_endpoint = regional_endpoint(self.location)

        try:
            client_options = (
                ClientOptions(api_endpoint=api_endpoint) if api_endpoint else None
            )
            client = parametermanager_v1.ParameterManagerClient(
                credentials=self.credentials, client_options=client_options
            )
        except Exception as e:
            self.logger.error(
                "Failed to initialize Parameter Manager client",
                extra={
                    "project_id": self.project_id,
                    "location": self.location,
                    "api_endpoint": api_endpoint,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            raise ClientInitException(
                f"Failed to initialize Parameter Manager client for location "
                f"'{self.location}': {str(e)}"
            ) from e

        self.logger.info(
            "Parameter Manager client initialized",
            extra={
                "project_id": self.project_id,
                "location": self.location,
                "api_endpoint": api_endpoint or "default",
                "initialization_time_ms": round((time.time() - start_time) * 1000, 2),
                "credential_type": (
                    type(self.credentials).__name__ if self.credentials else "default"
                ),
            },
        )
        return client

    def close(self) -> None:
        """Close the underlying gRPC channel."""
        self.client.transport.close()
        self.logger.debug(
            "Parameter Manager client closed",
            extra={"project_id": self.project_id, "location": self.location},
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def _log_operation_start(self, operation: str, **context) -> float:
        """
        Log the start of an operation and return start time for timing.

        Args:
            operation: Name of the operation being started
            **context: Additional context to include in logs

        Returns:
            Start time for calculating operation duration
        """
        start_time = time.time()
        self.logger.debug(
            f"Starting {operation}",
            extra={
                "operation": operation,
                "project_id": self.project_id,
                "location": self.location,
                **context,
            },
        )
        return start_time

    def _log_operation_success(self, operation: str, start_time: float, **context):
        duration_ms = round((time.time() - start_time) * 1000, 2)
        self.logger.info(
            f"Successfully completed {operation}",
            extra={
                "operation": operation,
                "project_id": self.project_id,
                "location": self.location,
                "operation_duration_ms": duration_ms,
                "operation_status": "success",
                **context,
            },
        )

    def _log_operation_error(
        self, operation: str, start_time: float, error: Exception, **context
    ):
        duration_ms = round((time.time() - start_time) * 1000, 2)
        self.logger.error(
            f"Failed to complete {operation}",
            extra={
                "operation": operation,
                "project_id": self.project_id,
                "location": self.location,
                "operation_duration_ms": duration_ms,
                "operation_status": "error",
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
        )

    def _call_options(self, timeout: Optional[float]) -> Dict[str, Any]:
        # retry=None disables the GAPIC default retry policy.
        options: Dict[str, Any] = {"retry": None}
        if timeout is not None:
            options["timeout"] = timeout
        return options

    def parameter_path(self, identity: ParameterIdentity) -> str:
        return build_parameter_path(self.project_id, identity.location, identity.name)

    def version_locator(self, identity: ParameterIdentity, version_id: str) -> str:
        return build_version_locator(
            self.project_id, identity.location, identity.name, version_id
        )

    def _format_name(self, value: Any) -> str:
        try:
            return parametermanager_v1.ParameterFormat(value).name
        except ValueError:
            return str(value)

    def _map_not_found_exception(
        self, parameter_name: str, version: str
    ) -> ParameterManagerException:
        if version:
            return ParameterVersionNotFoundException(
                f"Parameter '{parameter_name}' version '{version}' not found "
                f"in project '{self.project_id}' location '{self.location}'"
            )
        return ParameterNotFoundException(
            f"Parameter '{parameter_name}' not found in project "
            f"'{self.project_id}' location '{self.location}'"
        )

    def _map_failed_precondition_exception(
        self, parameter_name: str, version: str, error_msg: str
    ) -> ParameterManagerException:
        if "disabled" in error_msg.lower() or "destroyed" in error_msg.lower():
            return ParameterVersionNotFoundException(
                f"Parameter '{parameter_name}' version '{version}' is not accessible "
                f"(disabled or destroyed): {error_msg}"
            )
        return ParameterManagerException(
            f"Operation failed due to precondition: {error_msg}"
        )

    def _map_gcp_exception(
        self, e: Exception, operation: str, context: Optional[dict] = None
    ) -> ParameterManagerException:
        """
        Map a Google Cloud API exception to a Parameter Manager exception.

        Args:
            e: The original exception
            operation: Description of the operation that failed
            context: parameter_name and, for version-level calls, version

        Returns:
            The matching ParameterManagerException subclass
        """
        context = context or {}
        parameter_name = context.get("parameter_name", "unknown")
        version = context.get("version") or ""
        error_msg = str(e)

        if isinstance(e, gcp_exceptions.NotFound):
            mapped = self._map_not_found_exception(parameter_name, version)
        elif isinstance(e, gcp_exceptions.FailedPrecondition):
            mapped = self._map_failed_precondition_exception(
                parameter_name, version, error_msg
            )
        elif isinstance(e, gcp_exceptions.PermissionDenied):
            mapped = ParameterAccessDeniedException(
                f"Permission denied for {operation} on parameter '{parameter_name}': "
                f"{error_msg}. Ensure the service account has the "
                f"'Parameter Manager Parameter Accessor' role."
            )
        elif isinstance(e, gcp_exceptions.Unauthenticated):
            mapped = ParameterAccessDeniedException(
                f"Authentication failed for {operation}: {error_msg}"
            )
        elif isinstance(e, (gcp_exceptions.InvalidArgument, gcp_exceptions.OutOfRange)):
            mapped = InvalidParameterValueException(
                f"Invalid argument for {operation}: {error_msg}"
            )
        elif isinstance(
            e, (gcp_exceptions.ResourceExhausted, gcp_exceptions.TooManyRequests)
        ):
            mapped = ParameterQuotaExceededException(
                f"Quota/rate limit exceeded for {operation}: {error_msg}"
            )
        elif isinstance(e, (gcp_exceptions.DeadlineExceeded, TimeoutError)):
            mapped = ParameterTimeoutException(
                f"Operation timed out during {operation}: {error_msg}"
            )
        elif isinstance(e, gcp_exceptions.ServiceUnavailable):
            mapped = ParameterUnavailableException(
                f"Service unavailable during {operation}: {error_msg}"
            )
        elif isinstance(
            e, (gcp_exceptions.InternalServerError, gcp_exceptions.DataLoss)
        ):
            mapped = ParameterInternalErrorException(
                f"Internal server error during {operation}: {error_msg}"
            )
        elif isinstance(e, (gcp_exceptions.RetryError, ConnectionError, OSError)):
            mapped = ParameterConnectionException(
                f"Network connectivity issue during {operation}: {error_msg}"
            )
        else:
            mapped = ParameterManagerException(
                f"Unexpected error during {operation}: {error_msg}. "
                f"Error type: {type(e).__name__}"
            )

        self.logger.debug(
            "Mapped GCP exception to custom exception",
            extra={
                "operation": operation,
                "original_exception": type(e).__name__,
                "mapped_exception": type(mapped).__name__,
                **context,
            },
        )
        return mapped

    def get_parameter_metadata(
        self, identity: ParameterIdentity, timeout: Optional[float] = None
    ) -> ParameterMetadata:
        """
        Fetch a parameter's metadata (its declared payload format).

        Raises:
            ParameterNotFoundException: If the parameter does not exist
            ParameterManagerException: For any other API failure
        """
        operation = "parameter metadata retrieval"
        parameter_path = self.parameter_path(identity)
        start_time = self._log_operation_start(
            operation, parameter_name=identity.name
        )

        try:
            parameter = self.client.get_parameter(
                request={"name": parameter_path}, **self._call_options(timeout)
            )
        except Exception as e:
            self._log_operation_error(
                operation, start_time, e, parameter_name=identity.name
            )
            raise self._map_gcp_exception(
                e, operation, {"parameter_name": identity.name}
            ) from e

        metadata = ParameterMetadata(
            locator=parameter_path, format=self._format_name(parameter.format_)
        )
        self._log_operation_success(
            operation,
            start_time,
            parameter_name=identity.name,
            format_type=metadata.format,
        )
        return metadata

    def list_versions(
        self, identity: ParameterIdentity, timeout: Optional[float] = None
    ) -> List[ParameterVersionSummary]:
        """
        List a parameter's enabled versions, newest first.

        The pager is drained into a list so callers get one complete
        snapshot per call.

        Raises:
            ParameterNotFoundException: If the parameter disappeared
            ParameterManagerException: For any other API failure
        """
        operation = "parameter version listing"
        start_time = self._log_operation_start(
            operation, parameter_name=identity.name
        )
        request = parametermanager_v1.ListParameterVersionsRequest(
            parent=self.parameter_path(identity),
            filter=ENABLED_VERSIONS_FILTER,
            order_by=NEWEST_FIRST_ORDER,
        )

        try:
            versions = [
                ParameterVersionSummary(
                    locator=version.name,
                    disabled=bool(version.disabled),
                    create_time=version.create_time or None,
                )
                for version in self.client.list_parameter_versions(
                    request=request, **self._call_options(timeout)
                )
            ]
        except Exception as e:
            self._log_operation_error(
                operation, start_time, e, parameter_name=identity.name
            )
            raise self._map_gcp_exception(
                e, operation, {"parameter_name": identity.name}
            ) from e

        self._log_operation_success(
            operation,
            start_time,
            parameter_name=identity.name,
            version_count=len(versions),
        )
        return versions

    def render_version(self, locator: str, timeout: Optional[float] = None) -> bytes:
        """
        Render one version and return its payload bytes.

        Rendering resolves any Secret Manager references embedded in the
        payload on the server side.

        Raises:
            ParameterVersionNotFoundException: If the version does not exist
            ParameterManagerException: For any other API failure
        """
        operation = "parameter version rendering"
        parts = parse_version_locator(locator)
        context = {
            "parameter_name": parts["parameter_name"],
            "version": parts["version_id"],
        }
        start_time = self._log_operation_start(operation, **context)

        try:
            response = self.client.render_parameter_version(
                request={"name": locator}, **self._call_options(timeout)
            )
        except Exception as e:
            self._log_operation_error(operation, start_time, e, **context)
            raise self._map_gcp_exception(e, operation, context) from e

        payload = bytes(response.rendered_payload)
        self._log_operation_success(
            operation, start_time, data_size_bytes=len(payload), **context
        )
        return payload


class ParameterStoreClientFactory:
    """
    Hand out one ``ParameterStoreClient`` per location for a credential.

    Service account credentials are loaded once from the credential
    source, scoped to cloud-platform. With connection pooling enabled the
    client for each location is created once and reused; otherwise every
    call builds a fresh channel, which ``release`` closes.
    """

    def __init__(
        self,
        project_id: str,
        credential_id: str,
        credential_source: CredentialSource,
        enable_connection_pooling: bool = True,
    ):
        self.logger = get_logger("app.services.parameter_manager")
        self.project_id = project_id
        self.credential_id = credential_id
        self.credential_source = credential_source
        self.enable_connection_pooling = enable_connection_pooling
        self._credentials: Optional[Credentials] = None
        self._clients: Dict[str, ParameterStoreClient] = {}
        self._lock = threading.Lock()

    def _load_credentials(self) -> Credentials:
        """
        Load service account credentials from the credential source.

        Raises:
            ClientInitException: If the credential is missing or unusable
        """
        try:
            content = self.credential_source.get_credential_bytes(self.credential_id)
            creds_info = json.loads(content)
            creds = service_account.Credentials.from_service_account_info(
                creds_info, scopes=[CLOUD_PLATFORM_SCOPE]
            )
        except CredentialNotFoundException as e:
            raise ClientInitException(
                f"Service account credential '{self.credential_id}' not found: "
                f"{e.message}"
            ) from e
        except OSError as e:
            self.logger.error(
                "Failed to read service account credential",
                extra={"credential_id": self.credential_id, "error": str(e)},
            )
            raise ClientInitException(
                f"Unable to read service account credential "
                f"'{self.credential_id}': {str(e)}"
            ) from e
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError, KeyError) as e:
            self.logger.error(
                "Failed to parse service account credential",
                extra={"credential_id": self.credential_id, "error": str(e)},
            )
            raise ClientInitException(
                f"Invalid service account credential '{self.credential_id}': {str(e)}"
            ) from e

        self.logger.debug(
            "Credentials loaded from credential source",
            extra={
                "credential_id": self.credential_id,
                "service_account_email": getattr(
                    creds, "service_account_email", "unknown"
                ),
            },
        )
        return creds

    def _credentials_for_client(self) -> Credentials:
        if self._credentials is None:
            self._credentials = self._load_credentials()
        return self._credentials

    def get_client(self, location: str) -> ParameterStoreClient:
        """Return the client for ``location`` (empty means global)."""
        location = location or GLOBAL_LOCATION
        with self._lock:
            if self.enable_connection_pooling and location in self._clients:
                return self._clients[location]

            client = ParameterStoreClient(
                self.project_id,
                location=location,
                credentials=self._credentials_for_client(),
            )
            if self.enable_connection_pooling:
                self._clients[location] = client
            return client

    def release(self, client: ParameterStoreClient) -> None:
        """Hand a client back; unpooled clients are closed here."""
        if not self.enable_connection_pooling:
            client.close()
