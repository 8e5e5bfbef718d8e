# Parameter Resolution Service
# Resolves job parameters end to end and materializes derived credentials

import time
from typing import Any, List, Mapping, Optional, Tuple

from app.exceptions.parameter_manager import (
    CredentialMaterializationException,
    MissingConfigurationException,
)
from app.helpers.logger import get_logger
from app.models.parameter_manager import (
    GLOBAL_LOCATION,
    KnownParameterEntry,
    ParameterIdentity,
    RenderedParameter,
    ResolvedVersion,
)
from app.requests.parameter_manager import ParameterResolveRequest
from app.responses.parameter_manager import (
    ParameterRunResponse,
    ParameterValueResponse,
)
from app.services.credential_lifecycle import (
    CredentialLifecycleManager,
    FileCredentialStore,
)
from app.services.credential_source import CredentialSource
from app.services.known_parameters import KnownParameterRegistry
from app.services.parameter_manager import ParameterStoreClientFactory
from app.services.payload_decoder import PayloadDecoder
from app.services.version_resolver import VersionResolver


DEFAULT_CREDENTIAL_STORE_PATH = "./derived_credentials.json"


class ParameterResolutionService:
    """
    Entry point used by the host to resolve parameters for a job run.

    The service wires the version resolver, payload decoder, known
    parameter registry and credential lifecycle manager together. Every
    collaborator can be injected, so hosts share one registry and one
    credential store across concurrent runs and tests substitute fakes.

    Resolution errors propagate to the caller unchanged. A failure to
    materialize the derived credential is logged as a warning and the
    resolved value is still returned.

    Example:
        >>> service = ParameterResolutionService(
        ...     project_id="my-project",
        ...     credential_id="gcp-sa",
        ...     credential_source=FileCredentialSource("/secrets"),
        ... )
        >>> service.fetch_and_render(
        ...     ParameterResolveRequest(parameter_name="db-pass")
        ... )
        {'name': 'db-pass', 'version': 'v2', 'value': '...', 'type': 'UNFORMATTED'}
    """

    def __init__(
        self,
        project_id: str,
        credential_id: str,
        credential_source: Optional[CredentialSource] = None,
        registry: Optional[KnownParameterRegistry] = None,
        decoder: Optional[PayloadDecoder] = None,
        credential_manager: Optional[CredentialLifecycleManager] = None,
        client_factory: Optional[ParameterStoreClientFactory] = None,
        request_timeout: Optional[float] = None,
        enable_connection_pooling: bool = True,
        credential_store_path: Optional[str] = None,
    ):
        """
        Initialize the resolution service.

        Raises:
            MissingConfigurationException: If project_id or credential_id is
                empty, or neither a credential source nor a client factory
                is supplied.
        """
        self.logger = get_logger("app.services.parameter_resolver")

        if not credential_id:
            raise MissingConfigurationException(
                "Service Account key Credential ID not found for GCP."
            )
        if not project_id:
            raise MissingConfigurationException("Project ID not found for GCP.")
        if client_factory is None and credential_source is None:
            raise MissingConfigurationException(
                "A credential source is required to load the service account key."
            )

        self.project_id = project_id
        self.credential_id = credential_id
        self.credential_source = credential_source
        self.request_timeout = request_timeout
        self.client_factory = client_factory or ParameterStoreClientFactory(
            project_id,
            credential_id,
            credential_source,
            enable_connection_pooling=enable_connection_pooling,
        )
        self.registry = registry if registry is not None else KnownParameterRegistry()
        self.decoder = decoder or PayloadDecoder()
        self.credential_manager = credential_manager or CredentialLifecycleManager(
            FileCredentialStore(credential_store_path or DEFAULT_CREDENTIAL_STORE_PATH)
        )

    @classmethod
    def from_config(cls, app_config, credential_source: CredentialSource, **overrides):
        """Build the service from an ``AppConfig``."""
        options = {
            "request_timeout": app_config.request_timeout,
            "enable_connection_pooling": app_config.enable_connection_pooling,
            "credential_store_path": app_config.credential_store_path,
            **overrides,
        }
        return cls(
            app_config.project_id,
            app_config.credential_id,
            credential_source=credential_source,
            **options,
        )

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return timeout if timeout is not None else self.request_timeout

    def fetch_param_version(
        self,
        identity: ParameterIdentity,
        version: str = "",
        timeout: Optional[float] = None,
    ) -> ResolvedVersion:
        """Resolve ``identity`` to a concrete version (latest when empty)."""
        client = self.client_factory.get_client(identity.location)
        try:
            return VersionResolver(client, self.registry).resolve(
                identity, version, timeout=self._timeout(timeout)
            )
        finally:
            self.client_factory.release(client)

    def _resolve_and_render(
        self,
        identity: ParameterIdentity,
        version: str,
        timeout: Optional[float],
    ) -> Tuple[ResolvedVersion, RenderedParameter]:
        timeout = self._timeout(timeout)
        client = self.client_factory.get_client(identity.location)
        try:
            resolved = VersionResolver(client, self.registry).resolve(
                identity, version, timeout=timeout
            )
            payload = client.render_version(resolved.version_locator, timeout=timeout)
        finally:
            self.client_factory.release(client)
        rendered = RenderedParameter(
            version_id=resolved.version_id,
            format=resolved.format,
            decoded_value=self.decoder.decode(payload, resolved.format),
        )
        return resolved, rendered

    def fetch_parameter_value(
        self,
        parameter_name: str,
        version: str = "",
        location: str = GLOBAL_LOCATION,
        timeout: Optional[float] = None,
    ) -> RenderedParameter:
        """
        Resolve, render and decode one parameter.

        Args:
            parameter_name: Parameter ID in Parameter Manager
            version: Version ID, or empty for the latest enabled version
            location: "global" or a region such as "us-central1"
            timeout: Per-call deadline in seconds

        Returns:
            RenderedParameter with the bare version ID, format and value
        """
        identity = ParameterIdentity(name=parameter_name, location=location)
        _, rendered = self._resolve_and_render(identity, version, timeout)
        return rendered

    def fetch_and_render(
        self,
        request: ParameterResolveRequest,
        run_parameters: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> dict:
        """
        Resolve a job binding into the ``name/version/value/type`` mapping.

        Returns the "not set" mapping when the binding is disabled.
        """
        if not request.use_parameter:
            return ParameterValueResponse.not_set().to_output()

        response = self.resolve_for_run(
            request.model_copy(update={"create_credential": False}),
            run_parameters,
            timeout=timeout,
        )
        return response.parameter.to_output()

    def resolve_for_run(
        self,
        request: ParameterResolveRequest,
        run_parameters: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> ParameterRunResponse:
        """
        Resolve a job binding and, if requested, materialize its credential.

        Args:
            request: The job's parameter binding
            run_parameters: Run-scoped values for ``${name}`` placeholders
            timeout: Per-call deadline in seconds

        Returns:
            ParameterRunResponse with the output mapping, the credential
            (when one was created) and a warning when materialization failed

        Raises:
            ParameterManagerException: Any resolution or decode failure
        """
        if not request.use_parameter:
            return ParameterRunResponse(parameter=ParameterValueResponse.not_set())

        version_request = request.version_request(run_parameters)
        identity = version_request.identity
        version = version_request.requested_version

        start_time = time.time()
        try:
            resolved, rendered = self._resolve_and_render(identity, version, timeout)
        except Exception as e:
            self.logger.error(
                "Failed to resolve parameter for run",
                extra={
                    "parameter_name": identity.name,
                    "location": identity.location,
                    "requested_version": version or "latest",
                    "error_type": type(e).__name__,
                    "error_kind": getattr(e, "error_kind", "unexpected"),
                    "error_message": str(e),
                },
            )
            raise

        parameter = ParameterValueResponse(
            name=identity.name,
            version=rendered.version_id,
            value=rendered.decoded_value.as_plain(),
            type=rendered.format,
        )

        credential = None
        warning = None
        if request.create_credential:
            try:
                credential = self.credential_manager.materialize(
                    identity, resolved, rendered.decoded_value
                )
            except CredentialMaterializationException as e:
                warning = f"Error creating GCP parameter credentials: {e.message}"
                self.logger.warning(
                    warning,
                    extra={
                        "parameter_name": identity.name,
                        "location": identity.location,
                        "version_id": rendered.version_id,
                    },
                )

        self.logger.info(
            "Parameter resolved for run",
            extra={
                "parameter_name": identity.name,
                "location": identity.location,
                "version_id": rendered.version_id,
                "format_type": rendered.format,
                "credential_created": credential is not None,
                "operation_duration_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return ParameterRunResponse(
            parameter=parameter, credential=credential, warning=warning
        )

    def known_parameters(self) -> List[KnownParameterEntry]:
        """Resolved parameters, sorted by name then location."""
        return sorted(
            self.registry.list(), key=lambda entry: (entry.parameter, entry.location)
        )

    def validate_credential_id(self, credential_id: str) -> bool:
        """
        Check that a credential ID exists in the credential source.

        An empty ID is accepted; it is reported later as missing
        configuration when a resolution is attempted.
        """
        if not credential_id:
            return True
        if self.credential_source is None:
            return False
        return self.credential_source.has_credential(credential_id)
