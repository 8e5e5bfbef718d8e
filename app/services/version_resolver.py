# Version Resolver
# Picks the concrete parameter version a request refers to

from datetime import datetime, timezone
from typing import List, Optional

from app.exceptions.parameter_manager import (
    EmptyVersionListException,
    ParameterNotFoundException,
    ParameterVersionNotFoundException,
)
from app.helpers.logger import get_logger
from app.models.parameter_manager import (
    KnownParameterEntry,
    ParameterIdentity,
    ParameterVersionSummary,
    ResolvedVersion,
)
from app.services.known_parameters import KnownParameterRegistry
from app.services.parameter_manager import ParameterStoreClient


_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _creation_key(version: ParameterVersionSummary) -> datetime:
    created = version.create_time
    if created is None:
        return _OLDEST
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


def newest_enabled_first(
    versions: List[ParameterVersionSummary],
) -> List[ParameterVersionSummary]:
    """
    Drop disabled versions and order the rest by creation time, newest first.

    The sort is stable, so versions with equal timestamps keep the order
    the backend returned them in. Versions without a timestamp go last.
    """
    enabled = [version for version in versions if not version.disabled]
    return sorted(enabled, key=_creation_key, reverse=True)


class VersionResolver:
    """
    Resolve a parameter identity plus optional version to a ResolvedVersion.

    Successful resolutions are recorded in the known parameter registry.
    When the backend reports that the parameter itself is gone, every
    registry entry for that (name, location) is evicted before the error
    is re-raised. A missing version does not evict anything.
    """

    def __init__(
        self, client: ParameterStoreClient, registry: KnownParameterRegistry
    ):
        self.client = client
        self.registry = registry
        self.logger = get_logger("app.services.version_resolver")

    def resolve(
        self,
        identity: ParameterIdentity,
        requested_version: Optional[str] = "",
        timeout: Optional[float] = None,
    ) -> ResolvedVersion:
        """
        Determine the version to use.

        Args:
            identity: Parameter name and location
            requested_version: Exact version ID, or empty for the latest
                enabled version
            timeout: Per-call deadline in seconds for the remote calls

        Returns:
            ResolvedVersion carrying the full version locator and format

        Raises:
            ParameterNotFoundException: Parameter absent (registry evicted)
            EmptyVersionListException: No enabled versions exist
            ParameterVersionNotFoundException: Requested version absent or
                disabled
        """
        requested_version = requested_version or ""

        try:
            metadata = self.client.get_parameter_metadata(identity, timeout=timeout)
            versions = newest_enabled_first(
                self.client.list_versions(identity, timeout=timeout)
            )
        except ParameterNotFoundException:
            self.registry.remove_all_matching(identity.name, identity.location)
            raise

        if not versions:
            raise EmptyVersionListException(
                f"No parameter versions found for {identity.name}"
            )

        if not requested_version:
            selected = versions[0]
        else:
            wanted = self.client.version_locator(identity, requested_version)
            selected = next(
                (version for version in versions if version.locator == wanted), None
            )
            if selected is None:
                raise ParameterVersionNotFoundException(
                    f"Parameter Version {requested_version} not found for "
                    f"Parameter {identity.name}."
                )

        resolved = ResolvedVersion(
            identity=identity,
            version_locator=selected.locator,
            format=metadata.format,
        )
        self.registry.add(KnownParameterEntry.for_identity(identity))

        self.logger.info(
            "Parameter version resolved",
            extra={
                "parameter_name": identity.name,
                "location": identity.location,
                "requested_version": requested_version or "latest",
                "version_id": resolved.version_id,
                "format_type": resolved.format,
                "enabled_version_count": len(versions),
            },
        )
        return resolved
