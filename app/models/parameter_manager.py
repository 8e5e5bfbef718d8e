# Parameter Manager Models
# Domain types shared by the resolution and credential services

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from app.exceptions.parameter_manager import InvalidParameterValueException


GLOBAL_LOCATION = "global"


class PayloadFormat(str, Enum):
    """Payload formats understood by the decoder."""

    UNFORMATTED = "UNFORMATTED"
    JSON = "JSON"
    YAML = "YAML"


def is_global_location(location: Optional[str]) -> bool:
    """Empty and "global" (any case) both mean the default endpoint."""
    return not location or location.lower() == GLOBAL_LOCATION


def build_parameter_path(project_id: str, location: str, parameter_name: str) -> str:
    """Full resource name of a parameter."""
    return f"projects/{project_id}/locations/{location}/parameters/{parameter_name}"


def build_version_locator(
    project_id: str, location: str, parameter_name: str, version_id: str
) -> str:
    """Full resource name of one parameter version."""
    return (
        f"{build_parameter_path(project_id, location, parameter_name)}"
        f"/versions/{version_id}"
    )


def parse_version_locator(locator: str) -> Dict[str, str]:
    """
    Split a version locator back into its components.

    Args:
        locator: ``projects/P/locations/L/parameters/N/versions/V``

    Returns:
        Dict with project_id, location, parameter_name and version_id

    Raises:
        InvalidParameterValueException: If the locator is malformed
    """
    parts = locator.split("/")
    if (
        len(parts) != 8
        or parts[0] != "projects"
        or parts[2] != "locations"
        or parts[4] != "parameters"
        or parts[6] != "versions"
        or not all(parts[i] for i in (1, 3, 5, 7))
    ):
        raise InvalidParameterValueException(
            f"Invalid parameter version locator: {locator}. Expected format: "
            f"projects/PROJECT_ID/locations/LOCATION/parameters/NAME/versions/VERSION"
        )
    return {
        "project_id": parts[1],
        "location": parts[3],
        "parameter_name": parts[5],
        "version_id": parts[7],
    }


def version_id_from_locator(locator: str) -> str:
    """Trailing segment of a locator."""
    return locator[locator.rfind("/") + 1 :]


class ParameterIdentity(BaseModel):
    """A logical parameter within a project: name plus location."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    location: str = GLOBAL_LOCATION

    @field_validator("location", mode="before")
    @classmethod
    def _default_location(cls, value: Optional[str]) -> str:
        return value or GLOBAL_LOCATION

    @property
    def is_global(self) -> bool:
        return is_global_location(self.location)


class VersionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: ParameterIdentity
    requested_version: str = ""


class ParameterMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    locator: str
    format: str = PayloadFormat.UNFORMATTED.value


class ParameterVersionSummary(BaseModel):
    """One entry of a version listing."""

    model_config = ConfigDict(frozen=True)

    locator: str
    disabled: bool = False
    create_time: Optional[datetime] = None


class ResolvedVersion(BaseModel):
    """The concrete version chosen for a request. Never mutated."""

    model_config = ConfigDict(frozen=True)

    identity: ParameterIdentity
    version_locator: str
    format: str

    @property
    def version_id(self) -> str:
        return version_id_from_locator(self.version_locator)


class TextValue(BaseModel):
    """Payload kept as plain text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str

    def as_plain(self) -> Any:
        return self.value

    def as_secret_text(self) -> str:
        return self.value


class StructuredValue(BaseModel):
    """Payload parsed into a JSON/YAML tree; ``source`` keeps the text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["structured"] = "structured"
    value: Any = None
    source: str

    def as_plain(self) -> Any:
        return self.value

    def as_secret_text(self) -> str:
        return self.source


DecodedValue = Union[TextValue, StructuredValue]


class RenderedParameter(BaseModel):
    """Result of one resolution call. Not persisted."""

    model_config = ConfigDict(frozen=True)

    version_id: str
    format: str
    decoded_value: DecodedValue = Field(discriminator="kind")


class KnownParameterEntry(BaseModel):
    """A (parameter, location) pair that resolved successfully at least once."""

    model_config = ConfigDict(frozen=True)

    parameter: str
    location: str

    @classmethod
    def for_identity(cls, identity: ParameterIdentity) -> "KnownParameterEntry":
        return cls(parameter=identity.name, location=identity.location)


class DerivedCredential(BaseModel):
    """Secret-text credential materialized from a resolved parameter."""

    model_config = ConfigDict(frozen=True)

    id: str
    description: str
    secret_value: SecretStr
    scope: str = "GLOBAL"
