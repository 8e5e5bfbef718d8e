# Parameter Manager Requests
# Job-level binding describing which parameter a run should resolve

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from app.exceptions.parameter_manager import InvalidParameterValueException
from app.helpers.placeholders import resolve_parameter
from app.models.parameter_manager import (
    GLOBAL_LOCATION,
    ParameterIdentity,
    VersionRequest,
)


class ParameterResolveRequest(BaseModel):
    """
    Parameter binding configured on a job.

    An empty ``parameter_name`` disables the binding entirely: version and
    location are cleared and no credential is created. Otherwise the
    location defaults to "global". Name, version and location may contain
    ``${name}`` placeholders that are expanded from the run's parameters.

    Example:
        >>> request = ParameterResolveRequest(
        ...     parameter_name="db-pass-${ENV}",
        ...     parameter_version="",
        ...     create_credential=True,
        ... )
        >>> request.identity({"ENV": "prod"}).name
        'db-pass-prod'
    """

    model_config = ConfigDict(frozen=True)

    parameter_name: str = ""
    parameter_version: str = ""
    location: str = ""
    create_credential: bool = False

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        data = {key: value for key, value in data.items() if value is not None}
        if data.get("parameter_name"):
            data["location"] = data.get("location") or GLOBAL_LOCATION
        else:
            data["parameter_name"] = ""
            data["parameter_version"] = ""
            data["location"] = ""
            data["create_credential"] = False
        return data

    @property
    def use_parameter(self) -> bool:
        return bool(self.parameter_name)

    def resolved_fields(
        self, run_parameters: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, str]:
        """Name, version and location with placeholders expanded."""
        return {
            "parameter_name": resolve_parameter(self.parameter_name, run_parameters),
            "parameter_version": resolve_parameter(
                self.parameter_version, run_parameters
            ),
            "location": resolve_parameter(self.location, run_parameters),
        }

    def identity(
        self, run_parameters: Optional[Mapping[str, Any]] = None
    ) -> ParameterIdentity:
        fields = self.resolved_fields(run_parameters)
        if not fields["parameter_name"]:
            raise InvalidParameterValueException(
                f"Parameter name {self.parameter_name!r} resolved to an empty string"
            )
        return ParameterIdentity(
            name=fields["parameter_name"], location=fields["location"]
        )

    def version_request(
        self, run_parameters: Optional[Mapping[str, Any]] = None
    ) -> VersionRequest:
        """Identity plus requested version (empty means latest)."""
        fields = self.resolved_fields(run_parameters)
        return VersionRequest(
            identity=self.identity(run_parameters),
            requested_version=fields["parameter_version"] or "",
        )
