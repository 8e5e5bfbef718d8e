# Parameter Manager Responses
# Stable output mapping rendered by UI and scripting layers

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from app.models.parameter_manager import DerivedCredential


NOT_SET = "not set"
UNDEFINED_TYPE = "UNDEFINED"


class ParameterValueResponse(BaseModel):
    """
    Resolved parameter as exposed to callers.

    ``version`` is the bare version ID, ``value`` the decoded payload
    (text, or a parsed JSON/YAML tree) and ``type`` the format name.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    value: Any = None
    type: str

    @classmethod
    def not_set(cls) -> "ParameterValueResponse":
        return cls(name=NOT_SET, version=NOT_SET, value=NOT_SET, type=UNDEFINED_TYPE)

    def to_output(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "value": self.value,
            "type": self.type,
        }


class ParameterRunResponse(BaseModel):
    """Outcome of a job-run resolution, including the derived credential."""

    model_config = ConfigDict(frozen=True)

    parameter: ParameterValueResponse
    credential: Optional[DerivedCredential] = None
    warning: Optional[str] = None
