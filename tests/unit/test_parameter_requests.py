"""
Unit tests for the job binding request and the output responses.
"""

import pytest

from app.exceptions.parameter_manager import InvalidParameterValueException
from app.models.parameter_manager import (
    DerivedCredential,
    ParameterIdentity,
    RenderedParameter,
    StructuredValue,
    parse_version_locator,
)
from app.requests.parameter_manager import ParameterResolveRequest
from app.responses.parameter_manager import ParameterValueResponse


def test_empty_name_disables_binding():
    request = ParameterResolveRequest(
        parameter_name="",
        parameter_version="v1",
        location="us-central1",
        create_credential=True,
    )

    assert request.use_parameter is False
    assert request.parameter_version == ""
    assert request.location == ""
    assert request.create_credential is False


def test_location_defaults_to_global():
    request = ParameterResolveRequest(parameter_name="db-pass", location=None)

    assert request.location == "global"
    assert request.use_parameter is True


def test_none_fields_are_ignored():
    request = ParameterResolveRequest(
        parameter_name="db-pass", parameter_version=None, create_credential=None
    )

    assert request.parameter_version == ""
    assert request.create_credential is False


def test_identity_expands_placeholders():
    request = ParameterResolveRequest(
        parameter_name="db-${ENV}", location="${REGION}"
    )

    identity = request.identity({"ENV": "prod", "REGION": "europe-west1"})

    assert identity == ParameterIdentity(name="db-prod", location="europe-west1")


def test_identity_with_empty_location_placeholder_is_global():
    request = ParameterResolveRequest(parameter_name="db-pass", location="${REGION}")

    identity = request.identity({})

    assert identity.location == "global"
    assert identity.is_global is True


def test_version_request_expands_version():
    request = ParameterResolveRequest(
        parameter_name="db-pass", parameter_version="${VERSION}"
    )

    version_request = request.version_request({"VERSION": "v3"})

    assert version_request.identity == ParameterIdentity(name="db-pass")
    assert version_request.requested_version == "v3"
    assert request.version_request({}).requested_version == ""


def test_identity_rejects_empty_name():
    with pytest.raises(InvalidParameterValueException):
        ParameterResolveRequest(parameter_name="${NAME}").identity({})


def test_parse_version_locator():
    parts = parse_version_locator(
        "projects/p/locations/us-central1/parameters/db-pass/versions/v2"
    )

    assert parts == {
        "project_id": "p",
        "location": "us-central1",
        "parameter_name": "db-pass",
        "version_id": "v2",
    }


@pytest.mark.parametrize(
    "locator",
    [
        "projects/p/locations/global/parameters/db-pass",
        "projects/p/locations/global/secrets/db-pass/versions/v2",
        "projects//locations/global/parameters/db-pass/versions/v2",
    ],
)
def test_parse_version_locator_rejects_malformed(locator):
    with pytest.raises(InvalidParameterValueException):
        parse_version_locator(locator)


def test_rendered_parameter_accepts_tagged_value():
    rendered = RenderedParameter(
        version_id="v1",
        format="JSON",
        decoded_value={"kind": "structured", "value": [1, 2], "source": "[1, 2]"},
    )

    assert isinstance(rendered.decoded_value, StructuredValue)


def test_derived_credential_hides_secret_in_repr():
    credential = DerivedCredential(
        id="db-pass", description="db-pass : v1", secret_value="s3cr3t"
    )

    assert "s3cr3t" not in repr(credential)
    assert credential.secret_value.get_secret_value() == "s3cr3t"


def test_value_response_output():
    response = ParameterValueResponse(
        name="db-pass", version="v2", value={"a": 1}, type="JSON"
    )

    assert response.to_output() == {
        "name": "db-pass",
        "version": "v2",
        "value": {"a": 1},
        "type": "JSON",
    }
