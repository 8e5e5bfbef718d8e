"""
Unit tests for PayloadDecoder.

Covers the three payload formats, malformed input and unknown formats.
"""

import json

import pytest
import yaml
from hypothesis import given
from hypothesis import strategies as st

from app.exceptions.parameter_manager import (
    ErrorKind,
    InvalidParameterValueException,
    PayloadDecodeException,
)
from app.models.parameter_manager import StructuredValue, TextValue
from app.services.payload_decoder import PayloadDecoder


@pytest.fixture
def decoder(mocker):
    mocker.patch("app.services.payload_decoder.get_logger")
    return PayloadDecoder()


def test_unformatted_payload_stays_text(decoder):
    decoded = decoder.decode(b"s3cr3t", "UNFORMATTED")

    assert isinstance(decoded, TextValue)
    assert decoded.value == "s3cr3t"
    assert decoded.as_secret_text() == "s3cr3t"


def test_json_payload_is_parsed(decoder):
    raw = b'{"user": "app", "port": 5432}'

    decoded = decoder.decode(raw, "JSON")

    assert isinstance(decoded, StructuredValue)
    assert decoded.value == {"user": "app", "port": 5432}
    assert decoded.as_secret_text() == raw.decode("utf-8")


def test_yaml_payload_is_parsed(decoder):
    raw = b"database:\n  host: db.internal\n  replicas: 2\n"

    decoded = decoder.decode(raw, "YAML")

    assert isinstance(decoded, StructuredValue)
    assert decoded.value == {"database": {"host": "db.internal", "replicas": 2}}


def test_malformed_json_raises_decode_error(decoder):
    with pytest.raises(PayloadDecodeException) as exc_info:
        decoder.decode(b'{"user": ', "JSON")

    assert "Invalid JSON format" in str(exc_info.value)
    assert exc_info.value.error_kind == ErrorKind.DECODE


def test_malformed_yaml_raises_decode_error(decoder):
    with pytest.raises(PayloadDecodeException, match="Invalid YAML format"):
        decoder.decode(b"key: [unclosed\n  - item", "YAML")


def test_decode_error_is_an_invalid_value_error(decoder):
    with pytest.raises(InvalidParameterValueException):
        decoder.decode(b"not json", "JSON")


def test_invalid_utf8_raises_decode_error(decoder):
    with pytest.raises(PayloadDecodeException, match="UTF-8"):
        decoder.decode(b"\xff\xfe\xfa", "UNFORMATTED")


def test_unknown_format_is_kept_as_text(decoder):
    decoded = decoder.decode(b"a=b", "PROPERTIES")

    assert isinstance(decoded, TextValue)
    assert decoded.value == "a=b"


def test_str_input_is_accepted(decoder):
    assert decoder.decode('{"a": 1}', "JSON").value == {"a": 1}


json_values = st.recursive(
    st.none()
    | st.booleans()
    | st.integers(min_value=-(2**31), max_value=2**31)
    | st.text(max_size=20),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=8), children, max_size=4),
    max_leaves=10,
)


@given(value=json_values)
def test_json_documents_decode_to_their_value(value):
    decoded = PayloadDecoder().decode(json.dumps(value).encode("utf-8"), "JSON")
    assert decoded.value == value


@given(
    value=st.dictionaries(
        st.text(alphabet="abcdefghij_", min_size=1, max_size=8),
        st.integers(),
        max_size=5,
    )
)
def test_yaml_mappings_decode_to_their_value(value):
    decoded = PayloadDecoder().decode(yaml.safe_dump(value).encode("utf-8"), "YAML")
    assert decoded.value == value
