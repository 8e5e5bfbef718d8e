# Payload Decoder
# Interprets rendered parameter payloads according to their declared format

import json
from typing import Union

import yaml

from app.exceptions.parameter_manager import PayloadDecodeException
from app.helpers.logger import get_logger
from app.models.parameter_manager import (
    DecodedValue,
    PayloadFormat,
    StructuredValue,
    TextValue,
)


class PayloadDecoder:
    """
    Decode rendered payload bytes into a ``DecodedValue``.

    UNFORMATTED payloads stay text. JSON and YAML payloads are parsed into
    a structured tree; malformed input raises ``PayloadDecodeException``
    instead of returning partial data. Formats this decoder does not know
    yet are kept as text so new backend formats do not break resolution.
    """

    def __init__(self):
        self.logger = get_logger("app.services.payload_decoder")

    def _to_text(self, raw: Union[bytes, str], format_type: str) -> str:
        if isinstance(raw, str):
            return raw
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            self.logger.error(
                "Failed to decode payload from UTF-8",
                extra={
                    "format_type": format_type,
                    "data_size_bytes": len(raw),
                    "error": str(e),
                },
            )
            raise PayloadDecodeException(
                f"Failed to decode payload from UTF-8: {str(e)}"
            ) from e

    def _parse_json(self, text: str) -> StructuredValue:
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            self.logger.error(
                "Invalid JSON payload",
                extra={
                    "format_type": PayloadFormat.JSON.value,
                    "error": str(e),
                    "error_line": e.lineno,
                    "error_column": e.colno,
                },
            )
            raise PayloadDecodeException(
                f"Invalid JSON format: {str(e)} at line {e.lineno}, column {e.colno}"
            ) from e
        return StructuredValue(value=parsed, source=text)

    def _parse_yaml(self, text: str) -> StructuredValue:
        try:
            parsed = yaml.safe_load(text)
        except yaml.YAMLError as e:
            self.logger.error(
                "Invalid YAML payload",
                extra={
                    "format_type": PayloadFormat.YAML.value,
                    "error": str(e),
                    "error_mark": str(getattr(e, "problem_mark", None)),
                },
            )
            raise PayloadDecodeException(f"Invalid YAML format: {str(e)}") from e
        return StructuredValue(value=parsed, source=text)

    def decode(self, raw: Union[bytes, str], format_type: str) -> DecodedValue:
        """
        Decode a payload.

        Args:
            raw: Rendered payload bytes (text is accepted as-is)
            format_type: Declared format name (UNFORMATTED, JSON, YAML, ...)

        Returns:
            TextValue or StructuredValue

        Raises:
            PayloadDecodeException: If the bytes are not UTF-8 or do not parse
        """
        text = self._to_text(raw, format_type)

        if format_type == PayloadFormat.JSON.value:
            decoded = self._parse_json(text)
        elif format_type == PayloadFormat.YAML.value:
            decoded = self._parse_yaml(text)
        else:
            if format_type != PayloadFormat.UNFORMATTED.value:
                self.logger.debug(
                    "Unknown payload format, keeping text",
                    extra={"format_type": format_type},
                )
            decoded = TextValue(value=text)

        self.logger.debug(
            "Payload decoded",
            extra={
                "format_type": format_type,
                "decoded_kind": decoded.kind,
                "decoded_type": type(decoded.value).__name__,
            },
        )
        return decoded
