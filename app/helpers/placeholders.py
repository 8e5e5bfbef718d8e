# Placeholder Helper
# Expands ${name} tokens with run-scoped parameter values

import re
from typing import Any, Mapping, Optional


PLACEHOLDER_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_parameter(
    text: Optional[str], run_parameters: Optional[Mapping[str, Any]]
) -> Optional[str]:
    """
    Replace every ``${name}`` token in ``text``.

    Unknown names and ``None`` values substitute to an empty string.
    When the run carries no parameters at all the input is returned as-is.

    Example:
        >>> resolve_parameter("${a}-${b}", {"a": "1", "b": "2"})
        '1-2'
        >>> resolve_parameter("${missing}", {})
        ''
    """
    if text is None:
        return None
    if run_parameters is None:
        return text

    def _substitute(match: "re.Match[str]") -> str:
        value = run_parameters.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_substitute, text)
