"""
Unit tests for ${name} placeholder expansion.
"""

from hypothesis import given
from hypothesis import strategies as st

from app.helpers.placeholders import resolve_parameter


names = st.text(
    alphabet=st.characters(exclude_characters="}$", exclude_categories=("Cs",)),
    min_size=1,
    max_size=12,
)
plain_text = st.text(
    alphabet=st.characters(exclude_characters="$", exclude_categories=("Cs",)),
    max_size=30,
)


def test_substitutes_single_placeholder():
    assert resolve_parameter("db-pass-${ENV}", {"ENV": "prod"}) == "db-pass-prod"


def test_substitutes_multiple_placeholders():
    result = resolve_parameter("${a}/${b}/${a}", {"a": "x", "b": "y"})
    assert result == "x/y/x"


def test_missing_name_becomes_empty_string():
    assert resolve_parameter("name-${MISSING}", {"OTHER": "1"}) == "name-"


def test_none_value_becomes_empty_string():
    assert resolve_parameter("${A}", {"A": None}) == ""


def test_non_string_values_are_stringified():
    assert resolve_parameter("v${N}", {"N": 3}) == "v3"


def test_none_text_returns_none():
    assert resolve_parameter(None, {"A": "1"}) is None


def test_absent_run_parameters_leave_text_unchanged():
    assert resolve_parameter("${A}-x", None) == "${A}-x"


def test_unterminated_placeholder_is_kept():
    assert resolve_parameter("${A", {"A": "1"}) == "${A"


@given(text=plain_text)
def test_text_without_placeholders_is_identity(text):
    assert resolve_parameter(text, {"A": "1"}) == text


@given(prefix=plain_text, name=names, value=plain_text, suffix=plain_text)
def test_placeholder_replaced_by_value(prefix, name, value, suffix):
    text = prefix + "${" + name + "}" + suffix
    assert resolve_parameter(text, {name: value}) == prefix + value + suffix
