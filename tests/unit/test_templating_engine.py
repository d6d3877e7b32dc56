"""Unit tests for the template engine, filename sanitizing and identifier recovery."""

import pytest
from _pytest.logging import LogCaptureFixture

from github_notes_manager.templating.engine import (
    ConditionalSegment,
    LiteralSegment,
    VariableSegment,
    compile_template,
    extract_identifier_from_filename,
    is_truthy,
    render_filename,
    render_template,
    sanitize_filename,
)


@pytest.mark.parametrize(
    "template,context,expected",
    [
        pytest.param("{closed:Closed on {closed}}", {"closed": ""}, "", id="conditional_empty_value"),
        pytest.param("{closed:Closed on {closed}}", {}, "", id="conditional_absent_value"),
        pytest.param("{closed:Closed on {closed}}", {"closed": "2024-01-15"}, "Closed on 2024-01-15", id="conditional_present_value"),
        pytest.param("Issue {number}", {"number": 42}, "Issue 42", id="integer_value"),
        pytest.param("Issue {missing}!", {}, "Issue !", id="missing_variable_is_empty"),
        pytest.param("{locked}", {"locked": False}, "false", id="boolean_value"),
        pytest.param("{locked:Locked}", {"locked": False}, "", id="false_disables_conditional"),
        pytest.param("{count:Has comments}", {"count": 0}, "", id="zero_disables_conditional"),
        pytest.param("{flag:On}", {"flag": "false"}, "", id="false_string_disables_conditional"),
        pytest.param("{labels:Labels: {labels} ({owner})}", {"labels": "bug", "owner": "acme"}, "Labels: bug (acme)", id="several_nested_variables"),
        pytest.param("a {b c} d", {"b": "x"}, "a {b c} d", id="not_a_construct"),
        pytest.param("{% persist \"notes\" %}", {}, "{% persist \"notes\" %}", id="persist_marker_passes_through"),
        pytest.param("{}", {}, "{}", id="empty_braces"),
    ],
)
def test_render_template(template: str, context: dict, expected: str) -> None:
    """Test variable and conditional substitution."""
    assert render_template(template, context) == expected


def test_nested_conditional_is_left_as_literal_text() -> None:
    """Test that a conditional inside a conditional literal is not evaluated."""
    assert render_template("{a:x {b:y} z}", {"a": "1", "b": "1"}) == "x {b:y} z"


def test_malformed_conditional_is_recorded_and_rendered_as_literal() -> None:
    """Test that a conditional without a closing brace is treated as literal text."""
    template = compile_template("Before {closed:Closed on 2024 after")

    assert len(template.failures) == 1
    assert template.failures[0].position == 7
    assert "closed" in template.failures[0].message
    assert template.render({"closed": "yes"}) == "Before {closed:Closed on 2024 after"


def test_malformed_conditional_does_not_stop_later_substitutions() -> None:
    """Test that scanning continues after a malformed conditional."""
    assert render_template("{a:oops {number}", {"number": 3}) == "{a:oops 3"


def test_compiled_segments() -> None:
    """Test the structure of a compiled template."""
    template = compile_template("#{number} {closed:on {closed}}")

    assert template.segments == (
        LiteralSegment("#"),
        VariableSegment("number"),
        LiteralSegment(" "),
        ConditionalSegment("closed", (LiteralSegment("on "), VariableSegment("closed"))),
    )
    assert template.variables == {"number", "closed"}


@pytest.mark.parametrize(
    "value,expected",
    [
        pytest.param(None, False, id="none"),
        pytest.param(False, False, id="false"),
        pytest.param("", False, id="empty_string"),
        pytest.param("  ", False, id="blank_string"),
        pytest.param(0, False, id="zero"),
        pytest.param("FALSE", False, id="false_string"),
        pytest.param(True, True, id="true"),
        pytest.param("0", True, id="zero_string"),
        pytest.param(3, True, id="integer"),
        pytest.param("open", True, id="string"),
    ],
)
def test_is_truthy(value: object, expected: bool) -> None:
    """Test which values enable conditional blocks."""
    assert is_truthy(value) is expected


@pytest.mark.parametrize(
    "name,expected",
    [
        pytest.param('Fix: a/b "c" <d>?', "Fix ab c d", id="illegal_characters"),
        pytest.param("  lots   of  space  ", "lots of space", id="whitespace"),
        pytest.param("..hidden.", "hidden", id="leading_and_trailing_dots"),
        pytest.param("tab\x00null", "tabnull", id="control_characters"),
    ],
)
def test_sanitize_filename(name: str, expected: str) -> None:
    """Test removal of characters that are not allowed in file names."""
    assert sanitize_filename(name) == expected


def test_render_filename_sanitizes_after_substitution() -> None:
    """Test that substituted values are sanitized, not just the template."""
    assert render_filename("{number} - {title}", {"number": 5, "title": "Crash: on/off"}, "Issue - 5") == "5 - Crash onoff"


def test_render_filename_uses_fallback_when_empty() -> None:
    """Test that an empty rendered filename falls back."""
    assert render_filename("{title}", {"title": "???"}, "Issue - 5") == "Issue - 5"


def test_render_filename_reports_unknown_variables(caplog: LogCaptureFixture) -> None:
    """Test that variables missing from the context render empty and are logged."""
    assert render_filename("{number} {titel}", {"number": 5, "title": "Crash"}, "Issue - 5") == "5"
    assert any("Filename template references unknown variables" in line for line in caplog.text.splitlines())
    assert "titel" in caplog.text


@pytest.mark.parametrize(
    "filename,template,expected",
    [
        pytest.param("Issue - 42.md", "Issue - {number}", "42", id="default_template"),
        pytest.param("42 - Crash onoff.md", "{number} - {title}", "42", id="number_first"),
        pytest.param("Crash - 42.md", "{title} - {number}", "42", id="number_last"),
        pytest.param("PR #7 (closed).md", "PR #{number} {status:({status})}", "7", id="with_conditional"),
        pytest.param("Issue - 42.md", "{title}", None, id="template_without_number"),
        pytest.param("Notes.md", "Issue - {number}", None, id="filename_does_not_fit"),
        pytest.param("Issue - abc.md", "Issue - {number}", None, id="non_numeric_identifier"),
    ],
)
def test_extract_identifier_from_filename(filename: str, template: str, expected: str | None) -> None:
    """Test recovering the item number from a filename via its template."""
    assert extract_identifier_from_filename(filename, template) == expected
