"""Unit tests for input cleaning."""

import pytest

from resumefit.nlp.cleaner import clean_html, clean_input_text, looks_like_html, normalize_lines


@pytest.mark.unit
def test_normalize_lines_collapses_inline_whitespace():
    text = "  Senior\t\tEngineer   at Acme  \r\n\r\nPython,  SQL  "
    assert normalize_lines(text) == "Senior Engineer at Acme\n\nPython, SQL"


@pytest.mark.unit
def test_html_is_flattened_with_line_breaks():
    html = "<div><h2>Requirements</h2><ul><li>5+ years Python</li><li>SQL</li></ul><p>Remote<br>EU only</p></div>"
    text = clean_html(html)

    lines = [line for line in text.split("\n") if line]
    assert lines == ["Requirements", "5+ years Python", "SQL", "Remote", "EU only"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "text, expected",
    [
        ("<p>hello</p>", True),
        ("<br/>", True),
        ("Salary < 100k and > 50k", False),
        ("C++ <3", False),
        ("", False),
    ],
)
def test_looks_like_html(text, expected):
    assert looks_like_html(text) is expected


@pytest.mark.unit
def test_clean_input_text_dispatches_on_markup():
    assert clean_input_text("<b>Python</b>  developer") == "Python developer"
    assert clean_input_text("Python   developer\n") == "Python developer"
    assert clean_input_text(None) == ""


@pytest.mark.unit
def test_scripts_and_styles_are_dropped():
    html = "<style>.x{color:red}</style><p>Senior Engineer</p><script>track()</script>"
    assert clean_html(html) == "Senior Engineer"
