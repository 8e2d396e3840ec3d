from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from mathscribe.refinement.base import DEFAULT_CONFIDENCE
from mathscribe.refinement.parser import parse_confidence, parse_response


def test_extracts_all_three_sections():
    parsed = parse_response(
        "<thinking>\n  step one\n</thinking>\n"
        "<confidence> 0.85 </confidence>\n"
        "<result>\n x^2 \n</result>"
    )
    assert parsed.reasoning == "step one"
    assert parsed.confidence == 0.85
    assert parsed.result == "x^2"


def test_tags_are_case_insensitive_and_multiline():
    parsed = parse_response("<THINKING>a\nb</Thinking><Result>\\frac{1}{2}\n</RESULT>")
    assert parsed.reasoning == "a\nb"
    assert parsed.result == "\\frac{1}{2}"


def test_match_is_non_greedy():
    parsed = parse_response("<result>first</result> chatter <result>second</result>")
    assert parsed.result == "first"


def test_untagged_reply_becomes_the_result():
    parsed = parse_response("   just the answer  \n")
    assert parsed.result == "just the answer"
    assert parsed.reasoning == ""
    assert parsed.confidence == DEFAULT_CONFIDENCE


def test_untagged_reply_ignores_stray_confidence():
    parsed = parse_response("<confidence>0.9</confidence> 42")
    assert parsed.result == "<confidence>0.9</confidence> 42"
    assert parsed.confidence == DEFAULT_CONFIDENCE


def test_reasoning_without_result_gives_empty_result():
    parsed = parse_response("<thinking>hmm</thinking> no result here")
    assert parsed.reasoning == "hmm"
    assert parsed.result == ""


def test_missing_confidence_defaults():
    parsed = parse_response("<thinking>t</thinking><result>r</result>")
    assert parsed.confidence == DEFAULT_CONFIDENCE


def test_empty_input():
    parsed = parse_response("")
    assert parsed.result == ""
    assert parsed.reasoning == ""


def test_unclosed_tags_fall_back_to_whole_text():
    text = "<thinking>never closed <result>also open"
    assert parse_response(text).result == text


def test_non_numeric_confidence_defaults():
    assert parse_confidence("high") == DEFAULT_CONFIDENCE
    assert parse_confidence("") == DEFAULT_CONFIDENCE
    assert parse_confidence("nan") == DEFAULT_CONFIDENCE


def test_boundary_confidences_are_kept():
    assert parse_confidence("0") == 0.0
    assert parse_confidence("1.0") == 1.0


@given(st.text())
def test_parse_is_total(text):
    parsed = parse_response(text)
    assert isinstance(parsed.result, str)
    assert 0.0 <= parsed.confidence <= 1.0


@given(st.text(alphabet=st.characters(blacklist_characters="<")))
def test_text_without_tags_is_returned_trimmed(text):
    parsed = parse_response(text)
    assert parsed.result == text.strip()
    assert parsed.reasoning == ""


@given(st.floats(min_value=0.0, max_value=1.0))
def test_in_range_confidence_is_preserved_exactly(value):
    assert parse_confidence(repr(value)) == value


@given(
    st.one_of(
        st.floats(min_value=1.0, exclude_min=True, allow_nan=False),
        st.floats(max_value=-1e-9, allow_nan=False),
    )
)
def test_out_of_range_confidence_defaults(value):
    parsed = parse_response(f"<result>r</result><confidence>{value!r}</confidence>")
    assert parsed.confidence == DEFAULT_CONFIDENCE
