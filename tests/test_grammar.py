"""Tests for the action block grammar."""
import pytest

from webpilot.grammar import extract_action_block, parse_action, parse_arguments, tokenize


def fenced(body: str) -> str:
    return f"Thinking about it...\n```action\n{body}\n```\nDone."


def test_text_without_fence_is_no_action():
    parsed = parse_action("I will click the button now. click {selector: '#go'}")
    assert parsed.name is None
    assert parsed.arguments == {}
    assert parsed.is_none


def test_other_fence_labels_are_ignored():
    text = "```python\nprint('hi')\n```\n```actions\nclick {}\n```"
    assert parse_action(text).is_none


def test_quoted_json_arguments():
    parsed = parse_action(fenced('click {"selector": "#go"}'))
    assert parsed.name == "click"
    assert parsed.arguments == {"selector": "#go"}


def test_unquoted_arguments_match_quoted():
    quoted = parse_action(fenced('navigate {"url": "http://x"}'))
    unquoted = parse_action(fenced("navigate {url: http://x}"))
    assert quoted == unquoted
    assert unquoted.arguments == {"url": "http://x"}


def test_single_quotes_and_missing_braces():
    parsed = parse_action(fenced("type 'selector': '#q', 'text': 'hello world', submit: true"))
    assert parsed.name == "type"
    assert parsed.arguments == {"selector": "#q", "text": "hello world", "submit": "true"}


def test_action_name_is_lowercased():
    assert parse_action(fenced("NAVIGATE {url: http://x}")).name == "navigate"


def test_empty_block_is_no_action():
    assert parse_action("```action\n```").is_none
    assert parse_action("```action\n   \n```").is_none


def test_block_without_arguments():
    parsed = parse_action(fenced("observe"))
    assert parsed.name == "observe"
    assert parsed.arguments == {}


def test_block_with_empty_braces():
    parsed = parse_action(fenced("observe {}"))
    assert parsed.name == "observe"
    assert parsed.arguments == {}


def test_duplicate_keys_last_wins():
    parsed = parse_action(fenced('click {"selector": "#a", "selector": "#b"}'))
    assert parsed.arguments == {"selector": "#b"}


def test_pairs_without_colon_are_skipped():
    parsed = parse_action(fenced('type {garbage, "selector": "#q", , text: hi, : orphan}'))
    assert parsed.arguments == {"selector": "#q", "text": "hi"}


def test_only_first_block_is_honored():
    text = fenced('click {"selector": "#first"}') + "\n" + fenced('click {"selector": "#second"}')
    assert parse_action(text).arguments == {"selector": "#first"}


def test_name_glued_to_brace():
    parsed = parse_action(fenced('click{"selector": "#go"}'))
    assert parsed.name == "click"
    assert parsed.arguments == {"selector": "#go"}


def test_unterminated_fence_runs_to_end():
    parsed = parse_action('Sure.\n```action\nnavigate {"url": "http://example.org"}')
    assert parsed.name == "navigate"
    assert parsed.arguments == {"url": "http://example.org"}


def test_inline_fence():
    parsed = parse_action('```action finish {"report": "done"}```')
    assert parsed.name == "finish"
    assert parsed.arguments == {"report": "done"}


def test_value_may_contain_colons():
    parsed = parse_action(fenced("navigate {url: http://localhost:8080/path}"))
    assert parsed.arguments == {"url": "http://localhost:8080/path"}


def test_quoted_value_may_contain_commas():
    parsed = parse_action(fenced('finish {"report": "found 3 items, cheapest is $5"}'))
    assert parsed.arguments == {"report": "found 3 items, cheapest is $5"}


def test_unquoted_comma_splits_value():
    # Documented limitation: the tail becomes a malformed pair and is dropped.
    parsed = parse_action(fenced("finish {report: a, b}"))
    assert parsed.arguments == {"report": "a"}


def test_escaped_quote_inside_value():
    parsed = parse_action(fenced(r'type {"selector": "input[name=\"q\"]", "text": "x"}'))
    assert parsed.arguments["selector"] == 'input[name="q"]'


def test_unterminated_quote_runs_to_end():
    parsed = parse_action(fenced('click {"selector": "#go}'))
    assert parsed.name == "click"
    assert parsed.arguments == {"selector": "#go}"}


def test_nested_braces_do_not_crash():
    parsed = parse_action(fenced('finish {"report": {"a": 1}}'))
    assert parsed.name == "finish"
    assert "report" in parsed.arguments


def test_multiline_body():
    parsed = parse_action("```action\ntype {\n  \"selector\": \"#q\",\n  \"text\": \"hi\"\n}\n```")
    assert parsed.name == "type"
    assert parsed.arguments == {"selector": "#q", "text": "hi"}


@pytest.mark.parametrize("text", [
    "",
    "```action",
    "```action\n{}\n```",
    "```action\n{url: x}\n```",
])
def test_degenerate_inputs_yield_no_action(text):
    assert parse_action(text).is_none


def test_parsing_is_deterministic():
    text = fenced("type {selector: '#q', text: \"a:b\", submit: TRUE}")
    assert parse_action(text) == parse_action(text)


def test_extract_action_block_strips_body():
    assert extract_action_block("```action\n  observe {}  \n```") == "observe {}"
    assert extract_action_block("no fence here") is None


def test_tokenize_kinds():
    kinds = [t.kind for t in tokenize('{"a": b}')]
    assert kinds == ["{", "quoted", ":", "bare", "}"]


def test_parse_arguments_empty():
    assert parse_arguments("") == {}
    assert parse_arguments("   ") == {}
    assert parse_arguments("{}") == {}


def test_apostrophe_inside_bare_value_is_literal():
    parsed = parse_action(fenced("type {selector: #q, text: don't stop, submit: true}"))
    assert parsed.arguments == {"selector": "#q", "text": "don't stop", "submit": "true"}


def test_apostrophe_in_report_keeps_closing_brace_out():
    parsed = parse_action(fenced("finish {report: it's done}"))
    assert parsed.arguments == {"report": "it's done"}


@pytest.mark.parametrize("selector", [
    "a[title='Next page']",
    'input[name="q"]',
])
def test_attribute_selector_quotes_are_kept(selector):
    parsed = parse_action(fenced(f"click {{selector: {selector}}}"))
    assert parsed.arguments == {"selector": selector}


def test_leading_quote_still_delimits_value():
    kinds = [t.kind for t in tokenize("{text:  'it''s'}")]
    assert kinds == ["{", "bare", ":", "bare", "quoted", "bare", "}"]
