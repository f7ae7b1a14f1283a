"""
Action block grammar.

A model turn carries at most one machine-readable instruction, fenced as::

    ```action
    click {"selector": "#go"}
    ```

The body is ``<name> <arguments>`` where the arguments are a loosely written
key/value list::

    args  := '{'? pair (',' pair)* '}'?
    pair  := key ':' value
    key   := quoted | bare
    value := (quoted | bare | ':' | stray brace)*

Recovery rules, applied instead of failing:

- no ``action`` fence, or an empty block      -> no action
- fence without a closing ``` fence            -> block runs to end of text
- pair without ':' or with an empty key        -> pair skipped
- duplicate key                                -> last value wins
- unterminated quote                           -> string runs to end of input
- brace that is not the outer '{' / '}'       -> kept as literal value text

A quote opens a string only as the first non-blank character of a key or
value; elsewhere ``'`` and ``"`` are literal, so ``don't`` and
``a[title='Next']`` survive unquoted.

Commas split pairs unless they appear inside a quoted string. Unquoted commas
and nested objects inside a value are not supported.
"""
import re
from typing import Dict, List, NamedTuple, Optional, Tuple

from webpilot.models import ParsedAction


FENCE = "```"

_OPEN_FENCE_RE = re.compile(r"```[ \t]*action(?=\s|```|$)", re.IGNORECASE)
# Name runs up to whitespace or the opening brace: "click{...}" is accepted.
_NAME_RE = re.compile(r"([^\s{]+)\s*(.*)", re.DOTALL)

LBRACE, RBRACE, COMMA, COLON, QUOTED, BARE = "{", "}", ",", ":", "quoted", "bare"

_PUNCTUATION = {"{": LBRACE, "}": RBRACE, ",": COMMA, ":": COLON}
_QUOTES = "\"'"


class Token(NamedTuple):
    kind: str
    text: str


def extract_action_block(text: str) -> Optional[str]:
    """Return the body of the first ``action`` fence, or None if there is none."""
    if not text:
        return None
    match = _OPEN_FENCE_RE.search(text)
    if not match:
        return None
    body_start = match.end()
    body_end = text.find(FENCE, body_start)
    if body_end == -1:
        body_end = len(text)
    return text[body_start:body_end].strip()


def tokenize(raw: str) -> List[Token]:
    """Split an argument list into punctuation, quoted strings and bare runs."""
    tokens: List[Token] = []
    i = 0
    n = len(raw)
    # A quote delimits a string only at the start of a key or value.
    at_item_start = True
    while i < n:
        ch = raw[i]
        if ch in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[ch], ch))
            i += 1
            at_item_start = True
            continue

        if at_item_start:
            j = i
            while j < n and raw[j].isspace():
                j += 1
            if j < n and raw[j] in _QUOTES:
                if j > i:
                    tokens.append(Token(BARE, raw[i:j]))
                value, i = _read_quoted(raw, j)
                tokens.append(Token(QUOTED, value))
                at_item_start = False
                continue

        start = i
        while i < n and raw[i] not in _PUNCTUATION:
            i += 1
        tokens.append(Token(BARE, raw[start:i]))
        at_item_start = False
    return tokens


def _read_quoted(raw: str, start: int) -> Tuple[str, int]:
    quote = raw[start]
    chars = []
    i = start + 1
    while i < len(raw):
        ch = raw[i]
        if ch == "\\" and i + 1 < len(raw):
            chars.append(raw[i + 1])
            i += 2
            continue
        if ch == quote:
            return "".join(chars), i + 1
        chars.append(ch)
        i += 1
    return "".join(chars), i


class ArgumentParser:
    """Recursive-descent parser over the token stream of an argument list."""

    def __init__(self, tokens: List[Token]):
        # The outer braces are optional; only the first and last token count.
        start, end = 0, len(tokens)
        first = self._first_significant(tokens, range(len(tokens)))
        if first is not None and tokens[first].kind == LBRACE:
            start = first + 1
        last = self._first_significant(tokens, range(len(tokens) - 1, start - 1, -1))
        if last is not None and tokens[last].kind == RBRACE:
            end = last
        self.tokens = tokens[start:end]
        self.pos = 0

    @staticmethod
    def _first_significant(tokens: List[Token], indices) -> Optional[int]:
        for i in indices:
            if tokens[i].kind == BARE and not tokens[i].text.strip():
                continue
            return i
        return None

    def parse(self) -> Dict[str, str]:
        arguments: Dict[str, str] = {}
        while not self._at_end():
            pair = self._parse_pair()
            if pair is not None:
                key, value = pair
                arguments[key] = value
            if self._peek_kind() == COMMA:
                self.pos += 1
        return arguments

    def _parse_pair(self) -> Optional[Tuple[str, str]]:
        key_tokens = self._collect(stop=(COLON, COMMA))
        if self._peek_kind() != COLON:
            return None
        self.pos += 1
        value_tokens = self._collect(stop=(COMMA,))
        key = self._join(key_tokens)
        if not key:
            return None
        return key, self._join(value_tokens)

    def _collect(self, stop: Tuple[str, ...]) -> List[Token]:
        collected = []
        while not self._at_end() and self._peek_kind() not in stop:
            collected.append(self.tokens[self.pos])
            self.pos += 1
        return collected

    @staticmethod
    def _join(tokens: List[Token]) -> str:
        significant = [t for t in tokens if not (t.kind == BARE and not t.text.strip())]
        if len(significant) == 1 and significant[0].kind == QUOTED:
            return significant[0].text
        return "".join(t.text for t in tokens).strip()

    def _peek_kind(self) -> Optional[str]:
        if self._at_end():
            return None
        return self.tokens[self.pos].kind

    def _at_end(self) -> bool:
        return self.pos >= len(self.tokens)


def parse_arguments(raw: str) -> Dict[str, str]:
    """Parse a loose ``{key: value, ...}`` list into a string mapping."""
    if not raw or not raw.strip():
        return {}
    return ArgumentParser(tokenize(raw)).parse()


def parse_action(text: str) -> ParsedAction:
    """
    Extract the single action carried by a model turn.

    Text outside the first ``action`` fence is ignored.

    Returns:
        ParsedAction with ``name`` None when no action was found
    """
    body = extract_action_block(text)
    if not body:
        return ParsedAction()

    match = _NAME_RE.match(body)
    if not match:
        return ParsedAction()
    name, remainder = match.group(1).lower(), match.group(2)
    return ParsedAction(name=name, arguments=parse_arguments(remainder))
