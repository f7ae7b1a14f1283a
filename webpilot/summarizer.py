"""Observation summarizer: bounds page observations before they enter the conversation."""
import re


DEFAULT_MAX_CHARS = 4000
HEAD_RATIO = 0.7

_BLANK_LINES_RE = re.compile(r"\n{3,}")


def summarize_for_llm(observation: str, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    """
    Reduce an observation to at most ``max_chars`` characters.

    Trailing whitespace is stripped from every line and runs of blank lines
    are collapsed. If the text is still too long, the beginning (URL, title,
    interactive elements) and the end of the page are kept, joined by a
    truncation marker.
    """
    if not observation:
        return ""

    text = "\n".join(line.rstrip() for line in observation.strip().splitlines())
    text = _BLANK_LINES_RE.sub("\n\n", text)

    if len(text) <= max_chars:
        return text

    marker = f"\n... [truncated, {len(text)} chars total] ...\n"
    budget = max_chars - len(marker)
    if budget <= 0:
        return text[:max_chars]

    head = int(budget * HEAD_RATIO)
    tail = budget - head
    return text[:head] + marker + (text[-tail:] if tail else "")
