"""Shared fakes for the model and the browser."""
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from webpilot.browser import Browser
from webpilot.errors import BrowserActionError, ModelError
from webpilot.llm_client import LLMClient


def action_block(line: str) -> str:
    return f"Let me do this.\n```action\n{line}\n```"


class ScriptedLLMClient(LLMClient):
    """Returns canned replies in order and records every request."""

    model = "scripted"

    def __init__(self, replies: List[str]):
        super().__init__()
        self.replies = list(replies)
        self.calls: List[List[Dict[str, str]]] = []

    def complete(self, messages, temperature=0.2, max_tokens=2048, **kwargs):
        self.calls.append([dict(m) for m in messages])
        if not self.replies:
            raise ModelError("script exhausted")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply, {"input": 10, "output": 5}


class FakeBrowser(Browser):
    """In-memory browser recording calls; failures are configured per operation."""

    def __init__(self, failures: Optional[Dict[str, str]] = None):
        self.calls: List[tuple] = []
        self.failures = failures or {}
        self.url = "about:blank"

    def _maybe_fail(self, op: str):
        if op in self.failures:
            raise BrowserActionError(self.failures[op])

    def navigate(self, url: str) -> None:
        self.calls.append(("navigate", url))
        self._maybe_fail("navigate")
        self.url = url

    def click(self, selector: str) -> None:
        self.calls.append(("click", selector))
        self._maybe_fail("click")

    def fill(self, selector: str, text: str) -> None:
        self.calls.append(("fill", selector, text))
        self._maybe_fail("fill")

    def press_submit_key(self) -> None:
        self.calls.append(("press_submit_key",))
        self._maybe_fail("press_submit_key")

    def wait_idle(self) -> None:
        self.calls.append(("wait_idle",))

    def capture_observation(self) -> str:
        self.calls.append(("capture_observation",))
        return f"URL: {self.url}\nTitle: Example"

    def save_screenshot(self, path: Path) -> None:
        Path(path).write_bytes(b"png")

    def save_html(self, path: Path) -> None:
        Path(path).write_text("<html></html>", encoding="utf-8")

    def mutating_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0] not in ("capture_observation", "wait_idle")]


class StepClock:
    """Clock that advances by ``step`` seconds on every read."""

    def __init__(self, start: float = 1000.0, step: float = 1.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def browser():
    return FakeBrowser()
