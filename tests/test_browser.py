"""Tests for observation rendering and the Playwright adapter wiring (no real browser)."""
from unittest.mock import MagicMock

from playwright.sync_api import Error as PlaywrightError
import pytest

from webpilot.browser import Browser, PlaywrightBrowser, format_observation
from webpilot.config import BrowserConfig
from webpilot.errors import BrowserActionError


def test_format_observation():
    text = format_observation(
        "http://example.org",
        "Example Domain",
        [
            {"tag": "a", "type": "", "text": "More information...", "selector": "body > div > p > a"},
            {"tag": "input", "type": "search", "text": "", "selector": "#q"},
        ],
        "Example Domain\nThis domain is for use in examples.",
    )
    assert text.splitlines()[:2] == ["URL: http://example.org", "Title: Example Domain"]
    assert "- [a] More information... (selector: body > div > p > a)" in text
    assert "- [input:search] (selector: #q)" in text
    assert text.endswith("This domain is for use in examples.")


def test_format_observation_empty_page():
    text = format_observation("about:blank", "", [], "")
    assert "Interactive elements (0):\n  (none)" in text
    assert text.endswith("Visible text:\n(empty)")


@pytest.fixture
def pw_browser():
    browser = PlaywrightBrowser(BrowserConfig(idle_timeout_ms=1234))
    browser._page = MagicMock()
    return browser


def test_operation_errors_become_browser_action_errors(pw_browser):
    pw_browser._page.click.side_effect = PlaywrightError("Element is not visible")
    with pytest.raises(BrowserActionError, match="Element is not visible"):
        pw_browser.click("#hidden")


def test_wait_idle_never_raises(pw_browser):
    pw_browser._page.wait_for_load_state.side_effect = PlaywrightError("Timeout 1234ms exceeded")
    pw_browser.wait_idle()
    pw_browser._page.wait_for_load_state.assert_called_once_with("networkidle", timeout=1234)


def test_capture_failure_is_error_observation(pw_browser):
    pw_browser._page.evaluate.side_effect = PlaywrightError("Execution context was destroyed")
    assert pw_browser.capture_observation().startswith("ERROR:")


def test_not_started():
    with pytest.raises(BrowserActionError, match="not started"):
        PlaywrightBrowser().navigate("http://example.org")


def test_artifact_hooks_are_required():
    class NoArtifacts(Browser):
        def navigate(self, url): pass
        def click(self, selector): pass
        def fill(self, selector, text): pass
        def press_submit_key(self): pass
        def wait_idle(self): pass
        def capture_observation(self): return ""

    with pytest.raises(TypeError):
        NoArtifacts()
