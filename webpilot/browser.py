"""
Browser capability used by the agent.

``Browser`` is the interface the execution loop talks to. ``PlaywrightBrowser``
drives a persistent Chromium profile through the Playwright sync API, so
cookies and logins survive between runs.

Observation structure (plain text):
    - URL and title of the current page
    - Interactive elements, one per line: ``[tag] text (selector: css)``
    - Excerpt of the visible page text
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger
from playwright.sync_api import BrowserContext, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PWTimeoutError

from webpilot.config import BrowserConfig
from webpilot.errors import BrowserActionError


class Browser(ABC):
    """Interface for an automation-capable browser session."""

    @abstractmethod
    def navigate(self, url: str) -> None:
        """Load ``url``. Raises BrowserActionError on failure."""

    @abstractmethod
    def click(self, selector: str) -> None:
        """Click the element matched by ``selector``."""

    @abstractmethod
    def fill(self, selector: str, text: str) -> None:
        """Replace the value of the field matched by ``selector``."""

    @abstractmethod
    def press_submit_key(self) -> None:
        """Send the Enter key to the focused element."""

    @abstractmethod
    def wait_idle(self) -> None:
        """Wait for network activity to settle. Never raises."""

    @abstractmethod
    def capture_observation(self) -> str:
        """Describe the current page as text."""

    @abstractmethod
    def save_screenshot(self, path: Path) -> None:
        """Write a screenshot of the current page to ``path``."""

    @abstractmethod
    def save_html(self, path: Path) -> None:
        """Write the current page HTML to ``path``."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


# Collects visible interactive elements with a CSS selector the model can
# hand back in click/type actions.
_ELEMENTS_JS = """
(limit) => {
    const query = [
        "a[href]", "button", "input", "textarea", "select", "summary",
        "[role='button']", "[role='link']", "[role='textbox']",
        "[role='combobox']", "[role='checkbox']", "[role='tab']",
        "[role='menuitem']", "[contenteditable='true']"
    ].join(",");

    const cssEscape = (value) => (window.CSS && CSS.escape) ? CSS.escape(value) : value;

    const selectorFor = (el) => {
        if (el.id) return "#" + cssEscape(el.id);
        const tag = el.tagName.toLowerCase();
        for (const attr of ["name", "aria-label", "placeholder", "data-testid"]) {
            const v = el.getAttribute(attr);
            if (v) {
                const sel = `${tag}[${attr}="${v.replace(/"/g, '\\\\"')}"]`;
                if (document.querySelectorAll(sel).length === 1) return sel;
            }
        }
        const parts = [];
        let node = el;
        while (node && node.nodeType === 1 && node !== document.body) {
            let part = node.tagName.toLowerCase();
            const parent = node.parentElement;
            if (parent) {
                const siblings = Array.from(parent.children).filter(c => c.tagName === node.tagName);
                if (siblings.length > 1) part += `:nth-of-type(${siblings.indexOf(node) + 1})`;
            }
            parts.unshift(part);
            node = parent;
        }
        return "body > " + parts.join(" > ");
    };

    const visible = (el) => {
        const r = el.getBoundingClientRect();
        const s = window.getComputedStyle(el);
        return r.width > 0 && r.height > 0 && s.visibility !== "hidden" && s.display !== "none";
    };

    const out = [];
    for (const el of document.querySelectorAll(query)) {
        if (out.length >= limit) break;
        if (!visible(el)) continue;
        const text = (el.innerText || el.value || el.getAttribute("aria-label")
                      || el.getAttribute("placeholder") || el.getAttribute("title") || "")
                      .trim().replace(/\\s+/g, " ").slice(0, 80);
        out.push({
            tag: el.tagName.toLowerCase(),
            type: el.getAttribute("type") || el.getAttribute("role") || "",
            text: text,
            selector: selectorFor(el),
        });
    }
    return out;
}
"""

_TEXT_JS = "(limit) => (document.body?.innerText || '').slice(0, limit)"


def format_observation(url: str, title: str, elements: List[Dict[str, Any]], text: str) -> str:
    """Render page state as the text observation shown to the model."""
    lines = [f"URL: {url}", f"Title: {title}", ""]

    lines.append(f"Interactive elements ({len(elements)}):")
    if not elements:
        lines.append("  (none)")
    for el in elements:
        kind = el.get("tag", "")
        if el.get("type"):
            kind += f":{el['type']}"
        entry = f"- [{kind}]"
        if el.get("text"):
            entry += f" {el['text']}"
        lines.append(f"{entry} (selector: {el.get('selector', '')})")

    lines.append("")
    lines.append("Visible text:")
    lines.append(text.strip() if text and text.strip() else "(empty)")
    return "\n".join(lines)


class PlaywrightBrowser(Browser):
    """
    Chromium driven through Playwright with a persistent user profile.

    Use as a context manager, or call ``start()`` / ``close()`` explicitly.
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()
        self._playwright: Optional[Playwright] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    def start(self) -> "PlaywrightBrowser":
        profile_path = Path(self.config.user_data_dir)
        profile_path.mkdir(parents=True, exist_ok=True)

        self._playwright = sync_playwright().start()
        self._context = self._playwright.chromium.launch_persistent_context(
            str(profile_path),
            headless=self.config.headless,
            slow_mo=self.config.slow_mo_ms,
        )
        self._context.set_default_timeout(self.config.action_timeout_ms)
        self._context.set_default_navigation_timeout(self.config.navigation_timeout_ms)

        if self._context.pages:
            self._page = self._context.pages[0]
        else:
            self._page = self._context.new_page()

        logger.info(
            f"Browser started (profile={profile_path}, headless={self.config.headless}, "
            f"slow_mo={self.config.slow_mo_ms}ms)"
        )
        return self

    def close(self) -> None:
        try:
            if self._context:
                self._context.close()
        finally:
            if self._playwright:
                self._playwright.stop()
            self._context = None
            self._playwright = None
            self._page = None
        logger.info("Browser closed")

    def __enter__(self):
        if self._page is None:
            self.start()
        return self

    @property
    def page(self) -> Page:
        if self._page is None:
            raise BrowserActionError("browser not started")
        return self._page

    def navigate(self, url: str) -> None:
        logger.debug(f"goto {url}")
        try:
            self.page.goto(url)
        except PlaywrightError as e:
            raise BrowserActionError(e.message) from e

    def click(self, selector: str) -> None:
        logger.debug(f"click {selector}")
        try:
            self.page.click(selector)
        except PlaywrightError as e:
            raise BrowserActionError(e.message) from e

    def fill(self, selector: str, text: str) -> None:
        logger.debug(f"fill {selector}")
        try:
            self.page.fill(selector, text)
        except PlaywrightError as e:
            raise BrowserActionError(e.message) from e

    def press_submit_key(self) -> None:
        try:
            self.page.keyboard.press("Enter")
        except PlaywrightError as e:
            raise BrowserActionError(e.message) from e

    def wait_idle(self) -> None:
        try:
            self.page.wait_for_load_state("networkidle", timeout=self.config.idle_timeout_ms)
        except PWTimeoutError:
            logger.debug("Network did not go idle in time, continuing")
        except PlaywrightError as e:
            logger.debug(f"Could not wait for network idle: {e}")

    def capture_observation(self) -> str:
        try:
            page = self.page
            elements = page.evaluate(_ELEMENTS_JS, self.config.max_elements) or []
            text = page.evaluate(_TEXT_JS, self.config.max_text_chars) or ""
            return format_observation(page.url, page.title(), elements, text)
        except (PlaywrightError, BrowserActionError) as e:
            logger.warning(f"Failed to capture observation: {e}")
            return f"ERROR: could not capture observation: {e}"

    def save_screenshot(self, path: Path) -> None:
        self.page.screenshot(path=str(path), full_page=True)

    def save_html(self, path: Path) -> None:
        Path(path).write_text(self.page.content(), encoding="utf-8")
