"""
Action handlers and the registry that dispatches to them.

Each handler owns one action name: it checks its own arguments into a typed
model (``validate``), performs the browser effect (``execute``) and renders
its catalog line for the system prompt (``describe``). Failures are returned
to the model as ``ERROR:`` observations instead of being raised.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from loguru import logger
from pydantic import BaseModel

from webpilot.browser import Browser
from webpilot.errors import ActionArgumentError, BrowserActionError
from webpilot.models import (
    ActionOutcome,
    ClickArgs,
    FinishArgs,
    NavigateArgs,
    ObserveArgs,
    TypeArgs,
)


ERROR_PREFIX = "ERROR: "
UNKNOWN_ACTION = "ERROR: unknown action"


def error_observation(cause) -> str:
    return f"{ERROR_PREFIX}{cause}"


def _require(arguments: Dict[str, str], key: str) -> str:
    value = arguments.get(key, "")
    if not value:
        raise ActionArgumentError(f"empty {key}")
    return value


class ActionHandler(ABC):
    """Base class for a single action."""

    name: str = ""
    signature: str = "{}"

    def describe(self) -> str:
        """Catalog line shown to the model."""
        return f"- {self.name} {self.signature}"

    @abstractmethod
    def validate(self, arguments: Dict[str, str]) -> BaseModel:
        """Convert raw arguments; raise ActionArgumentError if unusable."""

    @abstractmethod
    def execute(self, args: BaseModel, browser: Browser) -> ActionOutcome:
        """Perform the action. Browser failures raise BrowserActionError."""


class NavigateAction(ActionHandler):
    name = "navigate"
    signature = '{"url": string}'

    def validate(self, arguments: Dict[str, str]) -> NavigateArgs:
        return NavigateArgs(url=_require(arguments, "url"))

    def execute(self, args: NavigateArgs, browser: Browser) -> ActionOutcome:
        browser.navigate(args.url)
        browser.wait_idle()
        return ActionOutcome(observation=browser.capture_observation())


class ClickAction(ActionHandler):
    name = "click"
    signature = '{"selector": string}'

    def validate(self, arguments: Dict[str, str]) -> ClickArgs:
        return ClickArgs(selector=_require(arguments, "selector"))

    def execute(self, args: ClickArgs, browser: Browser) -> ActionOutcome:
        browser.click(args.selector)
        browser.wait_idle()
        return ActionOutcome(observation=browser.capture_observation())


class TypeAction(ActionHandler):
    name = "type"
    signature = '{"selector": string, "text": string, "submit": bool}'

    def validate(self, arguments: Dict[str, str]) -> TypeArgs:
        selector = _require(arguments, "selector")
        if "text" not in arguments:
            raise ActionArgumentError("missing text")
        submit = arguments.get("submit", "").strip().lower() == "true"
        return TypeArgs(selector=selector, text=arguments["text"], submit=submit)

    def execute(self, args: TypeArgs, browser: Browser) -> ActionOutcome:
        browser.fill(args.selector, args.text)
        if args.submit:
            browser.press_submit_key()
        browser.wait_idle()
        return ActionOutcome(observation=browser.capture_observation())


class ObserveAction(ActionHandler):
    name = "observe"
    signature = "{}"

    def validate(self, arguments: Dict[str, str]) -> ObserveArgs:
        return ObserveArgs()

    def execute(self, args: ObserveArgs, browser: Browser) -> ActionOutcome:
        return ActionOutcome(observation=browser.capture_observation())


class FinishAction(ActionHandler):
    name = "finish"
    signature = '{"report": string}'

    def validate(self, arguments: Dict[str, str]) -> FinishArgs:
        return FinishArgs(report=arguments.get("report", ""))

    def execute(self, args: FinishArgs, browser: Browser) -> ActionOutcome:
        return ActionOutcome(finished=True, report=args.report)


class ActionRegistry:
    """Registry mapping action names to handlers."""

    def __init__(self, handlers: Optional[List[ActionHandler]] = None):
        self._handlers: Dict[str, ActionHandler] = {}
        for handler in handlers or []:
            self.register(handler)

    def register(self, handler: ActionHandler) -> None:
        """Register a handler under its lower-cased name."""
        self._handlers[handler.name.lower()] = handler

    def get(self, name: str) -> Optional[ActionHandler]:
        return self._handlers.get((name or "").lower())

    @property
    def names(self) -> List[str]:
        return list(self._handlers.keys())

    def catalog(self) -> str:
        """Action catalog for the system prompt, one line per action."""
        return "\n".join(handler.describe() for handler in self._handlers.values())

    def dispatch(self, name: str, arguments: Dict[str, str], browser: Browser) -> ActionOutcome:
        """
        Run the named action against the browser.

        Unknown names, missing arguments and browser failures all come back as
        an ``ERROR:`` observation. Argument errors never reach the browser.
        """
        handler = self.get(name)
        if handler is None:
            logger.warning(f"Unknown action: {name}")
            return ActionOutcome(observation=UNKNOWN_ACTION)

        try:
            args = handler.validate(arguments)
        except ActionArgumentError as e:
            logger.warning(f"Rejected {name}: {e}")
            return ActionOutcome(observation=error_observation(e))

        try:
            return handler.execute(args, browser)
        except BrowserActionError as e:
            logger.warning(f"{name} failed: {e}")
            return ActionOutcome(observation=error_observation(e))


def default_registry() -> ActionRegistry:
    """Registry with the built-in navigate/click/type/observe/finish actions."""
    return ActionRegistry([
        NavigateAction(),
        ClickAction(),
        TypeAction(),
        ObserveAction(),
        FinishAction(),
    ])
