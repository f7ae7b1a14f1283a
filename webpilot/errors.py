"""Exception types raised across the agent."""


class WebPilotError(Exception):
    """Base class for all agent errors."""


class MissingCredentialError(WebPilotError):
    """Raised when an LLM client is built without an API key."""


class ModelError(WebPilotError):
    """Raised when a chat call fails (transport, decoding or API error)."""


class BrowserActionError(WebPilotError):
    """Raised when executing a browser operation fails."""


class ActionArgumentError(WebPilotError):
    """Raised when an action is missing a required argument."""


class RunTimeoutError(WebPilotError):
    """
    Raised when the run deadline passes before the model finishes.

    The partial result (history, steps, tokens) is kept on ``result``.
    """

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result
