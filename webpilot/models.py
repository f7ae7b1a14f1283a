"""Data models for the browser agent."""
from typing import List, Optional, Dict, Literal
from pydantic import BaseModel, Field


Role = Literal["system", "user", "assistant"]


class ConversationMessage(BaseModel):
    """One turn of the conversation sent to the model."""

    role: Role
    content: str


class ParsedAction(BaseModel):
    """
    Action extracted from a model turn.

    ``name`` is None when the turn contained no recognizable action block.
    Arguments are kept as a flat string mapping; each action handler checks
    its own keys.
    """

    name: Optional[str] = Field(None, description="Lower-cased action name")
    arguments: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_none(self) -> bool:
        return not self.name


class NavigateArgs(BaseModel):
    url: str


class ClickArgs(BaseModel):
    selector: str


class TypeArgs(BaseModel):
    selector: str
    text: str
    submit: bool = False


class ObserveArgs(BaseModel):
    pass


class FinishArgs(BaseModel):
    report: str = ""


class ActionOutcome(BaseModel):
    """Result of dispatching one action."""

    observation: Optional[str] = None
    finished: bool = False
    report: Optional[str] = None


class RunState(BaseModel):
    """
    Mutable state of a single run.

    Owned by one ``BrowserAgent.run`` call and discarded when it returns.
    """

    run_id: str
    goal: str
    deadline: float = Field(description="Absolute deadline as epoch seconds")
    step: int = 1
    history: List[ConversationMessage] = Field(default_factory=list)

    def append(self, role: Role, content: str) -> None:
        self.history.append(ConversationMessage(role=role, content=content))


class RunResult(BaseModel):
    """Outcome of a run, also written to the run transcript."""

    run_id: str
    goal: str
    success: bool = False
    report: Optional[str] = None
    steps: int = 0
    history: List[ConversationMessage] = Field(default_factory=list)
    walltime: float = 0.0
    tokens: Dict[str, int] = Field(default_factory=lambda: {"input": 0, "output": 0})
    error: Optional[str] = None
