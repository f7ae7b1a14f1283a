"""Reactive browser agent: one model turn, one browser action, repeat."""
import time
import uuid
from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from webpilot.actions import ActionRegistry, default_registry
from webpilot.artifacts import ArtifactSink, NullArtifactSink
from webpilot.browser import Browser
from webpilot.errors import ModelError, RunTimeoutError
from webpilot.grammar import parse_action
from webpilot.llm_client import LLMClient
from webpilot.models import RunResult, RunState
from webpilot.summarizer import DEFAULT_MAX_CHARS, summarize_for_llm


SYSTEM_PROMPT_TEMPLATE = """You are an autonomous web agent. You have these actions:

{catalog}

Work iteratively: analyse the goal and the current page observation.
At every step output EXACTLY ONE action in a code block:

```action
<action> <JSON arguments>
```

where <action> is one of [{names}].
Nothing else may appear inside the block.

If an action is risky (deleting, paying, sending) ask for confirmation
in your reply outside the block first.
"""

INITIAL_MESSAGE_TEMPLATE = "Goal: {goal}\nCurrent observation:\n{observation}"

CORRECTIVE_MESSAGE = "Please emit exactly one action block: the next step must be inside ```action```."


def build_system_prompt(registry: ActionRegistry) -> str:
    """Render the fixed instruction text from the registered actions."""
    return SYSTEM_PROMPT_TEMPLATE.format(
        catalog=registry.catalog(),
        names=", ".join(registry.names),
    )


def deadline_after(seconds: float, clock: Callable[[], float] = time.time) -> float:
    """Absolute deadline ``seconds`` from now."""
    return clock() + seconds


class BrowserAgent:
    """
    Execution loop driving a browser from model turns.

    Every ``run`` owns its own ``RunState`` (history, step counter, deadline).
    The agent may be reused for consecutive runs but must not run
    concurrently against the same browser.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        browser: Browser,
        artifacts: Optional[ArtifactSink] = None,
        registry: Optional[ActionRegistry] = None,
        observation_max_chars: int = DEFAULT_MAX_CHARS,
        clock: Callable[[], float] = time.time,
    ):
        self.llm_client = llm_client
        self.browser = browser
        self.artifacts = artifacts or NullArtifactSink()
        self.registry = registry or default_registry()
        self.observation_max_chars = observation_max_chars
        self.clock = clock
        self.system_prompt = build_system_prompt(self.registry)

    def _summarize(self, observation: str) -> str:
        return summarize_for_llm(observation, self.observation_max_chars)

    def _result(self, state: RunState, start_time: float, usage_start: dict, **fields) -> RunResult:
        return RunResult(
            run_id=state.run_id,
            goal=state.goal,
            history=list(state.history),
            walltime=self.clock() - start_time,
            tokens={
                key: self.llm_client.usage.get(key, 0) - usage_start.get(key, 0)
                for key in ("input", "output")
            },
            **fields
        )

    def run(self, goal: str, deadline: float) -> RunResult:
        """
        Run the agent on ``goal`` until it finishes or ``deadline`` passes.

        Args:
            goal: Natural-language task
            deadline: Absolute time (same scale as ``clock``) after which no
                new iteration starts

        Returns:
            Successful RunResult carrying the model's report

        Raises:
            ModelError: the model call failed; the run is abandoned
            RunTimeoutError: the deadline passed before ``finish``
        """
        start_time = self.clock()
        usage_start = dict(self.llm_client.usage)
        run_id = f"{datetime.now().strftime('%Y%m%d-%H%M%S')}_{uuid.uuid4().hex[:8]}"
        self.artifacts.start_run(run_id)

        logger.info(f"Starting run {run_id}: {goal}")

        initial_observation = self.browser.capture_observation()
        state = RunState(run_id=run_id, goal=goal, deadline=deadline)
        state.append("system", self.system_prompt)
        state.append("user", INITIAL_MESSAGE_TEMPLATE.format(
            goal=goal,
            observation=self._summarize(initial_observation),
        ))

        result = RunResult(run_id=run_id, goal=goal)
        try:
            result = self._loop(state, start_time, usage_start)
            return result
        except RunTimeoutError as e:
            result = e.result
            raise
        except ModelError as e:
            logger.error(f"Run {run_id} failed at step {state.step}: {e}")
            result = self._result(state, start_time, usage_start, steps=state.step - 1, error=str(e))
            raise
        finally:
            self.artifacts.save_transcript(result)

    def _loop(self, state: RunState, start_time: float, usage_start: dict) -> RunResult:
        while self.clock() < state.deadline:
            reply = self.llm_client.chat(self.system_prompt, state.history)
            logger.debug(f"Model reply (step {state.step}): {reply[:500]}")

            action = parse_action(reply)
            if action.is_none:
                logger.warning(f"No action block in model reply at step {state.step}, asking again")
                state.append("assistant", reply)
                state.append("user", CORRECTIVE_MESSAGE)
                continue

            logger.info(f"Step {state.step}: {action.name} {action.arguments}")
            outcome = self.registry.dispatch(action.name, action.arguments, self.browser)

            self.artifacts.save(f"step{state.step:02d}_{action.name}")

            if outcome.finished:
                state.append("assistant", reply)
                report = outcome.report or ""
                logger.info(f"Run {state.run_id} finished after {state.step} steps")
                logger.info(f"Report: {report}")
                return self._result(state, start_time, usage_start, success=True, report=report, steps=state.step)

            observation = outcome.observation or ""
            if observation.startswith("ERROR:"):
                logger.warning(f"Step {state.step} {action.name}: {observation}")

            state.append("assistant", reply)
            state.append("user", self._summarize(observation))
            state.step += 1

        logger.error(f"Run {state.run_id} timed out after {state.step - 1} steps")
        result = self._result(state, start_time, usage_start, steps=state.step - 1, error="timeout")
        raise RunTimeoutError("timeout", result=result)
