"""
Interactive command-line front end.

Usage:
    webpilot
    webpilot --headless --max-time 300
    python scripts/run_agent.py --provider openai --model gpt-4o-mini
"""
import argparse
import sys
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv
from loguru import logger

from webpilot.agent import BrowserAgent, deadline_after
from webpilot.artifacts import ArtifactSink
from webpilot.browser import PlaywrightBrowser
from webpilot.config import Settings, load_settings, resolve_api_key, resolve_base_url
from webpilot.errors import MissingCredentialError, ModelError, RunTimeoutError
from webpilot.llm_client import create_llm_client


def setup_logging(log_dir: str):
    """Configure logging."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "webpilot.log"

    logger.add(
        log_file,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
        level="DEBUG"
    )

    logger.info(f"Logging to {log_file}")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the browser agent interactively")

    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to config file"
    )

    parser.add_argument(
        "--provider",
        type=str,
        default=None,
        choices=["openrouter", "openai", "together", "anthropic"],
        help="Override LLM provider"
    )

    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Override model name (e.g. tngtech/deepseek-r1t2-chimera:free)"
    )

    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run browser headless"
    )

    parser.add_argument(
        "--slowmo",
        type=int,
        default=None,
        help="Playwright slow-mo in ms"
    )

    parser.add_argument(
        "--max-time",
        type=float,
        default=None,
        help="Time budget per goal in seconds"
    )

    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Apply command-line overrides on top of the loaded settings."""
    if args.provider and args.provider != settings.llm.provider:
        settings.llm.provider = args.provider
        settings.llm.base_url = resolve_base_url(args.provider)
        settings.llm.api_key = resolve_api_key(args.provider)
    if args.model:
        settings.llm.model = args.model
    if args.headless:
        settings.browser.headless = True
    if args.slowmo is not None:
        settings.browser.slow_mo_ms = args.slowmo
    if args.max_time is not None:
        settings.agent.max_run_seconds = args.max_time
    return settings


def interactive_loop(
    agent: BrowserAgent,
    max_run_seconds: float,
    read: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> None:
    """Read goals until ``exit`` or end of input, running the agent on each."""
    write("Agent started. Enter a task (or 'exit' to quit).")
    while True:
        try:
            text = read("\n> ")
        except EOFError:
            write("Bye.")
            return

        text = text.strip()
        if not text:
            continue
        if text.lower() == "exit":
            write("Bye.")
            return

        try:
            result = agent.run(text, deadline_after(max_run_seconds, agent.clock))
        except RunTimeoutError:
            write(f"Run failed: timeout after {max_run_seconds:.0f}s")
        except ModelError as e:
            write(f"Run failed: {e}")
        else:
            write(f"\n[REPORT]\n{result.report}")


def main(argv=None) -> int:
    args = parse_args(argv)

    # Load environment variables
    load_dotenv()

    settings = apply_overrides(load_settings(args.config), args)
    setup_logging(settings.paths.logs_dir)

    try:
        llm_client = create_llm_client(
            settings.llm.provider,
            settings.llm.model,
            api_key=settings.llm.api_key,
            base_url=settings.llm.base_url,
            temperature=settings.llm.temperature,
            max_tokens=settings.llm.max_tokens,
            timeout=settings.llm.request_timeout_seconds,
        )
    except MissingCredentialError as e:
        logger.error(str(e))
        print(str(e))
        return 1

    with PlaywrightBrowser(settings.browser) as browser:
        agent = BrowserAgent(
            llm_client=llm_client,
            browser=browser,
            artifacts=ArtifactSink(settings.paths.artifacts_dir, browser),
            observation_max_chars=settings.agent.observation_max_chars,
        )
        interactive_loop(agent, settings.agent.max_run_seconds)

    return 0


if __name__ == "__main__":
    sys.exit(main())
