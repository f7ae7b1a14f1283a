"""Per-step screenshots/HTML and run transcripts on disk."""
import json
import re
from pathlib import Path
from typing import Optional

from loguru import logger

from webpilot.browser import Browser
from webpilot.models import RunResult


_UNSAFE_LABEL_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def sanitize_label(label: str) -> str:
    """Make a label usable as a file name."""
    cleaned = _UNSAFE_LABEL_RE.sub("_", label).strip("._")
    return cleaned[:80] or "artifact"


class ArtifactSink:
    """
    Best-effort artifact writer.

    Layout:
        <base_dir>/<run_id>/<label>.png
        <base_dir>/<run_id>/<label>.html
        <base_dir>/<run_id>/transcript.json

    Nothing here raises into the execution loop; failures are logged.
    """

    def __init__(self, base_dir: str, browser: Browser):
        self.base_dir = Path(base_dir)
        self.browser = browser
        self.run_dir: Optional[Path] = None

    def start_run(self, run_id: str) -> None:
        try:
            self.run_dir = self.base_dir / run_id
            self.run_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Artifacts for run {run_id} -> {self.run_dir}")
        except OSError as e:
            logger.warning(f"Could not create artifact directory: {e}")
            self.run_dir = None

    def save(self, label: str) -> None:
        if self.run_dir is None:
            return
        name = sanitize_label(label)
        try:
            self.browser.save_screenshot(self.run_dir / f"{name}.png")
            self.browser.save_html(self.run_dir / f"{name}.html")
        except Exception as e:
            logger.warning(f"Failed to save artifacts '{name}': {e}")

    def save_transcript(self, result: RunResult) -> None:
        if self.run_dir is None:
            return
        path = self.run_dir / "transcript.json"
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(result.model_dump(), f, indent=2, ensure_ascii=False)
            logger.debug(f"Transcript saved to {path}")
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to save transcript: {e}")


class NullArtifactSink(ArtifactSink):
    """Sink that discards everything."""

    def __init__(self):
        self.base_dir = None
        self.browser = None
        self.run_dir = None

    def start_run(self, run_id: str) -> None:
        pass

    def save(self, label: str) -> None:
        pass

    def save_transcript(self, result: RunResult) -> None:
        pass
