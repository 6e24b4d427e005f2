"""Colour-coded step logging for resource ingestion, sweeps and retrieval.

Each pipeline stage has a fixed colour and icon so one resource's journey
(download → extract → chunk → embed → store) can be followed in a busy
terminal. Colours are dropped when ``NO_COLOR`` is set.

    🟢 Green   — Upload / Download / Complete
    🟡 Yellow  — Text extraction, warnings
    🔵 Blue    — Chunking
    🟣 Magenta — Embedding
    🔷 Cyan    — Storage / Retrieval
    🔴 Red     — Errors
    ⚪ Gray    — Details / stats
"""

import logging
import os
import time
from contextlib import contextmanager
from typing import Any, Iterator, NamedTuple

_USE_COLOR = "NO_COLOR" not in os.environ


def _ansi(code: str) -> str:
    return f"\033[{code}m" if _USE_COLOR else ""


RESET = _ansi("0")
BOLD = _ansi("1")
DIM = _ansi("2")
RED = _ansi("91")
GREEN = _ansi("92")
YELLOW = _ansi("93")
BLUE = _ansi("94")
MAGENTA = _ansi("95")
CYAN = _ansi("96")
WHITE = _ansi("97")
GRAY = _ansi("90")


class Stage(NamedTuple):
    label: str
    color: str
    icon: str


class PipelineStage:
    """The stages a log line can belong to."""

    UPLOAD = Stage("UPLOAD", GREEN, "📁")
    DOWNLOAD = Stage("DOWNLOAD", GREEN, "⬇️")
    TEXT_EXTRACTION = Stage("TEXT_EXTRACT", YELLOW, "📄")
    CHUNKING = Stage("CHUNK", BLUE, "✂️")
    EMBEDDING = Stage("EMBED", MAGENTA, "🧮")
    STORAGE = Stage("STORE", CYAN, "💾")
    SWEEP = Stage("SWEEP", WHITE, "🧹")
    RETRIEVAL = Stage("RETRIEVAL", CYAN, "🔎")
    PIPELINE = Stage("PIPELINE", WHITE, "⚙️")
    ERROR = Stage("ERROR", RED, "❌")
    COMPLETE = Stage("COMPLETE", GREEN, "✅")


class PipelineLogger:
    """Stage-aware wrapper around a named stdlib logger.

    Usage:
        log = PipelineLogger("ResourceProcessingService")
        with log.timed_step(PipelineStage.EMBEDDING, "Embedding 12 chunks"):
            vectors = await embedder.embed(texts)
        log.stats(chunks=12, dimensions=768)
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def step_start(self, stage: Stage, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, f"{stage.color}{BOLD}{stage.icon} [{stage.label}]{RESET}",
                   f"{stage.color}{message}", fields)

    def step_complete(self, stage: Stage, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, f"{stage.color}{stage.icon} [{stage.label}]{RESET}",
                   f"{GREEN}✓ {message}", fields)

    def step_warning(self, stage: Stage, message: str, **fields: Any) -> None:
        """Recoverable, per-resource problems such as unreadable content."""
        self._emit(logging.WARNING, f"{YELLOW}{stage.icon} [{stage.label}]{RESET}",
                   f"{YELLOW}⚠ {message}", fields)

    def step_error(self, stage: Stage, message: str, error: BaseException | None = None) -> None:
        text = f"{RED}{message}{RESET}"
        if error is not None:
            text += f" {DIM}→ {type(error).__name__}: {error}"
        self._emit(logging.ERROR, f"{RED}{BOLD}❌ [{stage.label}]{RESET}", text, {})

    def detail(self, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, f"   {GRAY}├─", message, fields)

    def stats(self, **fields: Any) -> None:
        body = " | ".join(f"{k}: {v}" for k, v in fields.items())
        self._logger.info(f"   {GRAY}📈 {body}{RESET}")

    def separator(self, title: str = "") -> None:
        if not title:
            self._logger.info(f"{GRAY}{'─' * 60}{RESET}")
            return
        self._logger.info(f"{GRAY}{'─' * 10} {title} {'─' * max(50 - len(title), 0)}{RESET}")

    @contextmanager
    def timed_step(self, stage: Stage, message: str, **fields: Any) -> Iterator[None]:
        """Log start and end of a step with elapsed time; failures are logged and re-raised."""
        self.step_start(stage, message, **fields)
        start = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self.step_error(stage, f"{message} — failed after {time.perf_counter() - start:.2f}s", error=exc)
            raise
        self.step_complete(stage, f"{message} — {time.perf_counter() - start:.2f}s", **fields)

    def _emit(self, level: int, prefix: str, message: str, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        line = f"{prefix} {message}{RESET}"
        if fields:
            line += f" {GRAY}({' | '.join(f'{k}={v}' for k, v in fields.items())}){RESET}"
        self._logger.log(level, line)
