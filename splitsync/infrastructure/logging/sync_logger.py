"""Colored sync logger — ANSI-colored console logging for sync cycles.

Color scheme:
    🔵 Blue    — Pull (remote → cache)
    🟢 Green   — Push (outbox → remote)
    🟣 Magenta — Conflicts
    🟡 Yellow  — Cache maintenance
    🔴 Red     — Errors
    ⚪ Gray    — Timing / Stats
"""

import logging
import time
from contextlib import contextmanager
from typing import Any


class _Colors:
    """ANSI escape codes for terminal colors."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


class SyncStage:
    """Predefined sync stages with colors and icons."""

    CYCLE = ("CYCLE", _Colors.WHITE, "🔄")
    PULL = ("PULL", _Colors.BLUE, "⬇️")
    PUSH = ("PUSH", _Colors.GREEN, "⬆️")
    CONFLICT = ("CONFLICT", _Colors.MAGENTA, "⚖️")
    CACHE = ("CACHE", _Colors.YELLOW, "🧹")
    ERROR = ("ERROR", _Colors.RED, "❌")


class SyncLogger:
    """Color-coded logger for the sync engine.

    Usage:
        log = SyncLogger("SyncEngine")
        with log.timed_step(SyncStage.PULL, "Refreshing expenses"):
            ...
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)

    def step_start(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        label, color, icon = stage
        formatted = (
            f"{color}{_Colors.BOLD}{icon} [{label}]{_Colors.RESET} "
            f"{color}{message}{_Colors.RESET}"
        )
        self._logger.info(formatted + self._details(kwargs))

    def step_complete(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        label, color, icon = stage
        formatted = (
            f"{color}{icon} [{label}]{_Colors.RESET} "
            f"{_Colors.GREEN}✓ {message}{_Colors.RESET}"
        )
        self._logger.info(formatted + self._details(kwargs))

    def step_error(self, stage: tuple[str, str, str], message: str, error: Exception | None = None) -> None:
        label, _, icon = stage
        formatted = (
            f"{_Colors.RED}{_Colors.BOLD}❌ [{label}]{_Colors.RESET} "
            f"{_Colors.RED}{message}{_Colors.RESET}"
        )
        if error:
            formatted += f" {_Colors.DIM}→ {type(error).__name__}: {error}{_Colors.RESET}"
        self._logger.error(formatted)

    def detail(self, message: str, **kwargs: Any) -> None:
        formatted = f"   {_Colors.GRAY}├─ {message}{_Colors.RESET}"
        self._logger.info(formatted + self._details(kwargs))

    def outbox_action(self, verb: str, action_id: str, action_type: str, **kwargs: Any) -> None:
        """One line per replayed outbox entry, e.g. ``pushed CREATE_EXPENSE action_...``."""
        formatted = (
            f"   {_Colors.GRAY}├─{_Colors.RESET} {_Colors.GREEN}{verb}{_Colors.RESET} "
            f"{_Colors.WHITE}{action_type}{_Colors.RESET} {_Colors.DIM}{action_id}{_Colors.RESET}"
        )
        self._logger.info(formatted + self._details(kwargs))

    def stats(self, **kwargs: Any) -> None:
        parts = [f"{k}: {v}" for k, v in kwargs.items()]
        self._logger.info(f"   {_Colors.GRAY}📈 {' | '.join(parts)}{_Colors.RESET}")

    @contextmanager
    def timed_step(self, stage: tuple[str, str, str], message: str, **kwargs: Any):
        """Log start/end of a step with elapsed time; re-raises failures after logging them."""
        self.step_start(stage, message, **kwargs)
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            elapsed = time.perf_counter() - start
            self.step_error(stage, f"{message} — failed after {elapsed:.2f}s", error=e)
            raise
        else:
            elapsed = time.perf_counter() - start
            self.step_complete(stage, f"{message} — {elapsed:.2f}s")

    @staticmethod
    def _details(kwargs: dict[str, Any]) -> str:
        if not kwargs:
            return ""
        details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
        return f" {_Colors.GRAY}({details}){_Colors.RESET}"
