"""Structured, level-filtered logger rendered with Rich.

Every component receives a :class:`Logger` in its constructor; there is no
module-level logger instance.  Each entry is ``(level, message, meta)`` and
is printed as a single console line.  When a ``log_file`` is configured
the same entry is appended to it as a JSON line carrying the session
correlation id.
"""

from __future__ import annotations

import json
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

LEVELS: tuple[str, ...] = ("debug", "info", "warn", "error")

_LEVEL_STYLES: dict[str, str] = {
    "debug": "dim",
    "info": "cyan",
    "warn": "bold yellow",
    "error": "bold red",
}


class Logger:
    """Console logger with structured metadata.

    Args:
        level: Minimum level to emit (``debug``, ``info``, ``warn``, ``error``).
        console: Rich console to print to.  Defaults to a stderr console.
        log_file: Optional JSON-lines sink.
        correlation_id: Session id attached to every file entry.
    """

    def __init__(
        self,
        level: str = "info",
        *,
        console: Console | None = None,
        log_file: str | Path | None = None,
        correlation_id: str | None = None,
    ) -> None:
        if level not in LEVELS:
            raise ValueError(f"Unknown log level {level!r}; expected one of {LEVELS}")
        self.level = level
        self.console = console or Console(stderr=True)
        self.log_file = Path(log_file) if log_file else None
        self.correlation_id = correlation_id or uuid.uuid4().hex
        self._timers: dict[str, float] = {}

    def is_enabled(self, level: str) -> bool:
        return LEVELS.index(level) >= LEVELS.index(self.level)

    def log(self, level: str, message: str, **meta: Any) -> None:
        """Emit one entry if *level* passes the threshold."""
        if level not in LEVELS:
            raise ValueError(f"Unknown log level {level!r}")
        if not self.is_enabled(level):
            return

        now = datetime.now(timezone.utc)
        style = _LEVEL_STYLES[level]
        details = " ".join(f"{k}={_short(v)}" for k, v in meta.items())
        line = f"[dim]{now:%H:%M:%S}[/dim] [{style}]{level.upper():<5}[/{style}] {escape(message)}"
        if details:
            line += f" [dim]{escape(details)}[/dim]"
        self.console.print(line, highlight=False)

        if self.log_file is not None:
            entry = {
                "time": now.isoformat(),
                "level": level,
                "message": message,
                "correlation_id": self.correlation_id,
                "meta": meta or None,
            }
            try:
                self.log_file.parent.mkdir(parents=True, exist_ok=True)
                with self.log_file.open("a", encoding="utf-8") as fh:
                    fh.write(json.dumps(entry, default=str) + "\n")
            except OSError as exc:
                self.console.print(f"[yellow]Could not write log file: {escape(str(exc))}[/yellow]")

    def debug(self, message: str, **meta: Any) -> None:
        self.log("debug", message, **meta)

    def info(self, message: str, **meta: Any) -> None:
        self.log("info", message, **meta)

    def warn(self, message: str, **meta: Any) -> None:
        self.log("warn", message, **meta)

    warning = warn

    def error(self, message: str, **meta: Any) -> None:
        self.log("error", message, **meta)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def time(self, label: str) -> None:
        """Start a named timer."""
        self._timers[label] = time.monotonic()

    def time_end(self, label: str) -> float | None:
        """Stop a named timer, log its duration and return it in ms."""
        start = self._timers.pop(label, None)
        if start is None:
            return None
        duration_ms = (time.monotonic() - start) * 1000.0
        self.info(f"Timer '{label}' ended", duration_ms=round(duration_ms, 1))
        return duration_ms


def _short(value: Any, limit: int = 200) -> str:
    text = value if isinstance(value, str) else repr(value)
    text = text.replace("\n", "\\n")
    return text if len(text) <= limit else text[: limit - 3] + "..."
