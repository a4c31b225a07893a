"""Shared utility functions for Vibecoder.

JSON I/O, atomic writes, file-system helpers, duration formatting and the
Rich output helpers used by the CLI.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json_list(path: str | Path) -> list[Any]:
    """Read a JSON array from *path*.

    A missing file reads as ``[]``; a lone object is wrapped in a list.

    Raises:
        json.JSONDecodeError: If the file is not valid JSON.
    """
    source = Path(path)
    if not source.is_file():
        return []
    with source.open(encoding="utf-8") as fh:
        loaded = json.load(fh)
    return loaded if isinstance(loaded, list) else [loaded]


def atomic_write_text(path: str | Path, content: str) -> None:
    """Replace *path* with *content* in one step.

    The content goes to a temporary file in the same directory which is then
    renamed over the target, so readers see either the old or the new file.
    Parent directories are created automatically.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def save_json_sync(data: dict[str, Any] | list[Any], path: str | Path) -> None:
    """Atomically write *data* as indented UTF-8 JSON."""
    atomic_write_text(path, json.dumps(data, indent=2, ensure_ascii=False, default=str))


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def ensure_dir(path: str | Path) -> Path:
    """Create *path* with its parents when missing and return it resolved."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory.resolve()


def flatten_path(relative_path: str) -> str:
    """Turn a relative path into a single file-name component.

    Examples::

        flatten_path("src/app.py")      -> "src_app.py"
        flatten_path("web/lib/x.js")    -> "web_lib_x.js"
    """
    return re.sub(r"[/\\:]", "_", relative_path)


def timestamp_slug(iso_timestamp: str) -> str:
    """Make an ISO timestamp safe for file names (``:`` and ``.`` become ``-``)."""
    return re.sub(r"[:.+]", "-", iso_timestamp)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Render a duration for progress lines.

    Under a minute keeps one decimal (``"3.7s"``); longer spans drop the
    fraction and name every unit from the largest non-zero one down
    (``"1m 5s"``, ``"1h 0m 1s"``).  Negative input renders as ``"0.0s"``.
    """
    seconds = max(seconds, 0.0)
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"


def truncate(text: str, limit: int = 500) -> str:
    """Clip *text* to *limit* characters, marking the cut."""
    if len(text) <= limit:
        return text
    return text[: limit - 15] + "... [truncated]"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------

_STATUS_STYLES = {"success": "bold green", "error": "bold red", "warning": "bold yellow"}


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Render *data* as a two-column table followed by a blank line."""
    table = Table(title=title, header_style="bold cyan")
    table.add_column("Metric", style="dim", no_wrap=True)
    table.add_column("Value")
    for metric, value in data.items():
        table.add_row(metric, str(value))
    console.print(table)
    console.print()


def _print_status(kind: str, message: str) -> None:
    style = _STATUS_STYLES[kind]
    console.print(f"[{style}]{message}[/{style}]")


def print_success(message: str) -> None:
    _print_status("success", message)


def print_error(message: str) -> None:
    _print_status("error", message)


def print_warning(message: str) -> None:
    _print_status("warning", message)
