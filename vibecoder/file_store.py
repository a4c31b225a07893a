"""Versioned workspace file store.

Every write through :class:`VersionedFileStore` is recorded in an
append-only change log (``.vibe/changeHistory.json``).  When a write
replaces an existing file, the current content is first copied to
``.vibe/history/<flattened path>_v<version>_<timestamp>``, so version *N*'s
backup always holds the content that was live just before version *N* was
applied.  Reverting re-applies a backup as a new write; history is never
rewritten.
"""

from __future__ import annotations

import json
import shutil
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from vibecoder.errors import ConfigurationError, NotFoundError, VersionNotFoundError
from vibecoder.log import Logger
from vibecoder.models import ChangeRecord
from vibecoder.utils import (
    atomic_write_text,
    ensure_dir,
    flatten_path,
    load_json_list,
    save_json_sync,
    timestamp_slug,
)

VIBE_DIR = ".vibe"
HISTORY_DIR = f"{VIBE_DIR}/history"
HISTORY_FILE = f"{VIBE_DIR}/changeHistory.json"


def _read_text(path: Path) -> str:
    with path.open("r", encoding="utf-8", newline="") as fh:
        return fh.read()


class VersionedFileStore:
    """Reads and writes workspace files with versioned backups.

    Args:
        workspace_root: Existing workspace directory.  All paths handed to
            the store are relative to it.
        logger: Injected structured logger.

    Raises:
        ConfigurationError: If *workspace_root* is not a directory.
    """

    def __init__(self, workspace_root: str | Path, logger: Logger) -> None:
        root = Path(workspace_root)
        if not root.is_dir():
            raise ConfigurationError(f"No workspace folder at {root}")
        self.root = root.resolve()
        self.logger = logger
        self.history_dir = self.root / HISTORY_DIR
        self.history_file = self.root / HISTORY_FILE
        self._history: list[ChangeRecord] = []
        self._initialize()

    # ------------------------------------------------------------------
    # History persistence
    # ------------------------------------------------------------------

    def _initialize(self) -> None:
        ensure_dir(self.history_dir)
        if not self.history_file.exists():
            self._save_history()
            self.logger.info("Initialized new change history")
            return
        try:
            raw = load_json_list(self.history_file)
            self._history = [ChangeRecord.model_validate(item) for item in raw]
            self.logger.info("Loaded existing change history", count=len(self._history))
        except (json.JSONDecodeError, ValidationError, OSError) as exc:
            self.logger.warn("Change history unreadable; starting fresh", error=str(exc))
            self._history = []

    def _save_history(self) -> None:
        save_json_sync([r.model_dump(mode="json") for r in self._history], self.history_file)

    # ------------------------------------------------------------------
    # Path handling
    # ------------------------------------------------------------------

    def _locate(self, path: str | Path) -> tuple[str, Path]:
        """Return ``(history key, absolute path)`` for a workspace path."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()
        if resolved != self.root and not resolved.is_relative_to(self.root):
            raise ConfigurationError(f"Path escapes the workspace: {path}")
        return resolved.relative_to(self.root).as_posix(), resolved

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def write_file(self, path: str | Path, content: str) -> ChangeRecord:
        """Write *content* to *path*, versioning whatever it replaces.

        Returns:
            The :class:`ChangeRecord` appended for this write.
        """
        key, target = self._locate(path)
        version = max((r.version for r in self._history if r.file_path == key), default=0) + 1
        timestamp = datetime.now(timezone.utc).isoformat()

        backup_rel: str | None = None
        action = "created"
        if target.is_file():
            action = "modified"
            backup_name = f"{flatten_path(key)}_v{version}_{timestamp_slug(timestamp)}"
            shutil.copyfile(target, self.history_dir / backup_name)
            backup_rel = f"{HISTORY_DIR}/{backup_name}"
            self.logger.info("Backed up file", path=key, version=version, backup=backup_name)

        record = ChangeRecord(
            file_path=key,
            version=version,
            timestamp=timestamp,
            backup_path=backup_rel,
            action=action,
        )
        self._history.append(record)
        self._save_history()

        try:
            atomic_write_text(target, content)
        except OSError as exc:
            self.logger.error("Failed to write file", path=key, error=str(exc))
            raise
        self.logger.info("Wrote file", path=key, version=version, action=action)
        return record

    def read_file(self, path: str | Path) -> str:
        """Return the content of a workspace file.

        Raises:
            NotFoundError: If the file does not exist.
        """
        key, target = self._locate(path)
        if not target.is_file():
            raise NotFoundError(key)
        return _read_text(target)

    def exists(self, path: str | Path) -> bool:
        return self._locate(path)[1].is_file()

    def create_directory(self, path: str | Path) -> Path:
        """Create a workspace directory; existing directories are left alone."""
        key, target = self._locate(path)
        target.mkdir(parents=True, exist_ok=True)
        self.logger.debug("Created directory", path=key)
        return target

    def get_change_history(self, path: str | Path | None = None) -> list[ChangeRecord]:
        """Return change records oldest-first, optionally for a single file."""
        if path is None:
            return list(self._history)
        key, _ = self._locate(path)
        return [r for r in self._history if r.file_path == key]

    def latest_version(self, path: str | Path) -> int:
        """Return the highest recorded version for *path* (0 if never written)."""
        return max((r.version for r in self.get_change_history(path)), default=0)

    def revert_to_version(self, path: str | Path, version: int) -> ChangeRecord:
        """Restore the content that was live just before *version* was written.

        The restore is itself a normal write and gets a new version number.

        Raises:
            VersionNotFoundError: If there is no record for ``(path, version)``
                or it has no backup (a ``created`` version has no pre-image).
        """
        key, _ = self._locate(path)
        record = next(
            (r for r in self._history if r.file_path == key and r.version == version),
            None,
        )
        if record is None or record.backup_path is None:
            raise VersionNotFoundError(key, version)

        backup = self.root / record.backup_path
        try:
            content = _read_text(backup)
        except FileNotFoundError as exc:
            raise VersionNotFoundError(key, version) from exc

        new_record = self.write_file(key, content)
        self.logger.info(
            "Reverted file", path=key, to_version=version, new_version=new_record.version
        )
        return new_record
