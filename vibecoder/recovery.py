"""Error classification and LLM-driven repair.

:class:`ErrorRecovery` turns a raw error message into a targeted repair
prompt, snapshots the file it is about to fix, installs a missing
dependency when the error says one is missing, and asks the active LLM
client for a patched version of the file.

The patch is returned verbatim; validating it is the caller's job (the
orchestrator writes it and re-runs the test).
"""

from __future__ import annotations

import re
import shlex
import time
from pathlib import Path
from typing import Callable, Optional

from vibecoder.config import Settings
from vibecoder.errors import DependencyInstallFailure
from vibecoder.file_store import VIBE_DIR, VersionedFileStore
from vibecoder.llm.base import LLMClient
from vibecoder.log import Logger
from vibecoder.terminal import CommandRunner
from vibecoder.utils import truncate

BACKUP_DIR = f"{VIBE_DIR}/backups"

GENERIC_FIX_MESSAGE = "Fix the following error."

# ---------------------------------------------------------------------------
# Pattern tables (first match wins)
# ---------------------------------------------------------------------------

ERROR_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"ModuleNotFoundError: No module named '([^']+)'"),
        "Install the missing Python module '{0}' and adjust imports.",
    ),
    (re.compile(r"SyntaxError: (.+)"), "Fix the syntax error: {0}"),
    (re.compile(r"Cannot find module '([^']+)'"), "Install or require the Node.js module '{0}'."),
    (
        re.compile(r"TypeError: (.+) is not a function"),
        "Ensure {0} is a callable and imported correctly.",
    ),
    (
        re.compile(r"ReferenceError: (\w+) is not defined"),
        "Define or import the missing variable/function {0}.",
    ),
    (re.compile(r"ImportError: (.+)"), "Fix the import error: {0}"),
    (re.compile(r"AttributeError: (.+)"), "Fix the attribute error: {0}"),
    (re.compile(r"IndentationError: (.+)"), "Fix the indentation: {0}"),
]

# (pattern, install command template) for errors an install can resolve.
DEPENDENCY_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"ModuleNotFoundError: No module named '([^']+)'"), "pip install {0}"),
    (re.compile(r"Cannot find module '([^']+)'"), "npm install {0}"),
]

# Node reports relative requires with the same wording; those are not packages.
_NOT_A_PACKAGE = re.compile(r"^[./\\]")


def classify(
    error_text: str,
    patterns: Optional[list[tuple[re.Pattern[str], str]]] = None,
) -> str | None:
    """Return the repair message of the first matching pattern, if any."""
    for regex, template in patterns if patterns is not None else ERROR_PATTERNS:
        match = regex.search(error_text)
        if match:
            captured = match.group(1) if match.groups() else ""
            return template.format(captured or "")
    return None


def dependency_command(error_text: str) -> str | None:
    """Return the install command for a missing-dependency error, if any."""
    for regex, template in DEPENDENCY_PATTERNS:
        match = regex.search(error_text)
        if match and not _NOT_A_PACKAGE.match(match.group(1)):
            return template.format(shlex.quote(match.group(1)))
    return None


def build_fix_prompt(message: str | None, context: str, error_text: str) -> str:
    """Frame a repair request: message, then file context, then the raw error."""
    header = message or GENERIC_FIX_MESSAGE
    return f"{header}\n\nContext:\n{context}\n\nError:\n{error_text}"


# ---------------------------------------------------------------------------
# ErrorRecovery
# ---------------------------------------------------------------------------


class ErrorRecovery:
    """Obtains patches for failing files from the active LLM client.

    Parameters
    ----------
    llm:
        Client used to request the patch.  May be swapped via :attr:`llm`
        when the provider changes.
    files:
        Versioned file store for the workspace.
    runner:
        Command runner used for dependency installs.
    settings:
        Read for the telemetry flag.
    logger:
        Injected structured logger.
    clock:
        Millisecond clock used to name snapshots.
    """

    def __init__(
        self,
        llm: LLMClient,
        files: VersionedFileStore,
        runner: CommandRunner,
        settings: Settings,
        logger: Logger,
        *,
        patterns: Optional[list[tuple[re.Pattern[str], str]]] = None,
        clock: Callable[[], int] = lambda: int(time.time() * 1000),
    ) -> None:
        self.llm = llm
        self.files = files
        self.runner = runner
        self.settings = settings
        self.logger = logger
        self.patterns = list(patterns) if patterns is not None else list(ERROR_PATTERNS)
        self._clock = clock

    @property
    def workspace(self) -> Path:
        return self.files.root

    # -- Public API ----------------------------------------------------------

    async def analyze_and_fix(self, error_text: str, file_path: str) -> str:
        """Return the LLM's proposed replacement content for *file_path*.

        Raises:
            DependencyInstallFailure: If an automatic install fails.
            ProviderError: If the LLM call fails.
        """
        # 1-3. Snapshot the current content before anything can change it.
        self.files.create_directory(BACKUP_DIR)
        original = self._get_context(file_path)
        self._snapshot(file_path, original)

        # 4. Missing dependency: install first, the retest would fail otherwise.
        install = dependency_command(error_text)
        if install:
            await self._install_dependency(install)

        # 5-6. Ask for a patch.
        prompt = build_fix_prompt(classify(error_text, self.patterns), original, error_text)
        self.logger.info("ErrorRecoveryPrompt", file=file_path, prompt=truncate(prompt, 300))
        fixed = await self.llm.generate_code(prompt)
        self.logger.info("ErrorRecoveryResult", file=file_path, chars=len(fixed))

        if self.settings.telemetry_enabled:
            self.logger.info(
                "TelemetryEvent",
                event="ErrorRecovery",
                file=file_path,
                error=truncate(error_text, 200),
            )
        return fixed

    # -- Internal ------------------------------------------------------------

    def _get_context(self, file_path: str) -> str:
        try:
            return self.files.read_file(file_path)
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.warn("ContextReadFailed", file=file_path, error=str(exc))
            return ""

    def _snapshot(self, file_path: str, content: str) -> None:
        backup_name = f"{Path(file_path).name}.backup.{self._clock()}"
        try:
            self.files.write_file(f"{BACKUP_DIR}/{backup_name}", content)
            self.logger.info("BackupCreated", file=file_path, backup=backup_name)
        except OSError as exc:
            self.logger.warn("BackupFailed", file=file_path, error=str(exc))

    async def _install_dependency(self, command: str) -> None:
        result = await self.runner.run_command(command, self.workspace)
        if not result.success:
            self.logger.error("DependencyInstallFailed", command=command, output=truncate(result.output, 300))
            raise DependencyInstallFailure(command, result.output)
        self.logger.info("DependencyInstalled", command=command)
        if self.settings.telemetry_enabled:
            self.logger.info("TelemetryEvent", event="DependencyInstalled", command=command)
