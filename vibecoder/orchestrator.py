"""Vibecoder task pipeline.

Drives one automated coding run over an ordered task list:

1. SCAFFOLD -- source/test directories and boilerplate config files.
2. For every task, in order:
   GENERATE the file with the active LLM client, WRITE it through the
   versioned file store, TEST it (repairing it through
   :class:`~vibecoder.recovery.ErrorRecovery` between attempts, three
   attempts in total) and finally LINT it (best effort).
3. DELIVER -- initialise git, commit, and emit a CI workflow.

A task that still fails after its last attempt is reported and skipped;
it does not abort the run.  Environment failures (provider errors, failed
installs, git) abort the run and are re-raised to the caller.
"""

from __future__ import annotations

import json
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence

from vibecoder.file_store import VersionedFileStore
from vibecoder.llm.base import LLMClient
from vibecoder.log import Logger
from vibecoder.models import PerformanceMode, PipelineRun, ProjectConfig, Task
from vibecoder.recovery import ErrorRecovery
from vibecoder.terminal import CommandRunner
from vibecoder.utils import format_duration, truncate

MAX_TEST_ATTEMPTS = 3

ProgressCallback = Callable[[str], None]


class PipelineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Language tables
# ---------------------------------------------------------------------------

PROJECT_CONFIGS: dict[str, ProjectConfig] = {
    "python": ProjectConfig(
        language="python",
        framework="flask",
        test_framework="pytest",
        build_tool="pip",
        source_dir="src",
        test_dir="tests",
        config_files=["requirements.txt", "pyproject.toml"],
    ),
    "javascript": ProjectConfig(
        language="javascript",
        framework="express",
        test_framework="jest",
        build_tool="npm",
        source_dir="src",
        test_dir="tests",
        config_files=["package.json", ".eslintrc.js"],
    ),
    "java": ProjectConfig(
        language="java",
        framework="spring",
        test_framework="junit",
        build_tool="maven",
        source_dir="src/main/java",
        test_dir="src/test/java",
        config_files=["pom.xml"],
    ),
}

QUALITY_COMMANDS: dict[str, str] = {
    "python": "flake8 {file}",
    "javascript": "npx eslint {file}",
}

_CI_STEPS: dict[str, list[str]] = {
    "python": [
        "      - uses: actions/setup-python@v5",
        "        with:",
        "          python-version: '3.12'",
        "      - run: pip install -r requirements.txt",
        "      - run: pytest",
    ],
    "javascript": [
        "      - uses: actions/setup-node@v4",
        "        with:",
        "          node-version: '20'",
        "      - run: npm install",
        "      - run: npm test",
    ],
    "java": [
        "      - uses: actions/setup-java@v4",
        "        with:",
        "          distribution: temurin",
        "          java-version: '21'",
        "      - run: mvn -B test",
    ],
}


def create_project_config(language: str) -> ProjectConfig:
    """Return the scaffold layout for *language* (python when unknown)."""
    return PROJECT_CONFIGS.get(language.strip().lower(), PROJECT_CONFIGS["python"]).model_copy(
        deep=True
    )


def generate_config_content(file_name: str, config: ProjectConfig) -> str:
    """Boilerplate content for a scaffold config file."""
    if file_name.endswith("requirements.txt"):
        return "flask>=3.0\npytest>=8.0\n"
    if file_name.endswith("pyproject.toml"):
        return (
            "[project]\n"
            'name = "vibe-project"\n'
            'version = "0.1.0"\n'
            'requires-python = ">=3.10"\n'
        )
    if file_name == "package.json":
        return json.dumps(
            {"name": "vibe-project", "version": "1.0.0", "scripts": {"test": "jest"}},
            indent=2,
        ) + "\n"
    if file_name == ".eslintrc.js":
        return 'module.exports = { env: { node: true }, extends: ["eslint:recommended"] };\n'
    if file_name == "pom.xml":
        return (
            "<project>\n"
            "  <modelVersion>4.0.0</modelVersion>\n"
            "  <groupId>com.vibe</groupId>\n"
            "  <artifactId>vibe-project</artifactId>\n"
            "  <version>1.0.0</version>\n"
            "</project>\n"
        )
    return ""


def generate_ci_workflow(language: str) -> str:
    """GitHub Actions workflow that installs and tests the project."""
    steps = _CI_STEPS.get(language.strip().lower(), _CI_STEPS["python"])
    lines = [
        "name: CI",
        "on: [push]",
        "jobs:",
        "  build:",
        "    runs-on: ubuntu-latest",
        "    steps:",
        "      - uses: actions/checkout@v4",
        *steps,
    ]
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# AutoCoder
# ---------------------------------------------------------------------------


class AutoCoder:
    """Runs the generate/write/test/repair/lint loop over a task list.

    At most one run is active per instance; a start request while a run is
    in progress is logged and ignored.

    Attributes:
        state: Current :class:`PipelineState`.
        last_run: Summary of the most recent run, if any.
    """

    def __init__(
        self,
        llm: LLMClient,
        runner: CommandRunner,
        recovery: ErrorRecovery,
        files: VersionedFileStore,
        logger: Logger,
        *,
        performance: PerformanceMode | str = PerformanceMode.BALANCED,
        max_attempts: int = MAX_TEST_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.llm = llm
        self.runner = runner
        self.recovery = recovery
        self.files = files
        self.logger = logger
        self.performance = (
            performance if isinstance(performance, PerformanceMode) else PerformanceMode.parse(performance)
        )
        self.max_attempts = max_attempts
        self.state = PipelineState.IDLE
        self.last_run: PipelineRun | None = None
        self._stop_requested = False

    @property
    def workspace(self) -> Path:
        return self.files.root

    @property
    def is_running(self) -> bool:
        return self.state is PipelineState.RUNNING

    def set_client(self, llm: LLMClient) -> None:
        """Swap the LLM client (provider or credentials changed)."""
        self.llm = llm
        self.recovery.llm = llm

    def stop(self) -> None:
        """Stop after the current task.

        Work already in flight is not interrupted and the instance stays
        ``RUNNING`` until the current run unwinds.
        """
        if self.is_running:
            self.logger.info("Stop requested; no further tasks will start")
            self._stop_requested = True

    # -- Public API ----------------------------------------------------------

    async def start_auto_mode(
        self,
        tasks: Sequence[Task],
        *,
        language: str = "python",
        performance: PerformanceMode | str | None = None,
        model: Optional[str] = None,
        log: Optional[ProgressCallback] = None,
    ) -> PipelineRun | None:
        """Execute one pipeline run.

        Returns:
            The run summary, or ``None`` when a run was already in progress.

        Raises:
            Any error that escapes a task (provider failure, failed install,
            git or file-system problems).  The state is reset to idle first.
        """
        emit = self._progress(log)
        if self.is_running:
            emit("Already running a coding vibe -- please wait!")
            self.logger.warn("Start ignored; pipeline already running")
            return None

        self.state = PipelineState.RUNNING
        self._stop_requested = False
        if performance is not None:
            self.performance = (
                performance if isinstance(performance, PerformanceMode) else PerformanceMode.parse(performance)
            )
        run = PipelineRun(tasks_total=len(tasks))
        self.last_run = run
        started = time.monotonic()
        emit("Starting your coding vibe...")

        try:
            if model and self.llm.supports("set_model"):
                self.llm.set_model(model)

            project = create_project_config(language)
            emit("Setting up project structure...")
            self._setup_structure(project, emit)

            for task in tasks:
                if self._stop_requested:
                    emit("Run stopped before all tasks finished.")
                    break

                emit(f"Generating code for {task.file}...")
                code = await self.llm.generate_code(
                    task.prompt, {"temperature": self._temperature()}
                )
                self.files.write_file(task.file, code)

                emit(f"Testing {task.file}...")
                attempts, passed = await self._test_and_fix(task, emit)
                run.attempts[task.file] = attempts
                if passed:
                    run.tasks_passed += 1
                else:
                    run.tasks_failed += 1
                    run.failed_files.append(task.file)

                emit(f"Running quality checks on {task.file}...")
                await self._run_quality_checks(task.file, project.language, emit)

            emit("Initializing Git & CI/CD...")
            await self._setup_git(emit)
            self._generate_cicd(project.language, emit)

            emit(f"Coding vibe complete in {format_duration(time.monotonic() - started)}!")
            self.logger.info(
                "Pipeline finished",
                passed=run.tasks_passed,
                failed=run.tasks_failed,
                total=run.tasks_total,
            )
            return run
        except Exception as exc:
            self.state = PipelineState.FAILED
            self.logger.error("AutoCoder workflow error", error=str(exc), type=type(exc).__name__)
            emit(f"Error: {exc}")
            raise
        finally:
            self.state = PipelineState.IDLE

    async def generate_documentation(self) -> None:
        """Ask the LLM for a README and write it through the file store."""
        docs = await self.llm.generate_code("Generate a README with installation and usage.")
        self.files.write_file("README.md", docs)
        self.logger.info("Documentation generated")

    async def backup_project(self, archive: str = "vibe_backup.tar.gz") -> None:
        """Create a tarball of the workspace.

        Raises:
            CommandFailure: If ``tar`` fails.
        """
        await self.runner.run_checked(f"tar -czf {archive} --exclude={archive} .", self.workspace)
        self.logger.info("Project backup created", archive=archive)

    # -- Internal ------------------------------------------------------------

    def _progress(self, log: Optional[ProgressCallback]) -> ProgressCallback:
        def emit(message: str) -> None:
            self.logger.info(message)
            if log is not None:
                log(message)

        return emit

    def _temperature(self) -> float:
        return 0.5 if self.performance is PerformanceMode.EFFICIENT else 0.7

    def _setup_structure(self, project: ProjectConfig, emit: ProgressCallback) -> None:
        self.files.create_directory(project.source_dir)
        self.files.create_directory(project.test_dir)
        for name in project.config_files:
            if self.files.exists(name):
                continue
            self.files.write_file(name, generate_config_content(name, project))
            emit(f"Created {name}")

    async def _test_and_fix(self, task: Task, emit: ProgressCallback) -> tuple[int, bool]:
        """Test *task*, repairing between attempts.

        Returns:
            ``(attempts used, passed)``.
        """
        for attempt in range(1, self.max_attempts + 1):
            result = await self.runner.run_command(task.test_command, self.workspace)
            if result.success:
                emit(f"Test passed for {task.file} (attempt {attempt}/{self.max_attempts})")
                return attempt, True

            error_text = result.output or (
                f"Command failed: {task.test_command}, Exit code: {result.exit_code}"
            )
            emit(f"Test failed (attempt {attempt}/{self.max_attempts}): {truncate(error_text, 200)}")
            if attempt == self.max_attempts:
                break

            fixed = await self.recovery.analyze_and_fix(error_text, task.file)
            self.files.write_file(task.file, fixed)
            emit(f"Applied fix to {task.file}")

        emit(f"Could not auto-fix {task.file} after {self.max_attempts} attempts.")
        self.logger.warn("Task unrecoverable", file=task.file, attempts=self.max_attempts)
        return self.max_attempts, False

    async def _run_quality_checks(self, file: str, language: str, emit: ProgressCallback) -> None:
        template = QUALITY_COMMANDS.get(language)
        if template is None:
            return
        try:
            result = await self.runner.run_command(template.format(file=file), self.workspace)
        except Exception as exc:  # noqa: BLE001 - lint is best effort
            self.logger.warn("Quality check errored", file=file, error=str(exc))
            return
        if result.success:
            emit(f"Quality check passed: {file}")
        else:
            emit(f"Quality issues in {file}: {truncate(result.output, 200)}")

    async def _setup_git(self, emit: ProgressCallback) -> None:
        for command in ("git init", "git add .", 'git commit -m "Initial Vibe commit"'):
            await self.runner.run_checked(command, self.workspace)
        emit("Initialized Git repository")

    def _generate_cicd(self, language: str, emit: ProgressCallback) -> None:
        self.files.write_file(".github/workflows/ci.yml", generate_ci_workflow(language))
        emit("Created CI/CD workflow")
