"""Persistent shell session for test, lint, install and git commands.

One ``bash`` process is started lazily and reused for every command of a
run.  Each command is written to the session followed by a ``printf`` of a
unique marker carrying ``$?``; the runner awaits that marker line (with a
timeout) instead of polling the process.  Commands run in a subshell with
stdin from ``/dev/null`` so an ``exit`` or a stray ``read`` cannot take the
session down or swallow the next command.
"""

from __future__ import annotations

import asyncio
import os
import shlex
import shutil
import signal
import time
import uuid
from pathlib import Path

from vibecoder.errors import CommandFailure
from vibecoder.log import Logger
from vibecoder.models import CommandResult
from vibecoder.utils import truncate

_STREAM_LIMIT = 1 << 20


class CommandRunner:
    """Runs shell commands in a single long-lived session.

    Parameters
    ----------
    logger:
        Injected structured logger.
    timeout:
        Default per-command timeout in seconds.
    shell:
        Shell executable.  Defaults to ``bash`` when available, else ``sh``.
    """

    def __init__(self, logger: Logger, *, timeout: float = 600.0, shell: str | None = None) -> None:
        self.logger = logger
        self.timeout = timeout
        self.shell = shell or shutil.which("bash") or "/bin/sh"
        self._process: asyncio.subprocess.Process | None = None
        self._lock = asyncio.Lock()

    # -- Session lifecycle ---------------------------------------------------

    @property
    def session_alive(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def _ensure_session(self) -> asyncio.subprocess.Process:
        if self.session_alive:
            assert self._process is not None
            return self._process

        args = [self.shell]
        if Path(self.shell).name == "bash":
            args += ["--noprofile", "--norc"]
        self._process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            limit=_STREAM_LIMIT,
            start_new_session=True,
        )
        self.logger.debug("Shell session started", shell=self.shell, pid=self._process.pid)
        return self._process

    async def _kill(self) -> None:
        """Kill the session and whatever command it is still running."""
        process, self._process = self._process, None
        if process is None or process.returncode is not None:
            return
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        await process.wait()

    async def close(self) -> None:
        """End the session."""
        process, self._process = self._process, None
        if process is None or process.returncode is not None:
            return
        try:
            assert process.stdin is not None
            process.stdin.write(b"exit\n")
            await process.stdin.drain()
            await asyncio.wait_for(process.wait(), timeout=5)
        except (asyncio.TimeoutError, ConnectionError):
            self._process = process
            await self._kill()

    async def __aenter__(self) -> "CommandRunner":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- Public API ----------------------------------------------------------

    async def run_command(
        self,
        command: str,
        cwd: str | Path,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run *command* in *cwd* and return its exit status and output.

        A timed-out command kills the session (a fresh one is started for
        the next call) and is reported as exit code ``-1``.
        """
        limit = timeout or self.timeout
        marker = f"__VIBE_DONE_{uuid.uuid4().hex}__"
        script = (
            f"{{ cd {shlex.quote(str(cwd))} && ( {command}\n ) < /dev/null; }} 2>&1; "
            f"printf '\\n%s%d\\n' '{marker}' $?\n"
        )

        async with self._lock:
            start = time.monotonic()
            process = await self._ensure_session()
            assert process.stdin is not None
            try:
                process.stdin.write(script.encode("utf-8"))
                await process.stdin.drain()
                exit_code, output = await asyncio.wait_for(
                    self._read_until(process, marker), timeout=limit
                )
            except asyncio.TimeoutError:
                await self._kill()
                exit_code, output = -1, f"Command timed out after {limit}s: {command}"
            except ConnectionError as exc:
                await self._kill()
                exit_code, output = -1, f"Shell session lost: {exc}"
            duration = time.monotonic() - start

        result = CommandResult(
            command=command,
            success=exit_code == 0,
            exit_code=exit_code,
            output=output,
            duration_seconds=duration,
        )
        if result.success:
            self.logger.info("Command executed successfully", command=command)
        else:
            self.logger.warn(
                "Command failed",
                command=command,
                exit_code=exit_code,
                output=truncate(output, 300),
            )
        return result

    async def run_checked(
        self,
        command: str,
        cwd: str | Path,
        timeout: float | None = None,
    ) -> CommandResult:
        """Like :meth:`run_command` but raise :class:`CommandFailure` on non-zero exit."""
        result = await self.run_command(command, cwd, timeout=timeout)
        if not result.success:
            raise CommandFailure(command, result.exit_code, result.output)
        return result

    # -- Internal ------------------------------------------------------------

    async def _read_until(self, process: asyncio.subprocess.Process, marker: str) -> tuple[int, str]:
        """Collect session output up to the marker line; return (exit_code, output)."""
        assert process.stdout is not None
        lines: list[str] = []
        while True:
            raw = await _read_line(process.stdout)
            if not raw:
                # EOF: the session itself exited.
                self._process = None
                return -1, "\n".join(lines).strip()
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            if line.startswith(marker):
                code_text = line[len(marker):].strip()
                exit_code = int(code_text) if code_text.lstrip("-").isdigit() else -1
                return exit_code, "\n".join(lines).strip()
            lines.append(line)


async def _read_line(stream: asyncio.StreamReader) -> bytes:
    """Read one output line; an empty result means EOF.

    A line longer than the stream limit is returned whole, gathered in
    limit-sized pieces, instead of failing the read.
    """
    pieces: list[bytes] = []
    while True:
        try:
            pieces.append(await stream.readuntil(b"\n"))
            break
        except asyncio.IncompleteReadError as exc:
            pieces.append(exc.partial)
            break
        except asyncio.LimitOverrunError as exc:
            pieces.append(await stream.read(max(exc.consumed, 1)))
    return b"".join(pieces)
