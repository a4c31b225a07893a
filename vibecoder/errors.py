"""Exception taxonomy shared by every Vibecoder component.

Expected, recoverable failures (a single failing test, a lint run, a context
read) are absorbed where they happen.  The classes below are the ones that
travel: they are raised by a component and either handled by its immediate
caller or propagated to the top of the current operation.
"""

from __future__ import annotations


class VibeError(Exception):
    """Base class for all Vibecoder errors."""


class ConfigurationError(VibeError):
    """Raised for environmental problems: no workspace, bad path, bad setting."""


class ProviderError(VibeError):
    """Raised when talking to an LLM provider fails (transport or parse)."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


class ProviderNotImplementedError(ProviderError):
    """Raised by provider variants that are registered but not wired up."""

    def __init__(self, provider: str) -> None:
        super().__init__(provider, "provider is not implemented")


class CommandFailure(VibeError):
    """Raised when a command exits with a non-zero status."""

    def __init__(self, command: str, exit_code: int, output: str = "") -> None:
        self.command = command
        self.exit_code = exit_code
        self.output = output
        super().__init__(f"Command failed (exit {exit_code}): {command}")


class DependencyInstallFailure(VibeError):
    """Raised when an automatic dependency install does not succeed."""

    def __init__(self, command: str, output: str = "") -> None:
        self.command = command
        self.output = output
        super().__init__(f"Dependency install failed: {command}")


class NotFoundError(VibeError, FileNotFoundError):
    """Raised when a workspace file does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File not found: {path}")


class VersionNotFoundError(VibeError):
    """Raised when a (path, version) pair has no restorable history entry."""

    def __init__(self, path: str, version: int) -> None:
        self.path = path
        self.version = version
        super().__init__(f"Version {version} of {path} not found")
