"""Error types raised by PersonaSpec.

Library code raises these; the CLI turns them into a one-line diagnosis plus an
optional hint and a non-zero exit status.
"""

from __future__ import annotations

from pathlib import Path


class PersonaSpecError(RuntimeError):
    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ValidationError(PersonaSpecError, ValueError):
    """Malformed persona or observation input."""


class ArtifactIOError(PersonaSpecError):
    """Filesystem read/write failure for screenshots, artifacts, or reports."""

    def __init__(self, message: str, *, path: Path | str | None = None, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.path = Path(path) if path is not None else None


class InputError(PersonaSpecError):
    """The results artifact is missing required fields or is not JSON."""


class ConfigError(PersonaSpecError):
    """A required credential or setting could not be resolved."""


class NetworkError(PersonaSpecError):
    """The completion endpoint could not be reached."""


class ApiError(PersonaSpecError):
    def __init__(self, message: str, *, status: int | None = None, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.status = status
