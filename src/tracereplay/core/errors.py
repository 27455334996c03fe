"""Exception taxonomy shared by the ingester, the snapshot layer and the API.

- `NotFoundError`: unknown trace, frame, snapshot name or resource. The API
  answers these with 404 (or an empty object for viewport lookups).
- `MalformedRecordError`: one log line could not be decoded. The trace model
  skips such lines and keeps ingesting.
- `UnsupportedVersionError`: the log declares a schema version no migration
  chain covers. Fatal for that trace load.
- `TraceLoadError`: the archive itself is unusable (unreadable, no event log).

Out-of-range back-references inside snapshots are not errors at all: the
renderer recovers by emitting nothing for them.
"""

from __future__ import annotations


class TraceReplayError(Exception):
    """Base class for every error raised by this package."""


class NotFoundError(TraceReplayError, LookupError):
    """Raised when a trace, frame, snapshot or resource does not exist."""


class MalformedRecordError(TraceReplayError, ValueError):
    """Raised when a single event log line cannot be decoded."""

    def __init__(self, message: str, *, line: str | None = None) -> None:
        super().__init__(message)
        self.line = line


class UnsupportedVersionError(TraceReplayError, ValueError):
    """Raised when a trace declares a schema version we cannot migrate."""

    def __init__(self, version: object, current: int) -> None:
        super().__init__(
            f"Unsupported trace schema version {version!r}; "
            f"this build understands versions 0..{current}"
        )
        self.version = version
        self.current = current


class TraceLoadError(TraceReplayError, RuntimeError):
    """Raised when a trace archive cannot be opened or has no event log."""


__all__ = [
    "MalformedRecordError",
    "NotFoundError",
    "TraceLoadError",
    "TraceReplayError",
    "UnsupportedVersionError",
]
