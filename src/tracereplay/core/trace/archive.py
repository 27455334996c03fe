"""Read-only access to trace archives.

A trace archive is a set of named entries:

- ``<name>.trace``     newline-delimited JSON event log (required),
- ``<name>.network``   newline-delimited JSON resource log (optional),
- ``resources/<sha1>`` content-addressed blobs (bodies, screencast frames).

The rest of the package only sees the :class:`TraceArchive` protocol. Two
implementations ship here: zip files (what the recorder produces) and
unpacked directories (handy for local debugging). :func:`open_archive` maps a
trace identifier (URL or path) to one of them.
"""

from __future__ import annotations

import io
import urllib.error
import urllib.request
import zipfile
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from tracereplay.core.errors import NotFoundError, TraceLoadError
from tracereplay.core.settings import get_logger

logger = get_logger(__name__)

RESOURCES_PREFIX = "resources/"


class TraceArchive(Protocol):
    """Named-entry container holding one recorded trace."""

    def names(self) -> Iterable[str]: ...

    def read_bytes(self, name: str) -> bytes | None: ...


class ZipTraceArchive:
    """Trace archive backed by an in-memory or on-disk zip file."""

    def __init__(self, source: Path | bytes) -> None:
        try:
            if isinstance(source, bytes):
                self._zip = zipfile.ZipFile(io.BytesIO(source))
            else:
                self._zip = zipfile.ZipFile(source)
        except (OSError, zipfile.BadZipFile) as exc:
            raise TraceLoadError(f"Cannot open trace archive: {exc}") from exc
        self._names = tuple(self._zip.namelist())

    def names(self) -> tuple[str, ...]:
        return self._names

    def read_bytes(self, name: str) -> bytes | None:
        if name not in self._names:
            return None
        return self._zip.read(name)

    def close(self) -> None:
        self._zip.close()


class DirectoryTraceArchive:
    """Trace archive laid out as plain files under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def names(self) -> list[str]:
        return sorted(
            path.relative_to(self.root).as_posix()
            for path in self.root.rglob("*")
            if path.is_file()
        )

    def _path(self, name: str) -> Path | None:
        path = (self.root / name).resolve()
        # Entry names come from URLs; never step outside the trace directory.
        if not path.is_relative_to(self.root.resolve()) or not path.is_file():
            return None
        return path

    def read_bytes(self, name: str) -> bytes | None:
        path = self._path(name)
        return None if path is None else path.read_bytes()


def _download(url: str) -> bytes:
    logger.info("Downloading trace from %s", url)
    try:
        with urllib.request.urlopen(url) as response:
            data: bytes = response.read()
            return data
    except urllib.error.HTTPError as exc:
        if exc.code == 404:
            raise NotFoundError(f"Trace not found: {url}") from exc
        raise TraceLoadError(f"Trace download failed with HTTP {exc.code}: {url}") from exc
    except urllib.error.URLError as exc:
        raise TraceLoadError(f"Trace download failed: {exc.reason}") from exc


def open_archive(trace_id: str, *, trace_root: Path | None = None) -> TraceArchive:
    """Open the archive identified by ``trace_id``.

    ``http(s)://`` identifiers are downloaded; anything else is a filesystem
    path, resolved against ``trace_root`` when relative. Directories are read
    as unpacked traces, files as zip archives.

    Raises
    ------
    NotFoundError
        If the path does not exist or the server answers 404.
    TraceLoadError
        If the archive exists but cannot be read.
    """
    if trace_id.startswith(("http://", "https://")):
        return ZipTraceArchive(_download(trace_id))

    path = Path(trace_id).expanduser()
    if not path.is_absolute() and trace_root is not None:
        path = trace_root / path
    if path.is_dir():
        return DirectoryTraceArchive(path)
    if not path.is_file():
        raise NotFoundError(f"Trace not found: {trace_id}")
    return ZipTraceArchive(path)


__all__ = [
    "RESOURCES_PREFIX",
    "DirectoryTraceArchive",
    "TraceArchive",
    "ZipTraceArchive",
    "open_archive",
]
