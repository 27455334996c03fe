"""
Trace Model: fold an event log into context, page and snapshot aggregates.

Ingestion is a strictly sequential fold. Each log line is decoded, lifted to
the current schema by :class:`VersionMigrator`, then dispatched by its
``type``:

- ``context-options``  -> browser name and launch options (last write wins)
- ``screencast-frame`` -> the page's screencast frames
- ``action``           -> the page's actions, if it captured a snapshot
- ``event``            -> the page's object registry (``__create__``) or events
- ``resource-snapshot``-> the snapshot store's resource log
- ``frame-snapshot``   -> the snapshot store's per-frame log

Lines that fail to decode are logged and skipped; one corrupt line must not
cost the whole trace. An unsupported schema version aborts the load.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from tracereplay.core.contracts import ContextEntry, FrameSnapshot, PageEntry, ResourceSnapshot
from tracereplay.core.errors import MalformedRecordError, TraceLoadError
from tracereplay.core.settings import get_logger
from tracereplay.core.snapshot.store import SnapshotStore
from tracereplay.core.trace.archive import RESOURCES_PREFIX, TraceArchive, open_archive
from tracereplay.core.trace.migration import CURRENT_VERSION, Record, VersionMigrator

logger = get_logger(__name__)

OBJECT_CREATED_METHOD = "__create__"


def decode_line(line: str | bytes) -> Record:
    """Parse one log line into a record dict.

    Raises
    ------
    MalformedRecordError
        If the line is not UTF-8 JSON or does not decode to an object.
    """
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedRecordError(f"Invalid UTF-8 in trace log: {exc}") from exc
    try:
        record = json.loads(line)
    except json.JSONDecodeError as exc:
        raise MalformedRecordError(f"Invalid JSON in trace log: {exc}", line=line) from exc
    if not isinstance(record, dict):
        raise MalformedRecordError("Trace log record must be a JSON object", line=line)
    return record


def _timed_metadata(record: Record) -> tuple[dict[str, Any], float | None, float | None]:
    """Return an action or event's metadata with its validated time bounds."""
    metadata = record["metadata"]
    if not isinstance(metadata, dict):
        raise TypeError("metadata must be an object")
    bounds = metadata.get("startTime"), metadata.get("endTime")
    for value in bounds:
        if value is not None and (isinstance(value, bool) or not isinstance(value, int | float)):
            raise TypeError(f"time bound must be a number, got {value!r}")
    return metadata, bounds[0], bounds[1]


class TraceModel:
    """
    Aggregates built from one trace archive.

    Attributes
    ----------
    context : ContextEntry
        Context-level aggregate served to the viewer.
    page_entries : dict[str, PageEntry]
        Page aggregates keyed by page id, in first-reference order. The same
        objects are listed in ``context.pages``.
    storage : SnapshotStore
        Frame snapshots and the resource log.
    skipped_lines : int
        Number of malformed lines dropped during ingestion.
    """

    def __init__(self, archive: TraceArchive | None = None) -> None:
        self.context = ContextEntry()
        self.page_entries: dict[str, PageEntry] = {}
        self.storage = SnapshotStore()
        self.skipped_lines = 0
        self._archive = archive
        self._migrator: VersionMigrator | None = None

    # ------------------------------- Loading --------------------------------

    def load(self) -> TraceModel:
        """Ingest the archive's event and network logs, then finalize.

        Raises
        ------
        TraceLoadError
            If the model has no archive or the archive has no ``.trace`` entry.
        UnsupportedVersionError
            If the log declares a schema version we cannot migrate.
        """
        if self._archive is None:
            raise TraceLoadError("TraceModel.load() requires an archive")

        trace_entry: str | None = None
        network_entry: str | None = None
        for name in self._archive.names():
            if name.endswith(".trace"):
                trace_entry = name
            elif name.endswith(".network"):
                network_entry = name
        if trace_entry is None:
            raise TraceLoadError("Archive contains no .trace event log")

        for entry in (trace_entry, network_entry):
            if entry is None:
                continue
            data = self._archive.read_bytes(entry) or b""
            # Lines are decoded one at a time; an undecodable line is skipped.
            for line in data.split(b"\n"):
                self.append_event(line)

        self.finalize()
        logger.info(
            "Loaded trace: %d page(s), %d resource(s), %d skipped line(s)",
            len(self.context.pages),
            len(self.context.resources),
            self.skipped_lines,
        )
        return self

    def resource_for_sha1(self, sha1: str) -> bytes | None:
        """Return the archived blob stored under ``sha1``, if any."""
        if self._archive is None:
            return None
        return self._archive.read_bytes(RESOURCES_PREFIX + sha1)

    @property
    def version(self) -> int | None:
        """Schema version declared by the log (``None`` when undeclared)."""
        return self._migrator.from_version if self._migrator else None

    # ------------------------------- Ingestion ------------------------------

    def append_event(self, line: str | bytes) -> None:
        """Ingest one raw log line; blank and malformed lines are skipped."""
        if not line.strip():
            return
        try:
            record = decode_line(line)
            if self._migrator is None:
                self._migrator = self._migrator_for(record)
            self._dispatch(record)
        except MalformedRecordError as exc:
            self.skipped_lines += 1
            logger.warning("Skipping malformed trace record: %s", exc)

    def _migrator_for(self, header: Record) -> VersionMigrator:
        migrator = VersionMigrator(header.get("version"), lambda: self.context.options)
        if not migrator.is_noop:
            logger.info(
                "Migrating trace records from schema v%s to v%s",
                migrator.from_version,
                CURRENT_VERSION,
            )
        return migrator

    def _dispatch(self, raw: Record) -> None:
        # Every field is checked before any aggregate changes, so a skipped
        # record leaves nothing behind.
        kind = raw.get("type")
        try:
            record = self._migrator(raw) if self._migrator else raw
            if kind == "context-options":
                browser_name = record.get("browserName") or ""
                options = record.get("options") or {}
                if not isinstance(browser_name, str) or not isinstance(options, dict):
                    raise TypeError("browserName must be a string and options an object")
                self.context.browser_name = browser_name
                self.context.options = options
            elif kind == "screencast-frame":
                self._page_entry(record["pageId"]).screencast_frames.append(record)
            elif kind == "action":
                self._append_action(record)
            elif kind == "event":
                self._append_page_event(record)
            elif kind == "resource-snapshot":
                self.storage.add_resource(ResourceSnapshot.model_validate(record["snapshot"]))
            elif kind == "frame-snapshot":
                self.storage.add_frame_snapshot(FrameSnapshot.model_validate(record["snapshot"]))
        except (AttributeError, KeyError, TypeError, ValidationError) as exc:
            raise MalformedRecordError(f"Invalid {kind!r} record: {exc}") from exc

    def _append_action(self, record: Record) -> None:
        metadata, start, end = _timed_metadata(record)
        page_id = metadata.get("pageId")
        if record.get("hasSnapshot") and page_id:
            self._page_entry(page_id).actions.append(record)
        self.context.widen(start, end)

    def _append_page_event(self, record: Record) -> None:
        metadata, start, end = _timed_metadata(record)
        page_id = metadata.get("pageId")
        if page_id:
            if metadata.get("method") == OBJECT_CREATED_METHOD:
                params = metadata["params"]
                guid, initializer = params["guid"], params.get("initializer")
                if not isinstance(guid, str):
                    raise TypeError(f"object guid must be a string, got {guid!r}")
                self._page_entry(page_id).objects[guid] = initializer
            else:
                self._page_entry(page_id).events.append(record)
        self.context.widen(start, end)

    def _page_entry(self, page_id: str) -> PageEntry:
        page = self.page_entries.get(page_id)
        if page is None:
            page = PageEntry(page_id=page_id)
            self.page_entries[page_id] = page
            self.context.pages.append(page)
        return page

    # ------------------------------- Finalize -------------------------------

    def finalize(self) -> None:
        """Sort actions by start time and publish the resource list."""
        for page in self.context.pages:
            # list.sort is stable: equal start times keep log order.
            page.actions.sort(key=lambda action: action["metadata"].get("startTime") or 0)
        self.context.resources = self.storage.resources()


def load_trace(trace_id: str, *, trace_root: Path | None = None) -> TraceModel:
    """Open the archive identified by ``trace_id`` and ingest it."""
    logger.info("Loading trace %s", trace_id)
    return TraceModel(open_archive(trace_id, trace_root=trace_root)).load()


__all__ = ["OBJECT_CREATED_METHOD", "TraceModel", "decode_line", "load_trace"]
