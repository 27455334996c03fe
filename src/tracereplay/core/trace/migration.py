"""Forward migration of trace records between schema versions.

A trace log declares its schema version once, in the ``version`` key of its
first record (the ``context-options`` header). Every record of that log is
then lifted to :data:`CURRENT_VERSION` by applying single-step transforms
``v -> v+1`` in ascending order.

Steps are pure: they return new dicts and never mutate their input. Records
of a kind a step does not touch pass through unchanged, which makes running
the chain on an already-current record a no-op.

Known steps
-----------
- 0 -> 1: structured action errors; derived ``hasSnapshot`` flag.
- 1 -> 2: viewport backfill for main-frame snapshots.
- 2 -> 3: flat resource records restructured into request/response.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Final

from tracereplay.core.errors import UnsupportedVersionError

Record = dict[str, Any]
MigrationStep = Callable[[Record, Mapping[str, Any]], Record]

CURRENT_VERSION: Final[int] = 3
DEFAULT_VIEWPORT: Final[Mapping[str, int]] = {"width": 1280, "height": 720}

#: ``"<Interface>.<method>"`` names of calls that capture before/after DOM
#: snapshots. Version 0 logs did not record ``hasSnapshot``, so it is derived
#: from this set. Treat it as data: do not add or remove entries.
COMMANDS_WITH_TRACING_SNAPSHOTS: Final[frozenset[str]] = frozenset(
    {
        "EventTarget.waitForEventInfo",
        "BrowserContext.waitForEventInfo",
        "Page.waitForEventInfo",
        "WebSocket.waitForEventInfo",
        "ElectronApplication.waitForEventInfo",
        "AndroidDevice.waitForEventInfo",
        "Page.goBack",
        "Page.goForward",
        "Page.reload",
        "Page.setViewportSize",
        "Page.keyboardDown",
        "Page.keyboardUp",
        "Page.keyboardInsertText",
        "Page.keyboardType",
        "Page.keyboardPress",
        "Page.mouseMove",
        "Page.mouseDown",
        "Page.mouseUp",
        "Page.mouseClick",
        "Page.mouseWheel",
        "Page.touchscreenTap",
        "Frame.evalOnSelector",
        "Frame.evalOnSelectorAll",
        "Frame.addScriptTag",
        "Frame.addStyleTag",
        "Frame.check",
        "Frame.click",
        "Frame.dragAndDrop",
        "Frame.dblclick",
        "Frame.dispatchEvent",
        "Frame.evaluateExpression",
        "Frame.evaluateExpressionHandle",
        "Frame.fill",
        "Frame.focus",
        "Frame.getAttribute",
        "Frame.goto",
        "Frame.hover",
        "Frame.innerHTML",
        "Frame.innerText",
        "Frame.inputValue",
        "Frame.isChecked",
        "Frame.isDisabled",
        "Frame.isEnabled",
        "Frame.isHidden",
        "Frame.isVisible",
        "Frame.isEditable",
        "Frame.press",
        "Frame.selectOption",
        "Frame.setContent",
        "Frame.setInputFiles",
        "Frame.tap",
        "Frame.textContent",
        "Frame.type",
        "Frame.uncheck",
        "Frame.waitForTimeout",
        "Frame.waitForFunction",
        "Frame.waitForSelector",
        "Frame.expect",
        "JSHandle.evaluateExpression",
        "ElementHandle.evaluateExpression",
        "JSHandle.evaluateExpressionHandle",
        "ElementHandle.evaluateExpressionHandle",
        "ElementHandle.evalOnSelector",
        "ElementHandle.evalOnSelectorAll",
        "ElementHandle.check",
        "ElementHandle.click",
        "ElementHandle.dblclick",
        "ElementHandle.dispatchEvent",
        "ElementHandle.fill",
        "ElementHandle.hover",
        "ElementHandle.innerHTML",
        "ElementHandle.innerText",
        "ElementHandle.inputValue",
        "ElementHandle.isChecked",
        "ElementHandle.isDisabled",
        "ElementHandle.isEditable",
        "ElementHandle.isEnabled",
        "ElementHandle.isHidden",
        "ElementHandle.isVisible",
        "ElementHandle.press",
        "ElementHandle.scrollIntoViewIfNeeded",
        "ElementHandle.selectOption",
        "ElementHandle.selectText",
        "ElementHandle.setInputFiles",
        "ElementHandle.tap",
        "ElementHandle.textContent",
        "ElementHandle.type",
        "ElementHandle.uncheck",
        "ElementHandle.waitForElementState",
        "ElementHandle.waitForSelector",
    }
)


def check_version(version: Any) -> int | None:
    """Validate a declared schema version.

    Returns ``None`` for an absent version (treated as current) and the
    version itself otherwise.

    Raises
    ------
    UnsupportedVersionError
        If the version is not an integer in ``[0, CURRENT_VERSION]``.
    """
    if version is None:
        return None
    if not isinstance(version, int) or isinstance(version, bool):
        raise UnsupportedVersionError(version, CURRENT_VERSION)
    if version < 0 or version > CURRENT_VERSION:
        raise UnsupportedVersionError(version, CURRENT_VERSION)
    return version


# ----- Single-step transforms -------------------------------------------------


def _v0_to_v1(record: Record, context_options: Mapping[str, Any]) -> Record:
    if record.get("type") != "action" or not isinstance(record.get("metadata"), dict):
        return record
    out = dict(record)
    metadata = dict(record["metadata"])
    if isinstance(metadata.get("error"), str):
        metadata["error"] = {"error": {"name": "Error", "message": metadata["error"]}}
    if not isinstance(out.get("hasSnapshot"), bool):
        command = f"{metadata.get('type')}.{metadata.get('method')}"
        out["hasSnapshot"] = command in COMMANDS_WITH_TRACING_SNAPSHOTS
    out["metadata"] = metadata
    return out


def _v1_to_v2(record: Record, context_options: Mapping[str, Any]) -> Record:
    snapshot = record.get("snapshot")
    if record.get("type") != "frame-snapshot" or not isinstance(snapshot, dict):
        return record
    if not snapshot.get("isMainFrame") or snapshot.get("viewport"):
        return record
    viewport = context_options.get("viewport") or DEFAULT_VIEWPORT
    return {**record, "snapshot": {**snapshot, "viewport": dict(viewport)}}


def _v2_to_v3(record: Record, context_options: Mapping[str, Any]) -> Record:
    legacy = record.get("snapshot")
    if record.get("type") != "resource-snapshot" or not isinstance(legacy, dict):
        return record
    if "request" in legacy:
        return record
    request: Record = {
        "url": legacy.get("url"),
        "method": legacy.get("method"),
        "headers": legacy.get("requestHeaders") or [],
    }
    if legacy.get("requestSha1"):
        request["postData"] = {"_sha1": legacy["requestSha1"]}
    return {
        **record,
        "snapshot": {
            "_frameref": legacy.get("frameId"),
            "request": request,
            "response": {
                "status": legacy.get("status"),
                "headers": legacy.get("responseHeaders") or [],
                "content": {
                    "mimeType": legacy.get("contentType"),
                    "_sha1": legacy.get("responseSha1"),
                },
            },
            "_monotonicTime": legacy.get("timestamp"),
        },
    }


#: ``from_version -> step`` lifting a record from ``from_version`` to the next.
MIGRATIONS: Final[Mapping[int, MigrationStep]] = {
    0: _v0_to_v1,
    1: _v1_to_v2,
    2: _v2_to_v3,
}


def migrate(
    record: Record,
    from_version: int | None,
    *,
    context_options: Mapping[str, Any] | None = None,
) -> Record:
    """Lift ``record`` from ``from_version`` to :data:`CURRENT_VERSION`.

    Parameters
    ----------
    record:
        Decoded event record. Never mutated.
    from_version:
        Schema version declared by the log, or ``None`` for "current".
    context_options:
        Launch options recorded in the trace header; the 1 -> 2 step reads the
        recorded viewport from it.
    """
    version = check_version(from_version)
    if version is None:
        return record
    options = context_options or {}
    for step_from in range(version, CURRENT_VERSION):
        record = MIGRATIONS[step_from](record, options)
    return record


class VersionMigrator:
    """Migration bound to one trace log.

    The log's version is fixed at construction; launch options are read
    lazily through ``options_provider`` because the header that carries them
    is itself the first record being migrated.
    """

    def __init__(
        self,
        from_version: int | None,
        options_provider: Callable[[], Mapping[str, Any]] | None = None,
    ) -> None:
        self.from_version = check_version(from_version)
        self._options_provider = options_provider

    @property
    def is_noop(self) -> bool:
        """Return True if records of this log are already current."""
        return self.from_version is None or self.from_version == CURRENT_VERSION

    def __call__(self, record: Record) -> Record:
        if self.is_noop:
            return record
        options = self._options_provider() if self._options_provider else {}
        return migrate(record, self.from_version, context_options=options)


__all__ = [
    "COMMANDS_WITH_TRACING_SNAPSHOTS",
    "CURRENT_VERSION",
    "DEFAULT_VIEWPORT",
    "MIGRATIONS",
    "VersionMigrator",
    "check_version",
    "migrate",
]
