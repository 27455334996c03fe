"""Base class for records read from (and written back to) the trace wire format.

Trace logs are newline-delimited JSON with camelCase keys and a few
underscore-prefixed bookkeeping keys (``_sha1``, ``_frameref``). Every typed
record:

- accepts the wire aliases *and* the Python field names,
- keeps keys it does not model (``extra="allow"``) so nothing recorded is lost
  when the viewer asks for the serialized context,
- serializes back to wire shape via :meth:`WireModel.to_wire`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class WireModel(BaseModel):
    """Envelope shared by all trace record contracts."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_wire(self) -> dict[str, Any]:
        """Return a JSON-safe dict using the recorded key names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = ["WireModel"]
