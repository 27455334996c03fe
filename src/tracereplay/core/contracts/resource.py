"""Network resource contracts (one recorded request/response exchange).

The shapes mirror the nested layout used since schema version 3. Older flat
records are restructured by :mod:`tracereplay.core.trace.migration` before
they are validated here.
"""

from __future__ import annotations

from pydantic import Field

from .wire import WireModel


class Header(WireModel):
    """A single HTTP header as recorded (order and duplicates preserved)."""

    name: str
    value: str


class PostData(WireModel):
    """Pointer to a request body stored in the archive by content hash."""

    sha1: str | None = Field(default=None, alias="_sha1")


class RequestInfo(WireModel):
    url: str
    method: str = "GET"
    headers: list[Header] = Field(default_factory=list)
    post_data: PostData | None = Field(default=None, alias="postData")


class ContentInfo(WireModel):
    """Response body descriptor: MIME type plus the archive content hash."""

    mime_type: str | None = Field(default=None, alias="mimeType")
    sha1: str | None = Field(default=None, alias="_sha1")


class ResponseInfo(WireModel):
    status: int = -1
    headers: list[Header] = Field(default_factory=list)
    content: ContentInfo = Field(default_factory=ContentInfo)


class ResourceSnapshot(WireModel):
    """One network exchange captured during the trace.

    Attributes
    ----------
    frame_ref : str | None
        Id of the frame that issued the request (wire key ``_frameref``).
    request : RequestInfo
        URL, method, headers and optional body hash.
    response : ResponseInfo
        Status, headers and content descriptor.
    monotonic_time : float
        Capture timestamp on the same monotonic clock as snapshots
        (wire key ``_monotonicTime``). The resource log is ordered by it.
    """

    frame_ref: str | None = Field(default=None, alias="_frameref")
    request: RequestInfo
    response: ResponseInfo = Field(default_factory=ResponseInfo)
    monotonic_time: float = Field(default=0.0, alias="_monotonicTime")

    def with_content_sha1(self, sha1: str) -> ResourceSnapshot:
        """Return a copy whose response body points at ``sha1``.

        The receiver is left untouched; the copy shares nothing mutable with it.
        """
        content = self.response.content.model_copy(update={"sha1": sha1})
        response = self.response.model_copy(deep=True, update={"content": content})
        return self.model_copy(deep=True, update={"response": response})


__all__ = [
    "ContentInfo",
    "Header",
    "PostData",
    "RequestInfo",
    "ResourceSnapshot",
    "ResponseInfo",
]
