"""
HTML page change detection.

Each poll yields a single candidate whose id is derived from the page's
validators (ETag / Last-Modified) and/or a hash of its content, so an
unchanged page deduplicates against the previous poll.
"""

import hashlib
from typing import Literal, Mapping

import aiohttp
from pydantic import BaseModel, ConfigDict, field_validator

from ..url_validator import validate_target_url
from .base import CandidateEvent, fetch_response

MARKER_CONTEXT_BEFORE = 500
MARKER_CONTEXT_AFTER = 2000


class HtmlChangeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str
    marker: str | None = None
    mode: Literal["etag", "hash", "both"] | None = None

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        return validate_target_url(value)


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def watched_region(body: str, marker: str | None) -> str:
    """The part of the page to hash: around the first marker, or all of it."""
    if not marker:
        return body
    index = body.find(marker)
    if index < 0:
        return body
    start = max(0, index - MARKER_CONTEXT_BEFORE)
    return body[start:index + MARKER_CONTEXT_AFTER]


def detect_change(
    url: str,
    body: str,
    headers: Mapping[str, str],
    marker: str | None = None,
    mode: str | None = None,
) -> CandidateEvent:
    etag = headers.get("ETag") or headers.get("etag") or ""
    last_modified = headers.get("Last-Modified") or headers.get("last-modified") or ""

    material = ""
    if mode != "hash":
        material += etag + last_modified
    if mode != "etag":
        material += _sha256(watched_region(body, marker))

    metadata = {}
    if etag:
        metadata["etag"] = etag
    if last_modified:
        metadata["lastModified"] = last_modified

    return CandidateEvent(
        id=f"html-{_sha256(material or url)}",
        source=url,
        title="Page changed",
        link=url,
        published=last_modified or None,
        metadata=metadata or None,
    )


async def poll(config: HtmlChangeConfig, session: aiohttp.ClientSession) -> list[CandidateEvent]:
    body, headers = await fetch_response(session, config.url)
    return [detect_change(config.url, body, headers, config.marker, config.mode)]
