"""
Shared adapter types and HTTP helpers.

Every adapter returns CandidateEvent objects and raises AdapterError on
any transport failure, timeout or non-2xx response, so a failed poll
never yields a partial batch.
"""

import asyncio
import hashlib
import json
from dataclasses import asdict, dataclass
from typing import Any, Mapping

import aiohttp

from ..exceptions import AdapterError

USER_AGENT = "WakeNet/1.0 (+https://github.com/wakenet)"


@dataclass
class CandidateEvent:
    """A normalized, not yet deduplicated item returned by an adapter."""
    id: str
    source: str
    title: str
    link: str | None = None
    published: str | None = None
    body: str | None = None
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Normalized payload with absent optional fields omitted."""
        return {key: value for key, value in asdict(self).items() if value is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CandidateEvent":
        return cls(
            id=str(data["id"]),
            source=str(data["source"]),
            title=str(data["title"]),
            link=data.get("link"),
            published=data.get("published"),
            body=data.get("body"),
            metadata=data.get("metadata"),
        )


def stable_id(prefix: str, *parts: str | None) -> str:
    """Synthesize an ID from durable content when the source has none."""
    digest = hashlib.sha256("\t".join(p or "" for p in parts).encode("utf-8")).hexdigest()
    return f"{prefix}-{digest[:32]}"


def canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


async def fetch_response(
    session: aiohttp.ClientSession,
    url: str,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
) -> tuple[str, Mapping[str, str]]:
    """
    GET a URL and return (body text, response headers).

    Raises:
        AdapterError: On transport errors, timeouts or a non-2xx status
    """
    request_headers = {"User-Agent": USER_AGENT}
    if headers:
        request_headers.update(headers)
    try:
        async with session.get(url, headers=request_headers, params=params) as resp:
            if resp.status < 200 or resp.status >= 300:
                raise AdapterError(f"HTTP {resp.status} from {url}")
            return await resp.text(), resp.headers
    except asyncio.TimeoutError as e:
        raise AdapterError(f"Timed out fetching {url}") from e
    except aiohttp.ClientError as e:
        raise AdapterError(f"Failed to fetch {url}: {e}") from e


async def fetch_text(
    session: aiohttp.ClientSession,
    url: str,
    headers: dict[str, str] | None = None,
) -> str:
    text, _ = await fetch_response(session, url, headers)
    return text


async def fetch_json(
    session: aiohttp.ClientSession,
    url: str,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
) -> Any:
    text, _ = await fetch_response(session, url, headers, params)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise AdapterError(f"Invalid JSON from {url}: {e}") from e
