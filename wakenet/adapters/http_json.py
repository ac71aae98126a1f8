"""
Generic JSON API adapter.

The optional dotted `path` selects the array of items inside the response
(e.g. "data.items"); without it the root array is used, or the root object
as a single item.
"""

from typing import Any

import aiohttp
from pydantic import BaseModel, ConfigDict, field_validator

from ..url_validator import validate_target_url
from .base import CandidateEvent, canonical_json, fetch_json, stable_id


class HttpJsonConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str
    path: str | None = None

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        return validate_target_url(value)


def _first(item: dict, *keys: str) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None and value != "":
            return value
    return None


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def select_items(data: Any, path: str | None) -> list:
    """Resolve the dotted path to a list of items; anything else yields none."""
    if not path:
        if isinstance(data, list):
            return data
        return [data] if isinstance(data, dict) else []

    current = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return []
        current = current.get(part)
    return current if isinstance(current, list) else []


def parse_http_json(data: Any, url: str, path: str | None = None) -> list[CandidateEvent]:
    events = []
    for item in select_items(data, path):
        if not isinstance(item, dict):
            continue
        item_id = _first(item, "id", "guid", "url")
        item_id = str(item_id) if item_id is not None else stable_id("json", canonical_json(item))
        title = _first(item, "title", "name", "subject")
        events.append(CandidateEvent(
            id=item_id,
            source=url,
            title=str(title) if title is not None else item_id,
            link=_optional_str(_first(item, "url", "link")),
            published=_optional_str(_first(item, "published_at", "pubDate")),
            body=_optional_str(_first(item, "body", "content")),
            metadata=item,
        ))
    return events


async def poll(config: HttpJsonConfig, session: aiohttp.ClientSession) -> list[CandidateEvent]:
    data = await fetch_json(session, config.url)
    return parse_http_json(data, config.url, config.path)
