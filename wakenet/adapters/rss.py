"""
RSS/Atom adapter.

Handles:
- RSS 2.0 and Atom 1.0 formats via feedparser
- Plain-text body snippets extracted from HTML summaries
- Stable IDs: guid, then link, then a hash of durable entry fields
"""

import aiohttp
import feedparser
from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, field_validator

from ..exceptions import AdapterError
from ..url_validator import validate_target_url
from .base import CandidateEvent, fetch_text, stable_id


class RssConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        return validate_target_url(value)


def _text_snippet(html: str | None) -> str | None:
    """Strip markup from an entry summary, keeping plain text."""
    if not html:
        return None
    text = BeautifulSoup(html, "html.parser").get_text(separator=" ", strip=True)
    return text or None


def _entry_body(entry) -> str | None:
    summary = entry.get("summary") or entry.get("description")
    if summary:
        return _text_snippet(summary)
    if entry.get("content"):
        return _text_snippet(entry.content[0].value)
    return None


def parse_rss(content: str, url: str) -> list[CandidateEvent]:
    """
    Parse feed XML into candidate events.

    Raises:
        AdapterError: If the document cannot be parsed as a feed
    """
    parsed = feedparser.parse(content)

    # Check for parse errors
    if parsed.bozo and not parsed.entries:
        raise AdapterError(f"Failed to parse feed {url}: {parsed.bozo_exception}")

    source = parsed.feed.get("title") or parsed.feed.get("link") or url

    events = []
    for entry in parsed.entries:
        link = entry.get("link") or None
        title = entry.get("title", "")
        published = entry.get("published") or entry.get("updated") or None
        entry_id = (
            entry.get("id")
            or link
            or stable_id("rss", link, title, published)
        )
        events.append(CandidateEvent(
            id=entry_id,
            source=source,
            title=title,
            link=link,
            published=published,
            body=_entry_body(entry),
            metadata={
                "creator": entry.get("author"),
                "categories": [tag.get("term") for tag in entry.get("tags", [])],
            },
        ))
    return events


async def poll(config: RssConfig, session: aiohttp.ClientSession) -> list[CandidateEvent]:
    """Fetch and parse an RSS/Atom feed."""
    content = await fetch_text(session, config.url)
    return parse_rss(content, config.url)
