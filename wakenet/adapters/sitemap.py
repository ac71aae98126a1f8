"""Sitemap adapter: one candidate per <url> entry, following sitemap indexes."""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Literal
from urllib.parse import urljoin

import aiohttp
from pydantic import BaseModel, ConfigDict, field_validator

from ..exceptions import AdapterError
from ..url_validator import validate_target_url
from .base import CandidateEvent, fetch_text

logger = logging.getLogger(__name__)

MAX_CHILD_SITEMAPS = 50


class SitemapConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str
    mode: Literal["index", "urls"] | None = None
    include: list[str] | None = None
    exclude: list[str] | None = None

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        return validate_target_url(value)


@dataclass
class SitemapEntry:
    loc: str
    lastmod: str | None = None


@dataclass
class SitemapDocument:
    """Parsed sitemap: either page entries or child sitemap locations."""
    entries: list[SitemapEntry]
    children: list[str]


def _local_name(tag: str) -> str:
    # Strip the "{namespace}" prefix ElementTree puts on tags
    return tag.rsplit("}", 1)[-1].lower()


def _child_text(element: ET.Element, name: str) -> str | None:
    for child in element:
        if _local_name(child.tag) == name and child.text and child.text.strip():
            return child.text.strip()
    return None


def parse_sitemap(xml_content: str, base_url: str) -> SitemapDocument:
    """
    Parse a <urlset> or <sitemapindex> document.

    Raises:
        AdapterError: If the XML is invalid
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise AdapterError(f"Invalid sitemap XML from {base_url}: {e}") from e

    entries: list[SitemapEntry] = []
    children: list[str] = []

    if _local_name(root.tag) == "sitemapindex":
        for element in root:
            if _local_name(element.tag) != "sitemap":
                continue
            loc = _child_text(element, "loc")
            if loc:
                children.append(urljoin(base_url, loc))
    else:
        for element in root:
            if _local_name(element.tag) != "url":
                continue
            loc = _child_text(element, "loc")
            if loc:
                entries.append(SitemapEntry(
                    loc=urljoin(base_url, loc),
                    lastmod=_child_text(element, "lastmod"),
                ))

    return SitemapDocument(entries=entries, children=children)


def filter_entries(
    entries: list[SitemapEntry],
    include: list[str] | None = None,
    exclude: list[str] | None = None,
) -> list[SitemapEntry]:
    """Apply substring filters on loc and drop repeated (loc, lastmod) pairs."""
    seen: set[tuple[str, str | None]] = set()
    kept = []
    for entry in entries:
        if include and not any(part in entry.loc for part in include):
            continue
        if exclude and any(part in entry.loc for part in exclude):
            continue
        key = (entry.loc, entry.lastmod)
        if key in seen:
            continue
        seen.add(key)
        kept.append(entry)
    return kept


def entries_to_events(entries: list[SitemapEntry], source: str) -> list[CandidateEvent]:
    return [
        CandidateEvent(
            id=f"sitemap-{e.loc}-{e.lastmod}" if e.lastmod else f"sitemap-{e.loc}",
            source=source,
            title=e.loc,
            link=e.loc,
            published=e.lastmod,
            metadata={"lastmod": e.lastmod} if e.lastmod else None,
        )
        for e in entries
    ]


async def poll(config: SitemapConfig, session: aiohttp.ClientSession) -> list[CandidateEvent]:
    document = parse_sitemap(await fetch_text(session, config.url), config.url)
    entries = list(document.entries)

    if document.children and config.mode != "urls":
        for child_url in document.children[:MAX_CHILD_SITEMAPS]:
            try:
                child = parse_sitemap(await fetch_text(session, child_url), child_url)
            except AdapterError as e:
                logger.warning(f"Skipping child sitemap {child_url}: {e}")
                continue
            entries.extend(child.entries)

    entries = filter_entries(entries, config.include, config.exclude)
    return entries_to_events(entries, config.url)
