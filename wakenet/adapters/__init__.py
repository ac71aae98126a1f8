"""
Source adapters - one per feed type, dispatched by the feed's type tag.

Each adapter pairs a pydantic config model with an async poll coroutine
that returns CandidateEvent objects. Adapters never touch the store.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import aiohttp
from pydantic import BaseModel, ValidationError

from .base import CandidateEvent, USER_AGENT, canonical_json, stable_id
from ..config import config as app_config
from ..database.models import FeedType
from ..exceptions import AdapterError, ConfigError
from . import github, html_change, http_json, inbox, rss, sitemap

PollFn = Callable[[Any, aiohttp.ClientSession], Awaitable[list[CandidateEvent]]]


@dataclass(frozen=True)
class Adapter:
    config_model: type[BaseModel]
    poll: PollFn | None


ADAPTERS: dict[FeedType, Adapter] = {
    FeedType.RSS: Adapter(rss.RssConfig, rss.poll),
    FeedType.GITHUB_RELEASES: Adapter(github.GitHubReleasesConfig, github.poll_releases),
    FeedType.HTTP_JSON: Adapter(http_json.HttpJsonConfig, http_json.poll),
    FeedType.GITHUB_COMMITS: Adapter(github.GitHubCommitsConfig, github.poll_commits),
    FeedType.GITHUB_PULL_REQUESTS: Adapter(
        github.GitHubPullRequestsConfig, github.poll_pull_requests
    ),
    FeedType.WEBHOOK_INBOX: Adapter(inbox.WebhookInboxConfig, None),
    FeedType.SITEMAP: Adapter(sitemap.SitemapConfig, sitemap.poll),
    FeedType.HTML_CHANGE: Adapter(html_change.HtmlChangeConfig, html_change.poll),
}


def _format_validation_error(e: ValidationError) -> str:
    parts = []
    for error in e.errors():
        location = ".".join(str(loc) for loc in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


def validate_config(feed_type: FeedType, config: dict[str, Any]) -> BaseModel:
    """
    Validate a feed config against its type's model.

    Raises:
        ConfigError: If the config does not match the shape for the type
    """
    adapter = ADAPTERS[feed_type]
    try:
        return adapter.config_model.model_validate(config)
    except ValidationError as e:
        raise ConfigError(f"Invalid {feed_type.value} config: {_format_validation_error(e)}") from e


def dump_config(model: BaseModel) -> dict[str, Any]:
    """Storage form of a validated config (camelCase keys, unset options omitted)."""
    return model.model_dump(by_alias=True, exclude_none=True)


async def poll_feed(
    feed_type: FeedType,
    config: dict[str, Any],
    timeout: float | None = None,
) -> list[CandidateEvent]:
    """
    Fetch candidate events for a feed.

    Raises:
        ConfigError: If the stored config is no longer valid
        AdapterError: On any fetch or parse failure, or for a type without a poller
    """
    adapter = ADAPTERS[feed_type]
    if adapter.poll is None:
        raise AdapterError(f"Feed type {feed_type.value} is not pollable")

    parsed = validate_config(feed_type, config)
    client_timeout = aiohttp.ClientTimeout(total=timeout or app_config.FETCH_TIMEOUT_SECONDS)
    async with aiohttp.ClientSession(timeout=client_timeout) as session:
        return await adapter.poll(parsed, session)


__all__ = [
    "ADAPTERS",
    "Adapter",
    "CandidateEvent",
    "USER_AGENT",
    "canonical_json",
    "dump_config",
    "poll_feed",
    "stable_id",
    "validate_config",
]
