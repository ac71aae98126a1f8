"""
GitHub adapters: releases, commits and pull requests via the REST API.
"""

from typing import Any, Literal

import aiohttp
from pydantic import BaseModel, ConfigDict, Field

from ..config import config as app_config
from ..exceptions import AdapterError
from .base import CandidateEvent, fetch_json

API_URL = "https://api.github.com"
PER_PAGE = "30"
MAX_PATH_MATCHES = 10
MAX_TITLE_LENGTH = 200


class GitHubReleasesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)


class GitHubCommitsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    branch: str | None = None
    path_prefix: str | None = Field(default=None, alias="pathPrefix")


class GitHubPullRequestsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    state: Literal["open", "closed", "all"] | None = None
    labels: list[str] | None = None
    base: str | None = None


def _headers() -> dict[str, str]:
    headers = {"Accept": "application/vnd.github.v3+json"}
    if app_config.GITHUB_TOKEN:
        headers["Authorization"] = f"Bearer {app_config.GITHUB_TOKEN}"
    return headers


def _expect_list(data: Any, what: str) -> list[dict]:
    if not isinstance(data, list):
        raise AdapterError(f"Unexpected GitHub response for {what}")
    return data


# ─────────────────────────────────────────────────────────────
# Releases
# ─────────────────────────────────────────────────────────────

def parse_releases(data: list[dict], owner: str, repo: str) -> list[CandidateEvent]:
    source = f"{owner}/{repo}"
    return [
        CandidateEvent(
            id=f"github-{release['id']}",
            source=source,
            title=release.get("name") or release.get("tag_name") or "",
            link=release.get("html_url"),
            published=release.get("published_at"),
            body=release.get("body") or None,
            metadata={
                "tag": release.get("tag_name"),
                "author": (release.get("author") or {}).get("login"),
            },
        )
        for release in data
    ]


async def poll_releases(
    config: GitHubReleasesConfig,
    session: aiohttp.ClientSession,
) -> list[CandidateEvent]:
    url = f"{API_URL}/repos/{config.owner}/{config.repo}/releases"
    data = _expect_list(await fetch_json(session, url, _headers()), "releases")
    return parse_releases(data, config.owner, config.repo)


# ─────────────────────────────────────────────────────────────
# Commits
# ─────────────────────────────────────────────────────────────

def _commit_event(commit: dict, source: str, path_prefix: str | None = None) -> CandidateEvent:
    message = (commit.get("commit") or {}).get("message") or ""
    author = (commit.get("commit") or {}).get("author") or {}
    metadata = {
        "sha": commit["sha"],
        "author": (commit.get("author") or {}).get("login") or author.get("name"),
    }
    if path_prefix:
        metadata["pathPrefix"] = path_prefix
    return CandidateEvent(
        id=f"commit-{commit['sha']}",
        source=source,
        title=(message or "No message").split("\n")[0][:MAX_TITLE_LENGTH],
        link=commit.get("html_url"),
        published=author.get("date"),
        body=message or None,
        metadata=metadata,
    )


def parse_commits(data: list[dict], owner: str, repo: str) -> list[CandidateEvent]:
    source = f"{owner}/{repo}"
    return [_commit_event(commit, source) for commit in data]


def touches_path(detail: dict, path_prefix: str) -> bool:
    """Check whether a commit detail lists a file under the prefix."""
    return any(
        f.get("filename", "").startswith(path_prefix)
        for f in detail.get("files") or []
    )


async def poll_commits(
    config: GitHubCommitsConfig,
    session: aiohttp.ClientSession,
) -> list[CandidateEvent]:
    """
    List recent commits, optionally only those touching a path prefix.

    With a path prefix each commit's detail is fetched to inspect its
    files; detail fetches that fail are skipped, and the scan stops after
    MAX_PATH_MATCHES matching commits.
    """
    base_url = f"{API_URL}/repos/{config.owner}/{config.repo}/commits"
    params = {"per_page": PER_PAGE}
    if config.branch:
        params["sha"] = config.branch
    data = _expect_list(await fetch_json(session, base_url, _headers(), params), "commits")

    if not config.path_prefix:
        return parse_commits(data, config.owner, config.repo)

    source = f"{config.owner}/{config.repo}"
    matched: list[CandidateEvent] = []
    for commit in data:
        if len(matched) >= MAX_PATH_MATCHES:
            break
        try:
            detail = await fetch_json(session, f"{base_url}/{commit['sha']}", _headers())
        except AdapterError:
            continue
        if isinstance(detail, dict) and touches_path(detail, config.path_prefix):
            matched.append(_commit_event(commit, source, config.path_prefix))
    return matched


# ─────────────────────────────────────────────────────────────
# Pull requests
# ─────────────────────────────────────────────────────────────

def parse_pull_requests(
    data: list[dict],
    owner: str,
    repo: str,
    labels: list[str] | None = None,
) -> list[CandidateEvent]:
    source = f"{owner}/{repo}"

    pulls = data
    if labels:
        wanted = {label.lower() for label in labels}
        pulls = [
            pr for pr in data
            if any(label.get("name", "").lower() in wanted for label in pr.get("labels") or [])
        ]

    return [
        CandidateEvent(
            id=f"pr-{pr['number']}",
            source=source,
            title=pr.get("title") or "",
            link=pr.get("html_url"),
            published=pr.get("updated_at") or pr.get("created_at"),
            metadata={
                "prNumber": pr["number"],
                "state": pr.get("state"),
                "author": (pr.get("user") or {}).get("login"),
                "createdAt": pr.get("created_at"),
                "mergedAt": pr.get("merged_at"),
                "base": (pr.get("base") or {}).get("ref"),
            },
        )
        for pr in pulls
    ]


async def poll_pull_requests(
    config: GitHubPullRequestsConfig,
    session: aiohttp.ClientSession,
) -> list[CandidateEvent]:
    url = f"{API_URL}/repos/{config.owner}/{config.repo}/pulls"
    params = {"per_page": PER_PAGE}
    if config.state:
        params["state"] = config.state
    if config.base:
        params["base"] = config.base
    data = _expect_list(await fetch_json(session, url, _headers(), params), "pull requests")
    return parse_pull_requests(data, config.owner, config.repo, config.labels)
