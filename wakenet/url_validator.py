"""
Target URL checks for feeds and subscriber webhooks.

The relay fetches every feed URL and POSTs to every webhook URL, so both
are vetted when they are registered. Rejected targets:
- loopback and well-known internal hostnames
- private, link-local (cloud metadata) and carrier-grade NAT addresses
- anything that is not http or https

ALLOW_PRIVATE_URLS relaxes the host checks for local development and for
receivers on the same network; the scheme check always applies.
"""

import ipaddress
import socket
from urllib.parse import urlparse

from .config import config


class SSRFError(ValueError):
    """A feed or webhook URL points somewhere the relay must not reach."""


PRIVATE_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        "0.0.0.0/8",
        "10.0.0.0/8",
        "100.64.0.0/10",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "::1/128",
        "fc00::/7",
        "fe80::/10",
    )
)

INTERNAL_HOSTNAMES = frozenset({
    "localhost",
    "localhost.localdomain",
    "ip6-localhost",
    "ip6-loopback",
    "metadata",
    "metadata.google.internal",
    "kubernetes.default",
    "kubernetes.default.svc",
})

INTERNAL_SUFFIXES = (".local", ".internal", ".localhost")

SCHEMES = ("http", "https")


def is_ip_blocked(ip_str: str) -> bool:
    try:
        address = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    return any(address in network for network in PRIVATE_NETWORKS)


def _check_host(hostname: str):
    if hostname in INTERNAL_HOSTNAMES or hostname.endswith(INTERNAL_SUFFIXES):
        raise SSRFError(f"Host '{hostname}' is internal")
    if is_ip_blocked(hostname):
        raise SSRFError(f"Address {hostname} is in a private range")


def _check_resolved(hostname: str, port: int):
    try:
        infos = socket.getaddrinfo(hostname, port, proto=socket.IPPROTO_TCP)
    except socket.gaierror:
        # Unresolvable hosts fail at request time instead
        return
    for *_, sockaddr in infos:
        if is_ip_blocked(sockaddr[0]):
            raise SSRFError(f"Host '{hostname}' resolves to private address {sockaddr[0]}")


def validate_url(url: str, resolve_dns: bool = True, allow_private: bool = False) -> str:
    """
    Check a URL the server will make a request to.

    Args:
        url: Feed or webhook URL
        resolve_dns: Also check the addresses the hostname resolves to
        allow_private: Only check the scheme and that a hostname is present

    Returns:
        The URL, unchanged

    Raises:
        SSRFError: If the URL is not an allowed target
    """
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise SSRFError(f"Malformed URL: {e}")

    if parsed.scheme.lower() not in SCHEMES:
        raise SSRFError(f"Scheme '{parsed.scheme}' is not supported, use http or https")
    if not parsed.hostname:
        raise SSRFError("URL has no hostname")

    if allow_private:
        return url

    hostname = parsed.hostname.lower()
    _check_host(hostname)
    if resolve_dns:
        _check_resolved(hostname, parsed.port or 80)
    return url


def validate_target_url(url: str) -> str:
    """
    Registration-time check for feed and webhook URLs.

    Usable directly as a pydantic field validator (SSRFError is a ValueError).
    """
    return validate_url(url, resolve_dns=False, allow_private=config.ALLOW_PRIVATE_URLS)
