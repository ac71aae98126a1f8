"""
Content identity - stable fingerprints for candidate events.
"""

import hashlib

from .adapters.base import CandidateEvent, canonical_json

FINGERPRINT_FIELDS = ("id", "source", "title", "link", "published", "body")


def fingerprint(event: CandidateEvent) -> str:
    """
    Compute the dedup fingerprint of a candidate event.

    SHA-256 over the canonical JSON array [id, source, title, link,
    published, body], with absent fields as empty strings. Field values
    are JSON-quoted, so separators inside a value cannot shift one field's
    text into the next. Metadata is not part of the fingerprint, so
    volatile adapter metadata never turns a known event into a new one.
    """
    parts = [getattr(event, name) or "" for name in FINGERPRINT_FIELDS]
    return hashlib.sha256(canonical_json(parts).encode("utf-8")).hexdigest()
