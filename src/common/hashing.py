"""Hashing utilities."""

import hashlib


def generate_fallback_guid(feed_url: str, *parts: str | None) -> str:
    """Build a stable GUID for feed entries that do not carry one.

    The feed URL scopes the identifier so two feeds that happen to share an
    untitled, undated entry do not collide.
    """
    key = ":".join([feed_url, *(part or "" for part in parts)])
    return "urn:sha256:" + hashlib.sha256(key.encode()).hexdigest()[:32]
