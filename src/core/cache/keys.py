# src/core/cache/keys.py
"""
Cache key normalization for listing URLs.

The rule is shared with other consumers of exported snapshots, so it must stay
exactly as written:

  - parse the key as a URL
  - on failure, lower-case the raw string and use it as-is
  - on success, lower-case ``hostname + pathname`` and strip one trailing slash
    (the path is percent-encoded the way a WHATWG URL pathname is)
"""

from __future__ import annotations

from urllib.parse import quote, urlsplit

# Characters URL.pathname leaves as-is; everything else is percent-encoded.
_PATH_SAFE = "/%:@!$&'()*+,;=~"


def normalize_cache_key(url: str) -> str:
    """Return the lookup key for a listing URL (query string and fragment ignored)."""
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError:
        return url.lower()

    # Anything without a scheme and host is not a URL in the WHATWG sense.
    if not parts.scheme or not host:
        return url.lower()

    path = quote(parts.path or "/", safe=_PATH_SAFE)
    key = f"{host}{path}".lower()
    return key[:-1] if key.endswith("/") else key


__all__ = ["normalize_cache_key"]
