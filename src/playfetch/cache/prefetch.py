"""Seeding the cache from server prefetch hints.

Responses may carry ``preFetch`` entries: a URL plus the response the server
would return for it. :class:`PrefetchIngester` turns each URL into the same
fingerprint a real GET would produce and stores the bundled response, so a
later call for that URL is answered without a round trip.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import parse_qsl, urlsplit

from playfetch.cache.cache import FingerprintCache
from playfetch.cache.fingerprint import make_fingerprint
from playfetch.models import DecodedResponse

logger = logging.getLogger(__name__)

_API_PREFIX = "/fdfe/"


def split_prefetch_url(url: str) -> Optional[tuple[str, dict[str, Any]]]:
    """Split a prefetch URL into an API path and query mapping.

    Relative URLs (``rec?doc=a&c=3``) and absolute ones under ``/fdfe/`` are
    both accepted. Repeated query keys become lists.

    Returns:
        ``(path, query)``, or ``None`` when the URL has no query separator.
    """
    if "?" not in url:
        return None
    parts = urlsplit(url)
    path = parts.path
    if path.startswith(_API_PREFIX):
        path = path[len(_API_PREFIX):]
    path = path.lstrip("/")

    query: dict[str, Any] = {}
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key not in query:
            query[key] = value
        elif isinstance(query[key], list):
            query[key].append(value)
        else:
            query[key] = [query[key], value]
    return path, query


class PrefetchIngester:
    """Seeds a :class:`FingerprintCache` with prefetched responses.

    Args:
        cache: The cache to seed.
        ttl_ms: Default lifetime of seeded entries.
    """

    def __init__(self, cache: FingerprintCache, ttl_ms: Optional[int] = None) -> None:
        self._cache = cache
        self._ttl_ms = cache.ttl_ms if ttl_ms is None else ttl_ms

    def ingest(self, response: DecodedResponse, ttl_ms: Optional[int] = None) -> int:
        """Seed the cache from every prefetch entry in *response*.

        Entries whose URL has no query separator are skipped. Existing cache
        entries are left untouched and keep their own expiry.

        Returns:
            The number of entries inserted.
        """
        ttl = self._ttl_ms if ttl_ms is None else ttl_ms
        seeded = 0
        for entry in response.prefetch:
            split = split_prefetch_url(entry.url)
            if split is None:
                logger.debug("skipping malformed prefetch url: %s", entry.url)
                continue
            path, query = split
            fingerprint = make_fingerprint(path, query, has_body=False)
            if self._cache.seed(fingerprint, entry.response):
                self._cache.expire_after(fingerprint, ttl)
                seeded += 1
        return seeded
