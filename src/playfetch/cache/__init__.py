"""Request deduplication cache for playfetch.

This package provides :class:`FingerprintCache`, an in-memory map from
request fingerprints to futures of decoded responses, and
:class:`PrefetchIngester`, which seeds that map from the prefetch entries
the server bundles into responses. Fingerprints are built by
:func:`make_fingerprint`.

The cache is owned by :class:`~playfetch.client.engine.RequestEngine` and is
controlled by :attr:`~playfetch.models.ClientConfig.use_cache` and
:attr:`~playfetch.models.ClientConfig.cache_ttl_ms`.
"""

from playfetch.cache.cache import DEFAULT_TTL_MS, FingerprintCache
from playfetch.cache.fingerprint import make_fingerprint
from playfetch.cache.prefetch import PrefetchIngester, split_prefetch_url

__all__ = [
    "DEFAULT_TTL_MS",
    "FingerprintCache",
    "PrefetchIngester",
    "make_fingerprint",
    "split_prefetch_url",
]
