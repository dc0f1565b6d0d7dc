"""In-memory, fingerprint-keyed cache of response futures.

Entries map a request fingerprint (see
:func:`~playfetch.cache.fingerprint.make_fingerprint`) to an
:class:`asyncio.Future` of a :class:`~playfetch.models.DecodedResponse`.
A future is stored the moment a request starts, before it resolves, so
identical requests issued while the first is in flight share its result and
only one network call is made per fingerprint.

Every entry gets an expiry timer when inserted. Entries whose production
fails are dropped as soon as the failure is recorded so that the next call
retries instead of replaying the error.

See Also:
    :class:`~playfetch.cache.prefetch.PrefetchIngester` -- seeds entries
    from server prefetch hints.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

from playfetch.models import DecodedResponse

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 30000

Producer = Callable[[], Awaitable[DecodedResponse]]


class FingerprintCache:
    """Map of fingerprints to in-flight or completed response futures.

    Must be used from a running event loop. Reads and inserts happen without
    an intervening ``await``, so no locking is needed within one loop.

    Args:
        enabled: When ``False`` nothing is ever stored; :meth:`resolve` just
            starts the producer.
        ttl_ms: Lifetime of entries inserted by :meth:`resolve`.

    Example::

        cache = FingerprintCache(ttl_ms=30000)
        future = cache.resolve(fp, lambda: fetch_and_decode())
        response = await future
    """

    def __init__(self, enabled: bool = True, ttl_ms: int = DEFAULT_TTL_MS) -> None:
        self._enabled = enabled
        self._ttl_ms = ttl_ms
        self._entries: dict[str, asyncio.Future[DecodedResponse]] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    @property
    def enabled(self) -> bool:
        """Whether entries are stored at all."""
        return self._enabled

    @property
    def ttl_ms(self) -> int:
        """Lifetime given to entries inserted by :meth:`resolve`."""
        return self._ttl_ms

    def resolve(self, fingerprint: str, producer: Producer) -> asyncio.Future[DecodedResponse]:
        """Return the entry for *fingerprint*, starting *producer* on a miss.

        An existing entry is returned unchanged even while still pending. On
        a miss the producer's coroutine is scheduled as a task, stored, and
        given an expiry timer before this method returns.

        Args:
            fingerprint: Canonical request key.
            producer: Zero-argument callable returning an awaitable of the
                decoded response.

        Returns:
            The shared future for *fingerprint*.
        """
        existing = self._entries.get(fingerprint)
        if existing is not None:
            logger.debug("cache hit: %s", fingerprint)
            return existing

        future = asyncio.ensure_future(producer())
        if not self._enabled:
            return future

        logger.debug("cache miss: %s", fingerprint)
        self._entries[fingerprint] = future
        future.add_done_callback(lambda done: self._drop_if_failed(fingerprint, done))
        self.expire_after(fingerprint, self._ttl_ms)
        return future

    def seed(self, fingerprint: str, response: DecodedResponse) -> bool:
        """Insert an already-resolved entry unless one exists.

        Never overwrites a pending or resolved entry.

        Returns:
            ``True`` if the entry was inserted.
        """
        if not self._enabled or fingerprint in self._entries:
            return False
        future: asyncio.Future[DecodedResponse] = asyncio.get_running_loop().create_future()
        future.set_result(response)
        self._entries[fingerprint] = future
        logger.debug("cache seeded: %s", fingerprint)
        return True

    def expire_after(self, fingerprint: str, ttl_ms: int) -> None:
        """Schedule removal of the current entry for *fingerprint*.

        Replaces any timer already running for the key. The timer removes
        only the entry that existed when it was scheduled. An entry still in
        flight when the timer fires is kept until its result is in, so a
        short TTL never starts a second request for the same fingerprint.
        """
        if not self._enabled:
            return
        future = self._entries.get(fingerprint)
        if future is None:
            return
        previous = self._timers.pop(fingerprint, None)
        if previous is not None:
            previous.cancel()
        loop = asyncio.get_running_loop()
        self._timers[fingerprint] = loop.call_later(
            ttl_ms / 1000.0, self._expire, fingerprint, future
        )

    def invalidate(self, fingerprint: str) -> None:
        """Remove the entry for *fingerprint* if present."""
        self._entries.pop(fingerprint, None)
        timer = self._timers.pop(fingerprint, None)
        if timer is not None:
            timer.cancel()

    def invalidate_all(self) -> None:
        """Remove every entry and cancel every pending expiry timer."""
        logger.debug("invalidating cache, old keys: %s", self.keys())
        for timer in self._timers.values():
            timer.cancel()
        self._timers = {}
        self._entries = {}

    def keys(self) -> list[str]:
        """Return the fingerprints currently cached, in insertion order."""
        return list(self._entries)

    def get(self, fingerprint: str) -> Optional[asyncio.Future[DecodedResponse]]:
        """Return the entry for *fingerprint* without starting anything."""
        return self._entries.get(fingerprint)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _expire(self, fingerprint: str, future: asyncio.Future[DecodedResponse]) -> None:
        if self._entries.get(fingerprint) is not future:
            return
        self._timers.pop(fingerprint, None)
        if not future.done():
            # Still in flight: keep sharing it and expire once it settles,
            # unless a newer timer has been set for the key by then.
            future.add_done_callback(lambda done: self._expire_settled(fingerprint, done))
            return
        logger.debug("invalidating cache key: %s", fingerprint)
        del self._entries[fingerprint]

    def _expire_settled(
        self, fingerprint: str, future: asyncio.Future[DecodedResponse]
    ) -> None:
        if fingerprint not in self._timers:
            self._expire(fingerprint, future)

    def _drop_if_failed(self, fingerprint: str, future: asyncio.Future[DecodedResponse]) -> None:
        if not future.cancelled() and future.exception() is None:
            return
        if self._entries.get(fingerprint) is future:
            logger.debug("dropping failed cache entry: %s", fingerprint)
            self.invalidate(fingerprint)
