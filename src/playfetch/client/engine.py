"""Request engine -- the public face of playfetch.

:class:`RequestEngine` wires the pieces together::

    caller -> RequestEngine -> FingerprintCache.resolve(fingerprint, producer)
                                   |
                         producer: Transport.execute
                                   -> WireCodec.decode
                                   -> PrefetchIngester.ingest

GET-shaped calls go through the cache so that identical concurrent calls
collapse onto one network request and prefetched responses are reused.
POST calls always go to the network and are never memoized.

The engine starts ``UNAUTHENTICATED``; :meth:`RequestEngine.login` moves it
to ``AUTHENTICATED``. Every other operation fails immediately before that.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from pathlib import Path
from typing import Any, Optional

import httpx

from playfetch.auth.authenticator import Authenticator
from playfetch.cache.cache import FingerprintCache
from playfetch.cache.fingerprint import make_fingerprint
from playfetch.cache.prefetch import PrefetchIngester
from playfetch.client.download import DownloadSession
from playfetch.client.transport import Transport
from playfetch.config import require_credentials
from playfetch.exceptions import ContractViolation
from playfetch.models import ClientConfig, DecodedResponse, DownloadGrant, HttpCookie, SessionState
from playfetch.wire.codec import WireCodec

logger = logging.getLogger(__name__)


def _section(data: Any, *keys: str) -> Any:
    """Walk nested dict *keys*, raising ContractViolation at the first gap."""
    current = data
    walked = []
    for key in keys:
        walked.append(key)
        if not isinstance(current, dict) or key not in current:
            raise ContractViolation(f"Expected {'.'.join(walked)} in server response")
        current = current[key]
    return current


class RequestEngine:
    """Authenticated, deduplicating client for the ``/fdfe`` API.

    Must be used as an async context manager, which owns the underlying
    :class:`httpx.AsyncClient`.

    Args:
        config: Effective client configuration.
        transport: Optional httpx transport shared by API calls and
            downloads (tests pass an :class:`httpx.MockTransport`).
        cache: Cache to use instead of one built from ``config``.
        codec: Codec to use instead of one built from ``config``.

    Example::

        async with RequestEngine(config) as engine:
            await engine.login()
            apps = await engine.related_apps("com.example.app")
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cache: Optional[FingerprintCache] = None,
        codec: Optional[WireCodec] = None,
    ) -> None:
        self._config = config
        self._http_transport = transport
        self._cache = cache or FingerprintCache(
            enabled=config.use_cache, ttl_ms=config.cache_ttl_ms
        )
        if codec is None:
            if config.schema_path:
                codec = WireCodec.from_descriptor_file(
                    config.schema_path, config.envelope_message
                )
            else:
                codec = WireCodec()
        self._codec = codec
        self._ingester = PrefetchIngester(self._cache, config.cache_ttl_ms)
        self._downloads = DownloadSession(
            config.device.download_user_agent,
            transport=transport,
            timeout=config.timeout,
            verify=config.verify_ssl,
        )
        self._state = SessionState.UNAUTHENTICATED
        self._client: Optional[httpx.AsyncClient] = None
        self._transport: Optional[Transport] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> RequestEngine:
        self._client = httpx.AsyncClient(
            transport=self._http_transport,
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
        )
        self._transport = Transport(
            self._client,
            self._config.base_url,
            self._config.device_id or "",
            self._config.device,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client and drop all cache entries."""
        self._cache.invalidate_all()
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Session
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def token(self) -> Optional[str]:
        """The session token, once logged in."""
        return self._transport.token if self._transport else None

    @property
    def cache(self) -> FingerprintCache:
        """The engine's fingerprint cache."""
        return self._cache

    async def login(self) -> str:
        """Exchange the configured credentials for a session token.

        Returns:
            The session token.

        Raises:
            ConfigError: If credentials are missing from the config.
            ContractViolation: If already logged in or the engine is not open.
            LoginError: If the auth endpoint rejects the login.
        """
        if self._state is SessionState.AUTHENTICATED:
            raise ContractViolation("Already logged in; re-login is not supported")
        transport = self._require_open()
        require_credentials(self._config)

        authenticator = Authenticator(
            self._client, self._config.auth_url, self._config.device
        )
        token = await authenticator.login(
            self._config.username, self._config.password, self._config.device_id
        )
        transport.token = token
        self._state = SessionState.AUTHENTICATED
        return token

    # ------------------------------------------------------------------ #
    # Generic API call
    # ------------------------------------------------------------------ #

    async def execute(
        self,
        path: str,
        query: Optional[Mapping[str, Any]] = None,
        body: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> DecodedResponse:
        """Call an API path and return the decoded envelope.

        Calls without a body (``None`` or empty) are deduplicated through the
        cache; calls with a non-empty body always reach the network.

        Raises:
            ContractViolation: If not logged in.
            RequestError: If the API call fails.
            DecodeError: If the response cannot be decoded.
        """
        transport = self._require_authenticated()
        query = dict(query or {})

        async def produce() -> DecodedResponse:
            raw = await transport.execute(path, query, body, content_type)
            response = self._codec.decode(raw)
            if self._cache.enabled:
                self._ingester.ingest(response)
            return response

        if body:
            return await produce()

        fingerprint = make_fingerprint(path, query, has_body=False)
        future = self._cache.resolve(fingerprint, produce)
        return await asyncio.shield(future)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def package_details(self, pkg: str) -> dict[str, Any]:
        """Return the details document (``docV2``) for package *pkg*."""
        response = await self.execute("details", {"doc": pkg})
        return _section(response.payload, "detailsResponse", "docV2")

    async def related_apps(self, pkg: str) -> list[dict[str, Any]]:
        """Return apps related to *pkg*, in server order."""
        response = await self.execute("rec", {"doc": pkg, "rt": "1", "c": "3"})
        listing = _section(response.payload, "listResponse")
        return list(listing.get("doc", []))

    async def download_grant(self, pkg: str, version_code: int) -> DownloadGrant:
        """Obtain the URL and cookies for downloading *pkg* at *version_code*.

        Always issues a fresh ``purchase`` POST.
        """
        body = f"ot=1&doc={pkg}&vc={int(version_code)}"
        response = await self.execute("purchase", {}, body)
        delivery = _section(
            response.payload, "buyResponse", "purchaseStatusResponse", "appDeliveryData"
        )
        url = _section(delivery, "downloadUrl")

        cookies = []
        for raw in delivery.get("downloadAuthCookie", []):
            name, value = raw.get("name"), raw.get("value", "")
            if not isinstance(name, str) or not isinstance(value, str):
                raise ContractViolation(f"Malformed download cookie: {raw!r}")
            cookies.append(HttpCookie(name=name, value=value))
        return DownloadGrant(url=url, cookies=cookies)

    async def download(self, pkg: str, version_code: int) -> AsyncIterator[bytes]:
        """Yield the package file for *pkg* at *version_code* in chunks."""
        grant = await self.download_grant(pkg, version_code)
        async for chunk in self._downloads.download(grant):
            yield chunk

    async def latest_version_code(self, pkg: str) -> int:
        """Return the current version code from the package details."""
        doc = await self.package_details(pkg)
        version_code = _section(doc, "details", "appDetails", "versionCode")
        return int(version_code)

    async def download_latest(self, pkg: str) -> AsyncIterator[bytes]:
        """Yield the newest published package file for *pkg* in chunks."""
        version_code = await self.latest_version_code(pkg)
        async for chunk in self.download(pkg, version_code):
            yield chunk

    async def save(self, pkg: str, path: str | Path, version_code: Optional[int] = None) -> int:
        """Download *pkg* to *path*; the latest version when *version_code* is ``None``.

        Returns:
            The number of bytes written.
        """
        if version_code is None:
            version_code = await self.latest_version_code(pkg)
        grant = await self.download_grant(pkg, version_code)
        return await self._downloads.save(grant, path)

    # ------------------------------------------------------------------ #
    # Cache administration
    # ------------------------------------------------------------------ #

    def cached_keys(self) -> list[str]:
        """Return the fingerprints currently cached."""
        return self._cache.keys()

    def invalidate_cache(self) -> None:
        """Remove every cache entry."""
        self._cache.invalidate_all()
        logger.debug("cache keys now: %s", self._cache.keys())

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _require_open(self) -> Transport:
        if self._transport is None or self._client is None:
            raise ContractViolation("Engine not open -- use as async context manager")
        return self._transport

    def _require_authenticated(self) -> Transport:
        transport = self._require_open()
        if self._state is not SessionState.AUTHENTICATED:
            raise ContractViolation("Not logged in; call login() first")
        return transport
