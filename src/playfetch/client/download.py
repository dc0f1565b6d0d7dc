"""Authenticated binary downloads from a download grant.

A :class:`~playfetch.models.DownloadGrant` carries a URL and the cookies
the download server expects. :class:`DownloadSession` loads those cookies
into a jar, identifies itself as the platform download manager, and streams
the response body. Downloads are never cached.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import httpx

from playfetch.exceptions import ContractViolation, RequestError
from playfetch.models import DownloadGrant

logger = logging.getLogger(__name__)


def build_cookie_jar(grant: DownloadGrant) -> httpx.Cookies:
    """Return a cookie jar holding the grant's cookies, scoped to its host.

    Raises:
        ContractViolation: If the URL has no host or a cookie has no name.
    """
    host = urlsplit(grant.url).hostname
    if not host:
        raise ContractViolation(f"Download URL has no host: {grant.url!r}")

    jar = httpx.Cookies()
    for cookie in grant.cookies:
        if not cookie.name:
            raise ContractViolation("Expected cookie name string in download grant")
        jar.set(cookie.name, cookie.value, domain=host)
    return jar


class DownloadSession:
    """Streams package downloads.

    Args:
        user_agent: Download-manager user agent sent with every download.
        transport: Optional httpx transport (tests pass a ``MockTransport``).
        timeout: Request timeout in seconds.
        verify: Verify TLS certificates.
        chunk_size: Size of the byte chunks yielded by :meth:`download`.
    """

    def __init__(
        self,
        user_agent: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
        verify: bool = True,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self._user_agent = user_agent
        self._transport = transport
        self._timeout = timeout
        self._verify = verify
        self._chunk_size = chunk_size

    async def download(self, grant: DownloadGrant) -> AsyncIterator[bytes]:
        """Yield the body of ``grant.url`` in chunks.

        Raises:
            ContractViolation: If the grant's cookies are malformed.
            RequestError: On a non-200 status or a network failure.
        """
        jar = build_cookie_jar(grant)
        async with httpx.AsyncClient(
            cookies=jar,
            headers={"User-Agent": self._user_agent},
            transport=self._transport,
            timeout=self._timeout,
            verify=self._verify,
            follow_redirects=True,
        ) as client:
            logger.debug("downloading %s", grant.url)
            try:
                async with client.stream("GET", grant.url) as response:
                    if response.status_code != 200:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        raise RequestError(body, status_code=response.status_code)
                    async for chunk in response.aiter_bytes(self._chunk_size):
                        yield chunk
            except httpx.HTTPError as exc:
                raise RequestError("", message=f"Download of {grant.url} failed: {exc}") from exc

    async def save(self, grant: DownloadGrant, path: str | Path) -> int:
        """Write the download to *path* and return the number of bytes written.

        The body goes to a ``.part`` file beside *path*, which replaces *path*
        only once the whole body has arrived. A failed download leaves any
        existing file untouched.
        """
        path = Path(path)
        partial = path.with_name(path.name + ".part")
        written = 0
        try:
            with open(partial, "wb") as f:
                async for chunk in self.download(grant):
                    f.write(chunk)
                    written += len(chunk)
            os.replace(partial, path)
        finally:
            partial.unlink(missing_ok=True)
        logger.debug("saved %d bytes to %s", written, path)
        return written
