"""HTTP side of playfetch.

Classes:
    :class:`RequestEngine` -- login, cached API operations, downloads.
    :class:`Transport` -- raw authenticated calls against ``/fdfe``.
    :class:`DownloadSession` -- cookie-authenticated binary downloads.

All three are built on :class:`httpx.AsyncClient`; the engine is the only
one most callers need.

Example::

    from playfetch.client import RequestEngine

    async with RequestEngine(config) as engine:
        await engine.login()
        doc = await engine.package_details("com.example.app")
"""

from playfetch.client.download import DownloadSession
from playfetch.client.engine import RequestEngine
from playfetch.client.transport import Transport

__all__ = ["DownloadSession", "RequestEngine", "Transport"]
