"""Shared test fixtures for playfetch.

Provides a client configuration pointing at a fake host, a wire codec, and
an :class:`ApiStub` that plays the auth endpoint and the ``/fdfe`` API
behind an :class:`httpx.MockTransport`. Fixtures are discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Optional

import httpx
import pytest

from playfetch.models import ClientConfig, DecodedResponse, PrefetchEntry
from playfetch.output import reset_output
from playfetch.wire.codec import WireCodec

API_HOST = "https://api.test"
LOGIN_CONTENT_TYPE = "text/plain; charset=utf-8"
ENVELOPE_CONTENT_TYPE = "application/x-gzip"


class ApiStub:
    """Request handler standing in for the auth endpoint and the API.

    Routes are keyed by API path relative to ``/fdfe/``. Every request is
    recorded in :attr:`calls`.
    """

    def __init__(self, codec: WireCodec) -> None:
        self.codec = codec
        self.calls: list[httpx.Request] = []
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.login_status = 200
        self.login_body = "SID=abc\nLSID=def\nAuth=XYZ\n"
        self.downloads: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        download = self.downloads.get(request.url.host)
        if download is not None:
            return download(request)
        if request.url.path == "/auth":
            return httpx.Response(
                self.login_status,
                text=self.login_body,
                headers={"content-type": LOGIN_CONTENT_TYPE},
            )
        if request.url.path.startswith("/fdfe/"):
            handler = self.routes.get(request.url.path[len("/fdfe/"):])
            if handler is not None:
                return handler(request)
        return httpx.Response(404, text="not found")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def respond(self, path: str, response: DecodedResponse) -> None:
        """Serve *response* as an envelope for every call to *path*."""
        body = self.codec.encode(response)
        self.routes[path] = lambda request: httpx.Response(
            200, content=body, headers={"content-type": ENVELOPE_CONTENT_TYPE}
        )

    def serve_download(self, host: str, payload: bytes, status: int = 200) -> None:
        """Answer every request to *host* with *payload* and *status*."""
        self.downloads[host] = lambda request: httpx.Response(status, content=payload)

    def api_calls(self, path: Optional[str] = None) -> list[httpx.Request]:
        """Return recorded API requests, optionally only those for *path*."""
        calls = [c for c in self.calls if c.url.path.startswith("/fdfe/")]
        if path is not None:
            calls = [c for c in calls if c.url.path == f"/fdfe/{path}"]
        return calls


def make_doc(docid: str, title: str = "", version_code: Optional[int] = None) -> dict[str, Any]:
    """Build a ``DocV2`` payload dict."""
    doc: dict[str, Any] = {"docid": docid, "title": title or docid, "creator": "Example Inc."}
    if version_code is not None:
        doc["details"] = {"appDetails": {"packageName": docid, "versionCode": version_code}}
    return doc


def details_response(
    docid: str,
    version_code: Optional[int] = None,
    prefetch: Optional[list[PrefetchEntry]] = None,
) -> DecodedResponse:
    return DecodedResponse(
        payload={"detailsResponse": {"docV2": make_doc(docid, version_code=version_code)}},
        prefetch=prefetch or [],
    )


def list_response(*docids: str) -> DecodedResponse:
    return DecodedResponse(payload={"listResponse": {"doc": [make_doc(d) for d in docids]}})


def purchase_response(url: str, cookies: list[tuple[str, str]]) -> DecodedResponse:
    return DecodedResponse(
        payload={
            "buyResponse": {
                "purchaseStatusResponse": {
                    "status": 1,
                    "appDeliveryData": {
                        "downloadUrl": url,
                        "downloadAuthCookie": [
                            {"name": name, "value": value} for name, value in cookies
                        ],
                    },
                }
            }
        }
    )


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _restore_playfetch_logger() -> None:
    """Undo handlers attached by configure_logging during a test."""
    logger = logging.getLogger("playfetch")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def codec() -> WireCodec:
    """Codec using the built-in envelope schema."""
    return WireCodec()


@pytest.fixture
def client_config() -> ClientConfig:
    """Config with credentials, pointing at the stub host."""
    return ClientConfig(
        username="user@example.com",
        password="hunter2",
        device_id="3a1f0c2b4d5e6f70",
        base_url=API_HOST,
        auth_url=f"{API_HOST}/auth",
        timeout=5,
    )


@pytest.fixture
def api_stub(codec: WireCodec) -> ApiStub:
    """Fresh API stub with a succeeding login."""
    return ApiStub(codec)
