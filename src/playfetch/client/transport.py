"""Raw authenticated calls against the ``/fdfe`` API.

:class:`Transport` adds the session token and the fixed device headers to
each call, picks GET or POST from the presence of a body, and checks the
response status and content type. The body is returned untouched for
:class:`~playfetch.wire.codec.WireCodec` to decode.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

import httpx

from playfetch.exceptions import ContractViolation, RequestError
from playfetch.models import DeviceProfile

logger = logging.getLogger(__name__)

API_CONTENT_TYPE = "application/x-gzip"
DEFAULT_POST_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"


class Transport:
    """Executes API calls and returns raw response bodies.

    Args:
        http_client: Client used for every call.
        base_url: Scheme and host; calls go to ``<base_url>/fdfe/<path>``.
        device_id: Value of the ``X-DFE-Device-Id`` header.
        device: Fixed device metadata for the remaining headers.

    The session token is set once via :attr:`token` after login.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        device_id: str,
        device: DeviceProfile,
    ) -> None:
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._device_id = device_id
        self._device = device
        self.token: Optional[str] = None

    def url_for(self, path: str) -> str:
        """Return the absolute URL for an API *path*."""
        return f"{self._base_url}/fdfe/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        device = self._device
        return {
            "Accept-Language": device.accept_language,
            "Authorization": f"GoogleLogin auth={self.token}",
            "X-DFE-Enabled-Experiments": ",".join(device.enabled_experiments),
            "X-DFE-Unsupported-Experiments": ",".join(device.unsupported_experiments),
            "X-DFE-Device-Id": self._device_id,
            "X-DFE-Client-Id": device.client_id,
            "User-Agent": device.user_agent,
            "X-DFE-SmallestScreenWidthDp": device.smallest_screen_width_dp,
            "X-DFE-Filter-Level": device.filter_level,
        }

    async def execute(
        self,
        path: str,
        query: Optional[Mapping[str, Any]] = None,
        body: Optional[str | bytes] = None,
        content_type: Optional[str] = None,
    ) -> bytes:
        """Perform one API call and return the raw response body.

        Args:
            path: API path relative to ``/fdfe/``.
            query: Query parameters.
            body: POST body. When ``None`` or empty a GET is issued.
            content_type: POST content type; defaults to form encoding.

        Raises:
            ContractViolation: If no token is set or the response is not
                ``application/x-gzip``.
            RequestError: On a non-200 status or a network failure.
        """
        if not self.token:
            raise ContractViolation("Session token required; call login() first")

        headers = self._headers()
        url = self.url_for(path)
        params = dict(query or {})
        try:
            if body:
                headers["Content-Type"] = content_type or DEFAULT_POST_CONTENT_TYPE
                logger.debug("POST %s params=%s", url, params)
                response = await self._client.post(
                    url, params=params, headers=headers, content=body
                )
            else:
                logger.debug("GET %s params=%s", url, params)
                response = await self._client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise RequestError("", message=f"Request to {url} failed: {exc}") from exc

        if response.status_code != 200:
            raise RequestError(response.text, status_code=response.status_code)

        received = response.headers.get("content-type", "")
        if received.split(";")[0].strip().lower() != API_CONTENT_TYPE:
            raise ContractViolation(
                f"Expected {API_CONTENT_TYPE!r} response from {path}, got {received!r}"
            )
        return response.content
