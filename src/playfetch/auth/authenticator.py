"""Credential login against the account auth endpoint.

The endpoint takes a form-encoded POST and answers with ``text/plain``
``KEY=value`` lines. The value of the ``Auth`` key is the session token.
"""

from __future__ import annotations

import logging

import httpx

from playfetch.exceptions import ContractViolation, LoginError
from playfetch.models import DeviceProfile

logger = logging.getLogger(__name__)

LOGIN_CONTENT_TYPE = "text/plain; charset=utf-8"


def parse_login_response(text: str) -> dict[str, str]:
    """Parse ``KEY=value`` lines into a dict with lower-cased keys.

    Blank lines are ignored and values may themselves contain ``=``.

    Example::

        >>> parse_login_response("SID=abc\\nAuth=XYZ\\n")
        {'sid': 'abc', 'auth': 'XYZ'}

    Raises:
        ContractViolation: If a non-blank line has no ``=``.
    """
    result: dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip():
            continue
        key, sep, value = line.partition("=")
        if not sep:
            raise ContractViolation(f"Expected KEY=value line from auth server, got {line!r}")
        result[key.strip().lower()] = value.strip()
    return result


def _normalize_content_type(value: str) -> str:
    return value.replace(" ", "").lower()


class Authenticator:
    """Exchanges credentials for a session token.

    Args:
        http_client: Client used for the login POST.
        auth_url: The auth endpoint.
        device: Device metadata sent with the credentials.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        auth_url: str,
        device: DeviceProfile,
    ) -> None:
        self._client = http_client
        self._auth_url = auth_url
        self._device = device

    def _form(self, username: str, password: str, device_id: str) -> dict[str, str]:
        device = self._device
        return {
            "Email": username,
            "Passwd": password,
            "service": device.service,
            "accountType": device.account_type,
            "has_permission": "1",
            "source": "android",
            "androidId": device_id,
            "app": device.app,
            "device_country": device.device_country,
            "operatorCountry": device.operator_country,
            "lang": device.login_language,
            "sdk_version": device.sdk_version,
        }

    async def login(self, username: str, password: str, device_id: str) -> str:
        """Log in and return the session token.

        A single attempt is made; failures are not retried.

        Raises:
            LoginError: On a non-200 status, a network failure, or a response
                without an ``auth`` value.
            ContractViolation: If the response is not UTF-8 plain text.
        """
        try:
            response = await self._client.post(
                self._auth_url,
                data=self._form(username, password, device_id),
            )
        except httpx.HTTPError as exc:
            raise LoginError("", message=f"Login request failed: {exc}") from exc

        if response.status_code != 200:
            raise LoginError(response.text)

        content_type = response.headers.get("content-type", "")
        if _normalize_content_type(content_type) != _normalize_content_type(LOGIN_CONTENT_TYPE):
            raise ContractViolation(
                f"Expected {LOGIN_CONTENT_TYPE!r} login response, got {content_type!r}"
            )

        fields = parse_login_response(response.text)
        token = fields.get("auth")
        if not token:
            raise LoginError(response.text, message="Expected auth in server response")

        logger.debug("login succeeded for %s", username)
        return token
