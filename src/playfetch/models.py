"""Canonical Pydantic models shared across all playfetch modules.

Every other module imports its data shapes from here. The models fall into
two groups:

**Wire models** -- produced by :class:`~playfetch.wire.codec.WireCodec` and
consumed by the engine and cache:
    :class:`DecodedResponse`, :class:`PrefetchEntry`, :class:`HttpCookie`,
    and :class:`DownloadGrant`.

**Session models** -- fixed client identity, engine state, and settings:
    :class:`DeviceProfile`, :class:`SessionState`, and :class:`ClientConfig`.

All models use Pydantic v2.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Session ---


class SessionState(str, enum.Enum):
    """Lifecycle of a :class:`~playfetch.client.engine.RequestEngine`.

    An engine starts ``UNAUTHENTICATED`` and moves to ``AUTHENTICATED`` once
    :meth:`~playfetch.client.engine.RequestEngine.login` succeeds. There is
    no transition back.
    """

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


_UNSUPPORTED_EXPERIMENTS = [
    "nocache:billing.use_charging_poller",
    "market_emails",
    "buyer_currency",
    "prod_baseline",
    "checkin.set_asset_paid_app_field",
    "shekel_test",
    "content_ratings",
    "buyer_currency_in_app",
    "nocache:encrypted_apk",
    "recent_changes",
]


class DeviceProfile(BaseModel):
    """Device and account metadata sent with login and every API call.

    The defaults describe the handset the service expects; they are sent
    verbatim and rarely need changing.
    """

    model_config = ConfigDict(frozen=True)

    service: str = "androidmarket"
    account_type: str = "HOSTED_OR_GOOGLE"
    app: str = "com.android.vending"
    device_country: str = "us"
    operator_country: str = "us"
    login_language: str = "us"
    sdk_version: str = "16"
    accept_language: str = "en_US"
    client_id: str = "am-android-google"
    user_agent: str = (
        "Android-Finsky/4.3.11 "
        "(api=3,versionCode=80230011,sdk=17,device=toro,hardware=tuna,product=mysid)"
    )
    download_user_agent: str = (
        "AndroidDownloadManager/4.2.2 "
        "(Linux; U; Android 4.2.2; Galaxy Nexus Build/JDQ39)"
    )
    enabled_experiments: tuple[str, ...] = ("cl:billing.select_add_instrument_by_default",)
    unsupported_experiments: tuple[str, ...] = tuple(_UNSUPPORTED_EXPERIMENTS)
    smallest_screen_width_dp: str = "320"
    filter_level: str = "3"


# --- Wire ---


class PrefetchEntry(BaseModel):
    """A response the server pushed ahead for a request not yet made.

    ``url`` is relative to the API root (e.g. ``rec?doc=com.example.app``)
    and ``response`` is the decoded answer to it.
    """

    url: str
    response: DecodedResponse
    etag: Optional[str] = None
    ttl: Optional[int] = None
    soft_ttl: Optional[int] = None


class DecodedResponse(BaseModel):
    """A decoded response envelope.

    ``payload`` uses the envelope's JSON field names, so the details of a
    package live at ``payload["detailsResponse"]["docV2"]``. ``prefetch``
    keeps server order.
    """

    payload: dict[str, Any] = Field(default_factory=dict)
    prefetch: list[PrefetchEntry] = Field(default_factory=list)


PrefetchEntry.model_rebuild()


class HttpCookie(BaseModel):
    """A single cookie issued alongside a download URL."""

    name: str
    value: str


class DownloadGrant(BaseModel):
    """URL plus cookies authorising one package download.

    Example::

        DownloadGrant(
            url="https://download.example.com/apk/123",
            cookies=[HttpCookie(name="MarketDA", value="0123")],
        )
    """

    url: str
    cookies: list[HttpCookie] = Field(default_factory=list)


# --- Client configuration ---


class ClientConfig(BaseModel):
    """Effective configuration for one :class:`~playfetch.client.engine.RequestEngine`.

    Built by :func:`~playfetch.config.resolve_config` from CLI overrides,
    environment variables, and the JSON config file. Credentials may be
    absent here; :func:`~playfetch.config.require_credentials` is called
    before login.
    """

    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    device_id: Optional[str] = None
    base_url: str = Field(
        default="https://android.clients.google.com",
        description="Scheme and host of the API; requests go to <base_url>/fdfe/<path>",
    )
    auth_url: str = Field(default="https://android.clients.google.com/auth")
    use_cache: bool = Field(default=True, description="Deduplicate and memoize GET requests")
    cache_ttl_ms: int = Field(default=30000, gt=0, description="Cache entry lifetime in ms")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    verify_ssl: bool = True
    debug: bool = False
    schema_path: Optional[str] = Field(
        default=None, description="Compiled descriptor set replacing the built-in envelope schema"
    )
    envelope_message: str = "ResponseWrapper"
    device: DeviceProfile = Field(default_factory=DeviceProfile)

    def missing_credentials(self) -> list[str]:
        """Return the names of unset credential fields."""
        return [
            name
            for name in ("username", "password", "device_id")
            if not getattr(self, name)
        ]
