"""Canonical request fingerprints.

A fingerprint identifies a logically unique request. It is the path, the
query serialized as JSON with sorted keys and every value stringified, and a
flag recording whether the request carries a body::

    >>> make_fingerprint("rec", {"rt": 1, "doc": "a"})
    'rec|{"doc":"a","rt":"1"}|post=False'

Query ordering never changes the result; any change to path, key, value, or
body flag does.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Optional


def _stringify(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return str(value)


def make_fingerprint(
    path: str,
    query: Optional[Mapping[str, Any]] = None,
    has_body: bool = False,
) -> str:
    """Return the canonical fingerprint for a request.

    Args:
        path: API path relative to ``/fdfe/`` (e.g. ``"details"``).
        query: Query parameters. Sequence values (repeated keys) keep their
            order.
        has_body: ``True`` for requests that carry a POST body.
    """
    normalized = {str(key): _stringify(value) for key, value in (query or {}).items()}
    encoded = json.dumps(normalized, sort_keys=True, separators=(",", ":"))
    return f"{path}|{encoded}|post={bool(has_body)}"
