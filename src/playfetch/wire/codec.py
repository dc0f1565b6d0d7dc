"""Encoding and decoding of the binary response envelope.

:class:`WireCodec` turns a response body into a
:class:`~playfetch.models.DecodedResponse`. The payload is converted with
:func:`google.protobuf.json_format.MessageToDict`, so callers address fields
by their JSON names (``payload["detailsResponse"]["docV2"]``). Prefetched
sub-responses travel as serialized envelopes inside ``preFetch.response`` and
are decoded recursively.
"""

from __future__ import annotations

import gzip
import zlib
from pathlib import Path
from typing import Optional

from google.protobuf import json_format
from google.protobuf.message import DecodeError as ProtobufDecodeError
from google.protobuf.message import Message

from playfetch.exceptions import DecodeError
from playfetch.models import DecodedResponse, PrefetchEntry
from playfetch.wire import schema

_GZIP_MAGIC = b"\x1f\x8b"


class WireCodec:
    """Codec for ``ResponseWrapper`` envelopes.

    Args:
        message_class: Envelope message class. Defaults to the built-in
            schema from :func:`playfetch.wire.schema.envelope_class`.

    Example::

        codec = WireCodec()
        response = codec.decode(body)
        doc = response.payload["detailsResponse"]["docV2"]
    """

    def __init__(self, message_class: Optional[type[Message]] = None) -> None:
        self._message_class = message_class or schema.envelope_class()

    @classmethod
    def from_descriptor_file(
        cls, path: str | Path, message_name: Optional[str] = None
    ) -> WireCodec:
        """Build a codec from a compiled descriptor set on disk."""
        return cls(schema.load_descriptor_set(path, message_name))

    def decode(self, data: bytes) -> DecodedResponse:
        """Decode a response body.

        Bodies that start with the gzip magic are decompressed first.

        Raises:
            DecodeError: If the bytes are not a valid envelope.
        """
        if data[:2] == _GZIP_MAGIC:
            try:
                data = gzip.decompress(data)
            except (OSError, EOFError, zlib.error) as exc:
                raise DecodeError(f"Malformed gzip envelope: {exc}") from exc

        message = self._message_class()
        try:
            message.ParseFromString(data)
        except ProtobufDecodeError as exc:
            raise DecodeError(f"Malformed response envelope: {exc}") from exc
        return self._to_model(message)

    def encode(self, response: DecodedResponse) -> bytes:
        """Serialize *response* back into envelope bytes.

        Raises:
            DecodeError: If the payload does not fit the schema.
        """
        message = self._message_class()
        try:
            if response.payload:
                json_format.ParseDict(response.payload, message.payload)
        except json_format.ParseError as exc:
            raise DecodeError(f"Payload does not match envelope schema: {exc}") from exc

        for entry in response.prefetch:
            item = message.preFetch.add()
            item.url = entry.url
            item.response = self.encode(entry.response)
            if entry.etag is not None:
                item.etag = entry.etag
            if entry.ttl is not None:
                item.ttl = entry.ttl
            if entry.soft_ttl is not None:
                item.softTtl = entry.soft_ttl
        return message.SerializeToString()

    def _to_model(self, message: Message) -> DecodedResponse:
        payload = {}
        if message.HasField("payload"):
            payload = json_format.MessageToDict(message.payload)

        prefetch = []
        for item in message.preFetch:
            prefetch.append(
                PrefetchEntry(
                    url=item.url,
                    response=self.decode(item.response),
                    etag=item.etag if item.HasField("etag") else None,
                    ttl=item.ttl if item.HasField("ttl") else None,
                    soft_ttl=item.softTtl if item.HasField("softTtl") else None,
                )
            )
        return DecodedResponse(payload=payload, prefetch=prefetch)
