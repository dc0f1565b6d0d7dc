"""Protobuf schema for the response envelope.

The service describes its responses with a large protobuf schema whose root
is ``ResponseWrapper``. This module carries the subset playfetch reads, built
as a :class:`~google.protobuf.descriptor_pb2.FileDescriptorProto` at import
time with the service's field numbers. Fields outside the subset are kept as
unknown fields by the parser and do not affect decoding.

A full compiled schema (``protoc --include_imports --descriptor_set_out``)
can replace the subset through :func:`load_descriptor_set`.
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Optional

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError as ProtobufDecodeError
from google.protobuf.message import Message

from playfetch.exceptions import ConfigError

_F = descriptor_pb2.FieldDescriptorProto

STRING = _F.TYPE_STRING
BYTES = _F.TYPE_BYTES
INT32 = _F.TYPE_INT32
INT64 = _F.TYPE_INT64
BOOL = _F.TYPE_BOOL

ENVELOPE_FILE_NAME = "playfetch/envelope.proto"
ENVELOPE_MESSAGE = "ResponseWrapper"

# message name -> [(field name, number, type or message name, repeated)]
_MESSAGES: dict[str, list[tuple[str, int, object, bool]]] = {
    "ResponseWrapper": [
        ("payload", 1, "Payload", False),
        ("preFetch", 3, "PreFetch", True),
    ],
    "PreFetch": [
        ("url", 1, STRING, False),
        ("response", 2, BYTES, False),
        ("etag", 3, STRING, False),
        ("ttl", 4, INT64, False),
        ("softTtl", 5, INT64, False),
    ],
    "Payload": [
        ("listResponse", 1, "ListResponse", False),
        ("detailsResponse", 2, "DetailsResponse", False),
        ("buyResponse", 4, "BuyResponse", False),
    ],
    "ListResponse": [
        ("doc", 2, "DocV2", True),
    ],
    "DetailsResponse": [
        ("docV2", 4, "DocV2", False),
        ("footerHtml", 5, STRING, False),
    ],
    "BuyResponse": [
        ("purchaseStatusResponse", 39, "PurchaseStatusResponse", False),
    ],
    "PurchaseStatusResponse": [
        ("status", 1, INT32, False),
        ("statusMsg", 2, STRING, False),
        ("statusTitle", 3, STRING, False),
        ("appDeliveryData", 8, "AndroidAppDeliveryData", False),
    ],
    "AndroidAppDeliveryData": [
        ("downloadSize", 1, INT64, False),
        ("signature", 2, STRING, False),
        ("downloadUrl", 3, STRING, False),
        ("downloadAuthCookie", 5, "HttpCookie", True),
        ("forwardLocked", 6, BOOL, False),
    ],
    "HttpCookie": [
        ("name", 1, STRING, False),
        ("value", 2, STRING, False),
    ],
    "DocV2": [
        ("docid", 1, STRING, False),
        ("backendDocid", 2, STRING, False),
        ("docType", 3, INT32, False),
        ("backendId", 4, INT32, False),
        ("title", 5, STRING, False),
        ("creator", 6, STRING, False),
        ("descriptionHtml", 7, STRING, False),
        ("details", 13, "DocumentDetails", False),
        ("detailsUrl", 16, STRING, False),
        ("shareUrl", 17, STRING, False),
    ],
    "DocumentDetails": [
        ("appDetails", 1, "AppDetails", False),
    ],
    "AppDetails": [
        ("developerName", 1, STRING, False),
        ("majorVersionNumber", 2, INT32, False),
        ("versionCode", 3, INT32, False),
        ("versionString", 4, STRING, False),
        ("title", 5, STRING, False),
        ("appCategory", 7, STRING, True),
        ("installationSize", 9, INT64, False),
        ("numDownloads", 13, STRING, False),
        ("packageName", 14, STRING, False),
        ("uploadDate", 16, STRING, False),
    ],
}


def build_envelope_file() -> descriptor_pb2.FileDescriptorProto:
    """Return the built-in envelope schema as a ``FileDescriptorProto``."""
    proto = descriptor_pb2.FileDescriptorProto(name=ENVELOPE_FILE_NAME, syntax="proto2")
    for message_name, fields in _MESSAGES.items():
        message = proto.message_type.add(name=message_name)
        for name, number, kind, repeated in fields:
            field = message.field.add(
                name=name,
                number=number,
                label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
            )
            if isinstance(kind, str):
                field.type = _F.TYPE_MESSAGE
                field.type_name = f".{kind}"
            else:
                field.type = kind
    return proto


def _message_class(pool: descriptor_pool.DescriptorPool, name: str) -> type[Message]:
    try:
        descriptor = pool.FindMessageTypeByName(name)
    except KeyError as exc:
        raise ConfigError(f"Message type '{name}' not found in schema") from exc
    return message_factory.GetMessageClass(descriptor)


@functools.lru_cache(maxsize=None)
def envelope_class() -> type[Message]:
    """Return the message class for the built-in ``ResponseWrapper``."""
    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(build_envelope_file().SerializeToString())
    return _message_class(pool, ENVELOPE_MESSAGE)


def load_descriptor_set(path: str | Path, message_name: Optional[str] = None) -> type[Message]:
    """Load a compiled descriptor set and return the envelope message class.

    Args:
        path: File written by ``protoc --include_imports --descriptor_set_out``.
        message_name: Fully-qualified envelope message name. Defaults to
            ``ResponseWrapper``.

    Raises:
        ConfigError: If the file is missing, is not a descriptor set, or does
            not define *message_name*.
    """
    path = Path(path).expanduser()
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ConfigError(f"Cannot read schema file {path}: {exc}") from exc

    try:
        descriptor_set = descriptor_pb2.FileDescriptorSet.FromString(raw)
    except ProtobufDecodeError as exc:
        raise ConfigError(f"Schema file {path} is not a descriptor set: {exc}") from exc

    pool = descriptor_pool.DescriptorPool()
    try:
        for file_proto in descriptor_set.file:
            pool.AddSerializedFile(file_proto.SerializeToString())
    except TypeError as exc:
        raise ConfigError(f"Schema file {path} is inconsistent: {exc}") from exc
    return _message_class(pool, message_name or ENVELOPE_MESSAGE)
