"""Binary envelope codec for playfetch.

Provides :class:`WireCodec`, which decodes the protobuf ``ResponseWrapper``
returned by every API call into a :class:`~playfetch.models.DecodedResponse`.
The envelope schema lives in :mod:`playfetch.wire.schema`.
"""

from playfetch.wire.codec import WireCodec

__all__ = ["WireCodec"]
