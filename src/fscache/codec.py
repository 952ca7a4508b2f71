"""Body compression and metadata serialisation for cache entries.

Bodies are stored gzip-compressed; metadata is a compact JSON document
(see :class:`~fscache.models.EntryMetadata`). Both decoders raise
:class:`~fscache.exceptions.CodecError` on malformed or truncated input,
which the store treats exactly like a missing entry.
"""

from __future__ import annotations

import gzip
import zlib

from pydantic import ValidationError

from fscache.exceptions import CodecError
from fscache.models import EntryMetadata


def encode_body(body: bytes) -> bytes:
    """Compress *body* with gzip."""
    return gzip.compress(body)


def decode_body(data: bytes) -> bytes:
    """Decompress a gzip body.

    Raises:
        CodecError: If *data* is not a complete gzip stream.
    """
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise CodecError(f"Invalid compressed body: {exc}") from exc


def encode_metadata(metadata: EntryMetadata) -> bytes:
    """Serialise *metadata* as compact UTF-8 JSON using the on-disk field names."""
    return metadata.model_dump_json(by_alias=True).encode("utf-8")


def decode_metadata(data: bytes) -> EntryMetadata:
    """Parse a ``.meta`` file.

    Raises:
        CodecError: If *data* is not valid JSON or lacks a status code.
    """
    try:
        return EntryMetadata.model_validate_json(data)
    except ValidationError as exc:
        raise CodecError(f"Invalid metadata: {exc}") from exc
