"""Body formats used for content negotiation: JSON and CBOR."""

from __future__ import annotations

import io
import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timezone
from typing import Any, BinaryIO

import cbor2

__all__ = [
    "Format",
    "json_marshal",
    "json_unmarshal",
    "cbor_marshal",
    "cbor_unmarshal",
    "default_formats",
    "JSON_FORMAT",
    "CBOR_FORMAT",
]


@dataclass(frozen=True)
class Format:
    """A pair of functions to write a value to a stream and read one from bytes."""

    marshal: Callable[[BinaryIO, Any], None]
    unmarshal: Callable[[bytes], Any]


def _to_serializable(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"object of type {type(value).__name__} is not serializable")


_HTML_SAFE = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


def json_marshal(stream: BinaryIO, value: Any) -> None:
    """Write ``value`` as compact JSON followed by a newline.

    Characters significant to HTML are escaped. Non-finite floats raise
    ``ValueError``.
    """
    text = json.dumps(
        value,
        ensure_ascii=False,
        separators=(",", ":"),
        allow_nan=False,
        default=_to_serializable,
    )
    stream.write(text.translate(_HTML_SAFE).encode("utf-8") + b"\n")


def json_unmarshal(data: bytes) -> Any:
    """Parse JSON bytes; raises ``ValueError`` on malformed input."""
    return json.loads(data)


def _cbor_default(encoder: cbor2.CBOREncoder, value: Any) -> None:
    encoder.encode(_to_serializable(value))


def cbor_marshal(stream: BinaryIO, value: Any) -> None:
    """Write ``value`` as canonical CBOR.

    Map keys are sorted canonically, floats use their shortest exact form and
    datetimes are written as tagged Unix timestamps.
    """
    cbor2.dump(
        value,
        stream,
        canonical=True,
        datetime_as_timestamp=True,
        timezone=timezone.utc,
        default=_cbor_default,
    )


def cbor_unmarshal(data: bytes) -> Any:
    """Decode a single CBOR item; raises ``ValueError`` on bad or trailing data."""
    buffer = io.BytesIO(data)
    value = cbor2.CBORDecoder(buffer).decode()
    if buffer.tell() != len(data):
        raise ValueError("cbor: extraneous data after the first item")
    return value


JSON_FORMAT = Format(marshal=json_marshal, unmarshal=json_unmarshal)
CBOR_FORMAT = Format(marshal=cbor_marshal, unmarshal=cbor_unmarshal)


def default_formats() -> dict[str, Format]:
    """A fresh mapping of content types and short names to formats."""
    return {
        "application/json": JSON_FORMAT,
        "json": JSON_FORMAT,
        "application/cbor": CBOR_FORMAT,
        "cbor": CBOR_FORMAT,
    }