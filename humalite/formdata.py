"""Reading and validating files uploaded in multipart form data."""

from __future__ import annotations

import io
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import BinaryIO

from humalite.errors import ErrorDetail

__all__ = [
    "Encoding",
    "FileHeader",
    "FormFile",
    "FormDataError",
    "MimeTypeValidator",
    "detect_content_type",
    "read_single_file",
    "read_multiple_files",
]

_DEFAULT_MIME = "application/octet-stream"
_SNIFF_BUFFER = 1000
_SNIFF_LEN = 512


@dataclass
class Encoding:
    """Encoding of one multipart form field; ``content_type`` may list several."""

    content_type: str = ""


@dataclass
class FileHeader:
    """One file part received in a multipart form."""

    filename: str
    content: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.content)

    def header(self, name: str) -> str:
        """Case-insensitive header lookup; empty string when absent."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return ""

    def open(self) -> BinaryIO:
        return io.BytesIO(self.content)


@dataclass
class FormFile:
    """A received file together with what is known about it."""

    file: BinaryIO | None = None
    content_type: str = ""
    is_set: bool = False
    size: int = 0
    filename: str = ""

    def read(self, size: int = -1) -> bytes:
        if self.file is None:
            return b""
        return self.file.read(size)


class FormDataError(Exception):
    """Raised when one or more files in a form field fail to validate."""

    def __init__(self, errors: Sequence[ErrorDetail]):
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors))


@dataclass
class MimeTypeValidator:
    """Checks uploaded files against a list of accepted media types."""

    accept: list[str] = field(default_factory=lambda: [_DEFAULT_MIME])

    @classmethod
    def from_encoding(cls, encoding: Encoding | None) -> MimeTypeValidator:
        if encoding is None:
            return cls([_DEFAULT_MIME])
        return cls([m.strip(" ") for m in encoding.content_type.split(",")])

    def validate(self, file_header: FileHeader, location: str) -> str:
        """Return the file's media type, raising ``ErrorDetail`` if not accepted.

        Without a Content-Type header the type is sniffed from the content.
        """
        try:
            handle = file_header.open()
        except OSError:
            raise ErrorDetail(message="Failed to open file", location=location) from None

        mime_type = file_header.header("Content-Type")
        if not mime_type:
            with handle:
                chunk = handle.read(_SNIFF_BUFFER)
            if not chunk:
                raise ErrorDetail(message="Failed to infer file media type", location=location)
            # The sniffed buffer is fixed-size and zero-filled past the data read.
            mime_type = detect_content_type(chunk.ljust(_SNIFF_BUFFER, b"\x00"))

        if any(self._accepts(m, mime_type) for m in self.accept):
            return mime_type
        raise ErrorDetail(
            message=f"Invalid mime type: got {mime_type}, expected {','.join(self.accept)}",
            location=location,
            value=mime_type,
        )

    @staticmethod
    def _accepts(accepted: str, mime_type: str) -> bool:
        if accepted in ("text/plain", _DEFAULT_MIME):
            return True
        if accepted.endswith("/*") and mime_type.startswith(accepted.rstrip("*")):
            return True
        return mime_type == accepted


_WHITESPACE = b"\t\n\x0c\r "

_HTML_TAGS = (
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
    b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
    b"<BODY", b"<BR", b"<P", b"<!--",
)

_PREFIX_SIGNATURES = (
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", "text/plain; charset=utf-8"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)

_LATE_SIGNATURES = (
    (b"\x1a\x45\xdf\xa3", "video/webm"),
    (b"\x00\x01\x00\x00", "font/ttf"),
    (b"OTTO", "font/otf"),
    (b"ttcf", "font/collection"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
)


def _is_html(data: bytes) -> bool:
    data = data.lstrip(_WHITESPACE)
    for tag in _HTML_TAGS:
        n = len(tag)
        if len(data) > n and data[:n].upper() == tag and data[n] in b" >":
            return True
    return False


def _chunk_type(data: bytes, outer: bytes, inner: bytes) -> bool:
    return data[:4] == outer and data[8 : 8 + len(inner)] == inner


def _is_mp4(data: bytes) -> bool:
    if len(data) < 12:
        return False
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4 != 0 or data[4:8] != b"ftyp":
        return False
    return any(
        data[start : start + 3] == b"mp4"
        for start in range(8, box_size, 4)
        if start != 12
    )


def _is_binary(byte: int) -> bool:
    return byte <= 0x08 or byte == 0x0B or 0x0E <= byte <= 0x1A or 0x1C <= byte <= 0x1F


def detect_content_type(data: bytes) -> str:
    """Sniff a media type from at most the first 512 bytes of ``data``."""
    data = data[:_SNIFF_LEN]
    if _is_html(data):
        return "text/html; charset=utf-8"
    if data.lstrip(_WHITESPACE).startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    for prefix, mime in _PREFIX_SIGNATURES:
        if data.startswith(prefix):
            return mime
    if _chunk_type(data, b"RIFF", b"WEBPVP"):
        return "image/webp"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if _chunk_type(data, b"FORM", b"AIFF"):
        return "audio/aiff"
    if data.startswith(b"ID3"):
        return "audio/mpeg"
    if data.startswith(b"OggS\x00"):
        return "application/ogg"
    if data.startswith(b"MThd\x00\x00\x00\x06"):
        return "audio/midi"
    if _chunk_type(data, b"RIFF", b"AVI "):
        return "video/avi"
    if _chunk_type(data, b"RIFF", b"WAVE"):
        return "audio/wave"
    if _is_mp4(data):
        return "video/mp4"
    for prefix, mime in _LATE_SIGNATURES:
        if data.startswith(prefix):
            return mime
    if not any(_is_binary(b) for b in data):
        return "text/plain; charset=utf-8"
    return _DEFAULT_MIME


def _read_file(
    file_header: FileHeader, location: str, validator: MimeTypeValidator
) -> FormFile:
    try:
        handle = file_header.open()
    except OSError:
        raise ErrorDetail(message="Failed to open file", location=location) from None
    content_type = validator.validate(file_header, location)
    return FormFile(
        file=handle,
        content_type=content_type,
        is_set=True,
        size=file_header.size,
        filename=file_header.filename,
    )


def read_single_file(
    file_headers: Sequence[FileHeader],
    key: str,
    required: bool,
    encoding: Encoding | None,
) -> FormFile:
    """Read the one file expected under ``key``; raises ``ErrorDetail``.

    A missing optional file yields an unset ``FormFile``.
    """
    if not file_headers:
        if required:
            raise ErrorDetail(message="File required", location=key)
        return FormFile()
    if len(file_headers) > 1:
        raise ErrorDetail(
            message="Multiple files received but only one was expected",
            location=key,
        )
    return _read_file(file_headers[0], key, MimeTypeValidator.from_encoding(encoding))


def read_multiple_files(
    file_headers: Sequence[FileHeader],
    key: str,
    required: bool,
    encoding: Encoding | None,
) -> list[FormFile]:
    """Read every file under ``key``; raises ``FormDataError`` with all failures."""
    if required and not file_headers:
        raise FormDataError(
            [ErrorDetail(message="At least one file is required", location=key)]
        )
    validator = MimeTypeValidator.from_encoding(encoding)
    files: list[FormFile] = []
    errors: list[ErrorDetail] = []
    for index, file_header in enumerate(file_headers):
        try:
            files.append(_read_file(file_header, f"{key}[{index}]", validator))
        except ErrorDetail as err:
            errors.append(err)
    if errors:
        raise FormDataError(errors)
    return files