"""Problem-details error models and HTTP status error helpers."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

__all__ = [
    "ErrorDetail",
    "StatusError",
    "ErrorModel",
    "ErrorWithHeaders",
    "error_with_headers",
    "new_error",
    "set_error_factory",
    "status_304_not_modified",
    "error_400_bad_request",
    "error_401_unauthorized",
    "error_403_forbidden",
    "error_404_not_found",
    "error_405_method_not_allowed",
    "error_406_not_acceptable",
    "error_409_conflict",
    "error_410_gone",
    "error_412_precondition_failed",
    "error_415_unsupported_media_type",
    "error_422_unprocessable_entity",
    "error_429_too_many_requests",
    "error_500_internal_server_error",
    "error_501_not_implemented",
    "error_502_bad_gateway",
    "error_503_service_unavailable",
    "error_504_gateway_timeout",
]

# Reason phrases that differ between standard-library versions are pinned here.
_PHRASE_OVERRIDES = {
    413: "Request Entity Too Large",
    416: "Requested Range Not Satisfiable",
    422: "Unprocessable Entity",
}


def _status_text(status: int) -> str:
    if status in _PHRASE_OVERRIDES:
        return _PHRASE_OVERRIDES[status]
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


def _canonical_header_key(key: str) -> str:
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def _normalize_headers(headers: Mapping[str, str | Iterable[str]]) -> dict[str, list[str]]:
    result: dict[str, list[str]] = {}
    for key, values in headers.items():
        if isinstance(values, str):
            values = [values]
        result.setdefault(_canonical_header_key(key), []).extend(values)
    return result


@dataclass(eq=False)
class ErrorDetail(Exception):
    """Details about one specific error, such as a failed validation."""

    message: str = ""
    location: str = ""
    value: Any = None

    def __str__(self) -> str:
        if not self.location and self.value is None:
            return self.message
        return f"{self.message} ({self.location}: {self.value})"

    def error_detail(self) -> ErrorDetail:
        """Return this detail; lets custom errors supply their own details."""
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serializable form, omitting empty fields."""
        out: dict[str, Any] = {}
        if self.message:
            out["message"] = self.message
        if self.location:
            out["location"] = self.location
        if self.value is not None:
            out["value"] = self.value
        return out


class StatusError(Exception):
    """An error that carries the HTTP status code to respond with."""

    status: int = 500


@dataclass(eq=False)
class ErrorModel(StatusError):
    """RFC 9457 problem details, extended with a list of error details."""

    type: str = ""
    title: str = ""
    status: int = 0
    detail: str = ""
    instance: str = ""
    errors: list[ErrorDetail] = field(default_factory=list)

    def __str__(self) -> str:
        return self.detail

    def add(self, err: BaseException) -> None:
        """Append an error, using its own detail when it provides one."""
        detailer = getattr(err, "error_detail", None)
        if callable(detailer):
            self.errors.append(detailer())
        else:
            self.errors.append(ErrorDetail(message=str(err)))

    def content_type(self, ct: str) -> str:
        """Map a negotiated content type to its problem-details variant."""
        if ct == "application/json":
            return "application/problem+json"
        if ct == "application/cbor":
            return "application/problem+cbor"
        return ct

    def to_dict(self) -> dict[str, Any]:
        """Serializable form, omitting empty fields."""
        out: dict[str, Any] = {}
        for name in ("type", "title", "status", "detail", "instance"):
            value = getattr(self, name)
            if value:
                out[name] = value
        if self.errors:
            out["errors"] = [e.to_dict() for e in self.errors]
        return out


class ErrorWithHeaders(Exception):
    """Wraps an error with HTTP headers to send alongside the response."""

    def __init__(self, err: BaseException, headers: Mapping[str, str | Iterable[str]]):
        super().__init__(str(err))
        self.err = err
        self.headers = _normalize_headers(headers)
        self.__cause__ = err

    def __str__(self) -> str:
        return str(self.err)


def _error_chain(err: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if isinstance(current, ErrorWithHeaders):
            current = current.err
        elif current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def error_with_headers(
    err: BaseException, headers: Mapping[str, str | Iterable[str]]
) -> BaseException:
    """Attach headers to an error, merging into any headers already attached."""
    for candidate in _error_chain(err):
        if isinstance(candidate, ErrorWithHeaders):
            for key, values in _normalize_headers(headers).items():
                candidate.headers.setdefault(key, []).extend(values)
            return err
    return ErrorWithHeaders(err, headers)


ErrorFactory = Callable[..., StatusError]


def _default_factory(status: int, msg: str, *errs: BaseException | None) -> StatusError:
    model = ErrorModel(status=status, title=_status_text(status), detail=msg)
    for err in errs:
        if err is not None:
            model.add(err)
    return model


_factory: ErrorFactory = _default_factory


def set_error_factory(factory: ErrorFactory | None) -> ErrorFactory:
    """Replace the error factory used by ``new_error``; return the old one.

    Passing ``None`` restores the default factory.
    """
    global _factory
    previous = _factory
    _factory = factory if factory is not None else _default_factory
    return previous


def new_error(status: int, msg: str, *args: BaseException | None) -> StatusError:
    """Create a status error using the configured error factory."""
    return _factory(status, msg, *args)


def status_304_not_modified() -> StatusError:
    """A 304 response; not really an error, but sent the same way."""
    return new_error(304, "")


def error_400_bad_request(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(400, msg, *args)


def error_401_unauthorized(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(401, msg, *args)


def error_403_forbidden(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(403, msg, *args)


def error_404_not_found(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(404, msg, *args)


def error_405_method_not_allowed(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(405, msg, *args)


def error_406_not_acceptable(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(406, msg, *args)


def error_409_conflict(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(409, msg, *args)


def error_410_gone(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(410, msg, *args)


def error_412_precondition_failed(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(412, msg, *args)


def error_415_unsupported_media_type(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(415, msg, *args)


def error_422_unprocessable_entity(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(422, msg, *args)


def error_429_too_many_requests(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(429, msg, *args)


def error_500_internal_server_error(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(500, msg, *args)


def error_501_not_implemented(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(501, msg, *args)


def error_502_bad_gateway(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(502, msg, *args)


def error_503_service_unavailable(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(503, msg, *args)


def error_504_gateway_timeout(msg: str, *args: BaseException | None) -> StatusError:
    return new_error(504, msg, *args)