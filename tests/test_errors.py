import pytest

from humalite import errors as e


def test_error_model_add_and_strings():
    err = e.ErrorModel(status=400, detail="test err")
    err.add(e.ErrorDetail(message="test detail", location="body.foo", value="bar"))
    err.add(ValueError("plain error"))

    assert str(err) == "test err"
    assert len(err.errors) == 2
    assert str(err.errors[0]) == "test detail (body.foo: bar)"
    assert str(err.errors[1]) == "plain error"


def test_content_type_filter():
    err = e.ErrorModel(status=400, detail="test err")
    assert err.content_type("application/json") == "application/problem+json"
    assert err.content_type("application/cbor") == "application/problem+cbor"
    assert err.content_type("other") == "other"


def test_error_detail_message_only():
    detail = e.ErrorDetail(message="just text")
    assert str(detail) == "just text"
    assert detail.error_detail() is detail


def test_status_304():
    assert e.status_304_not_modified().status == 304


@pytest.mark.parametrize(
    "constructor, expected",
    [
        (e.error_400_bad_request, 400),
        (e.error_401_unauthorized, 401),
        (e.error_403_forbidden, 403),
        (e.error_404_not_found, 404),
        (e.error_405_method_not_allowed, 405),
        (e.error_406_not_acceptable, 406),
        (e.error_409_conflict, 409),
        (e.error_410_gone, 410),
        (e.error_412_precondition_failed, 412),
        (e.error_415_unsupported_media_type, 415),
        (e.error_422_unprocessable_entity, 422),
        (e.error_429_too_many_requests, 429),
        (e.error_500_internal_server_error, 500),
        (e.error_501_not_implemented, 501),
        (e.error_502_bad_gateway, 502),
        (e.error_503_service_unavailable, 503),
        (e.error_504_gateway_timeout, 504),
    ],
)
def test_error_responses(constructor, expected):
    err = constructor("test")
    assert err.status == expected
    assert str(err) == "test"


def test_new_error_title_and_details():
    err = e.new_error(422, "validation failed", ValueError("boom"), None)
    assert err.title == "Unprocessable Entity"
    assert [str(d) for d in err.errors] == ["boom"]
    assert err.to_dict() == {
        "title": "Unprocessable Entity",
        "status": 422,
        "detail": "validation failed",
        "errors": [{"message": "boom"}],
    }


def test_new_error_unknown_status_has_empty_title():
    assert e.new_error(599, "odd").title == ""


def test_status_error_can_be_raised_and_caught():
    err = e.error_404_not_found("missing")
    assert err.status == 404
    assert err.title == "Not Found"
    assert str(err) == "missing"
    with pytest.raises(e.StatusError, match="missing"):
        raise err


def test_custom_error_factory():
    class MyError(e.StatusError):
        def __init__(self, status, message, details):
            super().__init__(message)
            self.status = status
            self.details = details

    def factory(status, msg, *errs):
        return MyError(status, msg, [str(x) for x in errs])

    previous = e.set_error_factory(factory)
    try:
        err = e.error_404_not_found("not found", RuntimeError("some-other-error"))
        assert isinstance(err, MyError)
        assert err.status == 404
        assert err.details == ["some-other-error"]
    finally:
        e.set_error_factory(previous)
    assert isinstance(e.error_400_bad_request("x"), e.ErrorModel)


def test_error_with_headers_merges():
    err = e.error_with_headers(e.error_400_bad_request("test"), {"my-header": ["bar"]})
    assert str(err) == "test"
    again = e.error_with_headers(err, {"Another": "bar"})
    assert again is err
    assert err.headers == {"My-Header": ["bar"], "Another": ["bar"]}
    assert err.err.status == 400


def test_error_with_headers_finds_wrapped():
    inner = e.error_with_headers(e.error_400_bad_request("test"), {"My-Header": ["bar"]})
    wrapper = RuntimeError("wrapped")
    wrapper.__cause__ = inner
    result = e.error_with_headers(wrapper, {"Another": ["baz"]})
    assert result is wrapper
    assert inner.headers["Another"] == ["baz"]
    assert inner.headers["My-Header"] == ["bar"]