import asyncio

import httpx
import pytest

from storefront.services.classifier import (
    classify_exception,
    classify_status,
    decode_json,
)
from storefront.services.errors import ClassifiedError, ErrorKind


class TestClassifyException:
    def test_cancellation_is_timeout(self):
        error = classify_exception(asyncio.CancelledError(), "https://api.test/Home")
        assert error.kind is ErrorKind.TIMEOUT
        assert error.endpoint == "https://api.test/Home"

    def test_asyncio_timeout_is_timeout(self):
        assert classify_exception(asyncio.TimeoutError()).kind is ErrorKind.TIMEOUT

    def test_httpx_timeout_is_timeout(self):
        exc = httpx.ReadTimeout("read timed out")
        assert classify_exception(exc).kind is ErrorKind.TIMEOUT

    def test_connection_failure_is_network(self):
        error = classify_exception(httpx.ConnectError("connection refused"))
        assert error.kind is ErrorKind.NETWORK
        assert error.http_status is None
        assert error.details == {"exception": "ConnectError"}

    def test_unknown_transport_failure_is_network(self):
        assert classify_exception(OSError("dns failure")).kind is ErrorKind.NETWORK

    def test_decoding_failure_is_invalid_response(self):
        error = classify_exception(httpx.DecodingError("bad gzip"))
        assert error.kind is ErrorKind.INVALID_RESPONSE

    def test_classified_error_passes_through(self):
        original = ClassifiedError(ErrorKind.NOT_FOUND, "gone", http_status=404)
        assert classify_exception(original) is original


class TestClassifyStatus:
    @pytest.mark.parametrize("status", [200, 201, 204, 299])
    def test_success_statuses(self, status):
        assert classify_status(status) is None

    @pytest.mark.parametrize(
        "status, kind",
        [
            (404, ErrorKind.NOT_FOUND),
            (408, ErrorKind.TIMEOUT),
            (504, ErrorKind.TIMEOUT),
            (500, ErrorKind.SERVER_ERROR),
            (502, ErrorKind.SERVER_ERROR),
            (503, ErrorKind.SERVER_ERROR),
            (400, ErrorKind.SERVER_ERROR),
            (401, ErrorKind.SERVER_ERROR),
        ],
    )
    def test_error_statuses(self, status, kind):
        error = classify_status(status)
        assert error.kind is kind
        assert error.http_status == status

    def test_message_includes_truncated_body(self):
        error = classify_status(500, "x" * 500)
        assert error.message == "HTTP 500: " + "x" * 200

    def test_message_without_body(self):
        assert classify_status(503).message == "HTTP 503"


class TestDecodeJson:
    def test_parses_object(self):
        assert decode_json(b'{"sections": []}') == {"sections": []}

    def test_empty_body_is_none(self):
        assert decode_json(b"") is None
        assert decode_json("  ") is None

    def test_malformed_body_is_invalid_response(self):
        with pytest.raises(ClassifiedError) as exc_info:
            decode_json(b"<html>oops</html>", status=200)

        assert exc_info.value.kind is ErrorKind.INVALID_RESPONSE
        assert exc_info.value.http_status == 200
        assert exc_info.value.details == {"body": "<html>oops</html>"}


def test_error_to_dict():
    error = ClassifiedError(
        ErrorKind.SERVER_ERROR, "HTTP 500", http_status=500, endpoint="/Home"
    )
    assert error.to_dict() == {
        "kind": "SERVER_ERROR",
        "http_status": 500,
        "message": "HTTP 500",
        "details": None,
        "endpoint": "/Home",
    }
    assert error.retryable
    assert not ClassifiedError(ErrorKind.NOT_FOUND, "HTTP 404").retryable
