"""
Tests for sap_sf.core.transport module.
"""

import base64

import pytest
import requests
from unittest.mock import Mock

from sap_sf.core.transport import (
    CALL_METADATA,
    CONNECTION_TIMEOUT,
    MEDIA_JSON,
    MEDIA_XML,
    ResponseContainer,
    RetryExhaustedError,
    RetryPolicy,
    SuccessFactorsTransporter,
    TransportError,
)
from tests.conftest import make_response


URL = "https://test.example.com/odata/v2/User?$format=json"


def _transporter(session, sleeps=None):
    sleep = sleeps.append if sleeps is not None else Mock()
    return SuccessFactorsTransporter("admin@ACME", "s3cret", session=session, sleep=sleep)


class TestResponseContainer:
    """Tests for ResponseContainer."""

    def test_from_response(self):
        r = make_response(
            404,
            b'{"error": "nope"}',
            headers={"DataServiceVersion": "2.0"},
            reason="Not Found",
        )
        res = ResponseContainer.from_response(r)
        assert res.http_status_code == 404
        assert res.http_status_msg == "Not Found"
        assert res.data_service_version == "2.0"
        assert res.response_stream == b'{"error": "nope"}'
        assert res.is_success is False

    def test_null_body_is_absent(self):
        res = ResponseContainer.from_response(make_response(200, None))
        assert res.response_stream is None
        assert res.text() == ""

    def test_empty_body_is_absent(self):
        res = ResponseContainer.from_response(make_response(204, b""))
        assert res.response_stream is None

    def test_missing_version_header(self):
        res = ResponseContainer.from_response(make_response(200, b"x"))
        assert res.data_service_version is None

    def test_is_immutable(self):
        res = ResponseContainer(200, "OK", "2.0", b"x")
        with pytest.raises(Exception):
            res.http_status_code = 500


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 5
        assert policy.initial_wait == 5.0

    def test_exponential_waits(self):
        policy = RetryPolicy()
        assert [policy.wait_for(n) for n in range(1, 5)] == [5.0, 10.0, 20.0, 40.0]

    def test_only_server_errors_are_retryable(self):
        policy = RetryPolicy()
        assert policy.is_retryable(500)
        assert policy.is_retryable(503)
        assert not policy.is_retryable(404)
        assert not policy.is_retryable(429)
        assert not policy.is_retryable(200)


class TestCall:
    """Tests for SuccessFactorsTransporter.call."""

    def test_sends_basic_auth_and_accept(self, mock_http_session):
        t = _transporter(mock_http_session)
        t.call(URL, MEDIA_XML, CALL_METADATA)

        kwargs = mock_http_session.get.call_args.kwargs
        expected = "Basic " + base64.b64encode(b"admin@ACME:s3cret").decode("ascii")
        assert kwargs["headers"]["Authorization"] == expected
        assert kwargs["headers"]["Accept"] == MEDIA_XML
        assert kwargs["timeout"] == (CONNECTION_TIMEOUT, CONNECTION_TIMEOUT)
        assert CONNECTION_TIMEOUT == 300.0

    def test_client_error_is_returned_unchanged(self, mock_http_session):
        mock_http_session.get.return_value = make_response(404, b"not here", reason="Not Found")
        t = _transporter(mock_http_session)

        res = t.call(URL, MEDIA_JSON, "TEST")

        assert res.http_status_code == 404
        assert res.response_stream == b"not here"
        assert mock_http_session.get.call_count == 1

    def test_server_error_is_not_retried(self, mock_http_session, sleeps):
        mock_http_session.get.return_value = make_response(503, b"busy")
        t = _transporter(mock_http_session, sleeps)

        res = t.call(URL, MEDIA_JSON, "COUNT")

        assert res.http_status_code == 503
        assert mock_http_session.get.call_count == 1
        assert sleeps == []

    def test_io_failure_is_wrapped(self, mock_http_session):
        cause = requests.ConnectionError("connection reset")
        mock_http_session.get.side_effect = cause
        t = _transporter(mock_http_session)

        with pytest.raises(TransportError) as exc_info:
            t.call(URL, MEDIA_JSON, "TEST")

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.url == URL


class TestCallWithRetry:
    """Tests for SuccessFactorsTransporter.call_with_retry."""

    def test_recovers_after_server_errors(self, mock_http_session, sleeps):
        mock_http_session.get.side_effect = [make_response(503) for _ in range(4)] + [
            make_response(200, b'{"d": {"results": []}}')
        ]
        t = _transporter(mock_http_session, sleeps)

        res = t.call_with_retry(URL)

        assert res.http_status_code == 200
        assert res.response_stream == b'{"d": {"results": []}}'
        assert mock_http_session.get.call_count == 5
        assert sleeps == [5.0, 10.0, 20.0, 40.0]
        assert all(wait >= 5.0 for wait in sleeps)

    def test_gives_up_after_max_attempts(self, mock_http_session, sleeps):
        mock_http_session.get.side_effect = [make_response(503) for _ in range(6)]
        t = _transporter(mock_http_session, sleeps)

        with pytest.raises(RetryExhaustedError) as exc_info:
            t.call_with_retry(URL)

        assert mock_http_session.get.call_count == 5
        assert len(sleeps) == 4
        assert exc_info.value.attempts == 5
        assert exc_info.value.status == 503
        assert isinstance(exc_info.value, OSError)
        assert isinstance(exc_info.value, TransportError)

    def test_client_error_is_not_retried(self, mock_http_session, sleeps):
        mock_http_session.get.return_value = make_response(404, b"missing", reason="Not Found")
        t = _transporter(mock_http_session, sleeps)

        res = t.call_with_retry(URL)

        assert res.http_status_code == 404
        assert res.response_stream == b"missing"
        assert mock_http_session.get.call_count == 1
        assert sleeps == []

    def test_transport_failure_is_not_retried(self, mock_http_session, sleeps):
        mock_http_session.get.side_effect = requests.Timeout("read timed out")
        t = _transporter(mock_http_session, sleeps)

        with pytest.raises(TransportError):
            t.call_with_retry(URL)

        assert mock_http_session.get.call_count == 1
        assert sleeps == []

    def test_uses_json_by_default(self, mock_http_session):
        t = _transporter(mock_http_session)
        t.call_with_retry(URL)
        assert mock_http_session.get.call_args.kwargs["headers"]["Accept"] == MEDIA_JSON

    def test_custom_policy(self, mock_http_session, sleeps):
        mock_http_session.get.side_effect = [make_response(500) for _ in range(3)]
        t = SuccessFactorsTransporter(
            "u", "p",
            session=mock_http_session,
            retry_policy=RetryPolicy(max_attempts=2, initial_wait=1.0),
            sleep=sleeps.append,
        )

        with pytest.raises(RetryExhaustedError):
            t.call_with_retry(URL)

        assert mock_http_session.get.call_count == 2
        assert sleeps == [1.0]


class TestSession:
    """Tests for the transporter's own HTTP session."""

    def test_pool_does_not_retry(self):
        t = SuccessFactorsTransporter("u", "p")
        try:
            adapter = t.session.get_adapter("https://test.example.com")
            assert adapter.max_retries.total == 0
        finally:
            t.close()

    def test_context_manager_closes_session(self, mock_http_session):
        with _transporter(mock_http_session) as t:
            assert t is not None
        mock_http_session.close.assert_called_once()
