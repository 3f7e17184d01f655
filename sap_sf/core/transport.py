"""
sap_sf.core.transport - SuccessFactors HTTP transport
======================================================

Low-level HTTP handling for SAP SuccessFactors OData services with:
- Basic authentication
- Long gateway timeouts (300 seconds)
- Bounded exponential-backoff retry on server errors for data pages
- Normalized response containers
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union
import base64
import logging
import time

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


MEDIA_JSON = "application/json"
MEDIA_XML = "application/xml"

# Response header carrying the OData protocol version of the service
SERVICE_VERSION = "dataserviceversion"

# SAP gateway recommendation for connect / read / write
CONNECTION_TIMEOUT = 300.0

CALL_TEST = "TEST"
CALL_METADATA = "METADATA"
CALL_COUNT = "COUNT"
CALL_DATA = "DATA"


class TransportError(IOError):
    """
    Raised when an HTTP call could not be completed.

    The underlying exception (DNS failure, connection reset, invalid URL, ...)
    is available as ``__cause__``.
    """

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class RetryExhaustedError(TransportError):
    """
    Raised when a data page still fails with a server error after the last
    retry attempt. Callers treat it as fatal for the page being fetched.

    Attributes
    ----------
    attempts : int
        Number of attempts that were made
    status : int or None
        HTTP status code of the last attempt
    """

    def __init__(self, url: str, attempts: int, status: Optional[int]):
        super().__init__(
            f"Data recovery failed for URL {url} after {attempts} attempts "
            f"(last status: {status})",
            url,
        )
        self.attempts = attempts
        self.status = status


@dataclass(frozen=True)
class ResponseContainer:
    """
    Immutable outcome of a single HTTP call.

    Attributes
    ----------
    http_status_code : int
        HTTP status code, e.g. 200
    http_status_msg : str
        HTTP reason phrase, e.g. "OK"
    data_service_version : str or None
        Value of the ``dataserviceversion`` response header
    response_stream : bytes or None
        Raw body, None when the service returned no body
    """
    http_status_code: int
    http_status_msg: str = ""
    data_service_version: Optional[str] = None
    response_stream: Optional[bytes] = None

    @classmethod
    def from_response(cls, r: Response) -> "ResponseContainer":
        body = r.content
        return cls(
            http_status_code=r.status_code,
            http_status_msg=r.reason or "",
            data_service_version=r.headers.get(SERVICE_VERSION),
            # An empty body is reported as absent
            response_stream=bytes(body) if body else None,
        )

    @property
    def is_success(self) -> bool:
        return 200 <= self.http_status_code < 300

    def text(self, encoding: str = "utf-8") -> str:
        """Decode the body, returning an empty string when there is none."""
        if self.response_stream is None:
            return ""
        return self.response_stream.decode(encoding, errors="replace")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry policy for data page calls.

    Parameters
    ----------
    max_attempts : int
        Total number of attempts including the first one (default: 5)
    initial_wait : float
        Seconds to wait after the first failed attempt (default: 5.0)
    multiplier : float
        Growth factor of the wait between consecutive attempts (default: 2.0)
    """
    max_attempts: int = 5
    initial_wait: float = 5.0
    multiplier: float = 2.0

    def is_retryable(self, status_code: int) -> bool:
        return status_code >= 500

    def wait_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return self.initial_wait * (self.multiplier ** (attempt - 1))


class SuccessFactorsTransporter:
    """
    Makes authenticated GET calls against SAP SuccessFactors services.

    Credentials are supplied once and reused for every call. One instance is
    meant for one caller at a time; the retry loop itself keeps no state on
    the instance.

    Parameters
    ----------
    username : str
        User for basic auth, usually ``user@companyId``
    password : str
        Password for basic auth
    session : requests.Session, optional
        Session to use, a new one is built when omitted
    retry_policy : RetryPolicy, optional
        Policy for ``call_with_retry``
    verify : bool or str
        SSL verification (True, False, or path to CA bundle)
    sleep : callable, optional
        Function used to wait between attempts (default: ``time.sleep``)

    Examples
    --------
    >>> with SuccessFactorsTransporter("admin@ACME", "secret") as t:
    ...     res = t.call(url, MEDIA_XML, CALL_METADATA)
    ...     res.http_status_code
    200
    """

    def __init__(
        self,
        username: str,
        password: str,
        *,
        session: Optional[Session] = None,
        retry_policy: Optional[RetryPolicy] = None,
        verify: Union[bool, str] = True,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.username = username
        self.password = password
        self.retry_policy = retry_policy or RetryPolicy()
        self.verify = verify
        self.timeout = (CONNECTION_TIMEOUT, CONNECTION_TIMEOUT)
        self.logger = logging.getLogger("sap_sf.transport")
        self._sleep = sleep or time.sleep

        self.session = session if session is not None else self._build_session()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> "SuccessFactorsTransporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------- session ----------------

    def _build_session(self) -> Session:
        sess = requests.Session()
        # Retries are decided by call_with_retry, never by the connection pool
        retry = Retry(total=0, read=False, raise_on_status=False)
        adapter = HTTPAdapter(max_retries=retry)
        sess.mount("https://", adapter)
        sess.mount("http://", adapter)
        return sess

    def _authentication_key(self) -> str:
        raw = f"{self.username}:{self.password}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def _headers(self, media_type: str) -> Dict[str, str]:
        return {
            "Authorization": self._authentication_key(),
            "Accept": media_type,
        }

    def _transport(self, endpoint: str, media_type: str) -> Response:
        try:
            return self.session.get(
                endpoint,
                headers=self._headers(media_type),
                timeout=self.timeout,
                verify=self.verify,
            )
        except (requests.RequestException, OSError) as e:
            raise TransportError(f"Call to SuccessFactors service failed: {e}", endpoint) from e

    # ---------------- public ops ----------------

    def call(self, endpoint: str, media_type: str, call_kind: str) -> ResponseContainer:
        """
        Call the given URL once and return the response, whatever its status.

        Used for testing the URL, fetching metadata and fetching the record
        count.

        Parameters
        ----------
        endpoint : str
            Full service URL
        media_type : str
            Accept header, ``application/json`` or ``application/xml``
        call_kind : str
            TEST / METADATA / COUNT, used for logging

        Returns
        -------
        ResponseContainer

        Raises
        ------
        TransportError
            Any lower-level I/O failure
        """
        self.logger.debug("Calling SuccessFactors service for %s", call_kind)
        t0 = time.perf_counter()
        r = self._transport(endpoint, media_type)
        dt = (time.perf_counter() - t0) * 1000.0
        self.logger.debug(
            "SuccessFactors %s call returned %s in %sms", call_kind, r.status_code, round(dt, 1)
        )
        return ResponseContainer.from_response(r)

    def call_with_retry(self, endpoint: str, media_type: str = MEDIA_JSON) -> ResponseContainer:
        """
        Call the given URL, retrying while the service answers with 5xx.

        Only server errors are retried. Client errors (4xx) are returned
        immediately and transport failures propagate without retry.

        Parameters
        ----------
        endpoint : str
            Record fetch URL
        media_type : str
            Accept header (default: application/json)

        Returns
        -------
        ResponseContainer
            Container of the first non-5xx response

        Raises
        ------
        RetryExhaustedError
            If every attempt returned a server error
        TransportError
            Any lower-level I/O failure
        """
        policy = self.retry_policy
        status: Optional[int] = None

        self.logger.debug("Calling SuccessFactors service for %s", CALL_DATA)
        for attempt in range(1, policy.max_attempts + 1):
            r = self._transport(endpoint, media_type)
            status = r.status_code
            if not policy.is_retryable(status):
                self.logger.debug(
                    "SuccessFactors %s call returned %s on attempt %s", CALL_DATA, status, attempt
                )
                return ResponseContainer.from_response(r)

            r.close()
            if attempt < policy.max_attempts:
                wait = policy.wait_for(attempt)
                self.logger.warning(
                    "Attempt %s/%s for %s failed with %s, retrying in %ss",
                    attempt, policy.max_attempts, endpoint, status, wait,
                )
                self._sleep(wait)

        self.logger.error("Data recovery failed for URL %s.", endpoint)
        raise RetryExhaustedError(endpoint, policy.max_attempts, status)
