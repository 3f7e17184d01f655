"""
sap_sf.source.service - SuccessFactors entity service
======================================================

Entity-scoped client for a SuccessFactors OData v2 service: URL building,
metadata retrieval, record count and paginated record fetching.
"""

from __future__ import annotations

from typing import Any, Dict, Generator, List, Optional, Sequence
import json
import logging

import requests

from sap_sf.core.transport import (
    CALL_COUNT,
    CALL_METADATA,
    CALL_TEST,
    MEDIA_JSON,
    MEDIA_XML,
    ResponseContainer,
    SuccessFactorsTransporter,
)
from sap_sf.odata.column_metadata import ColumnMetadata
from sap_sf.odata.edm import EdmNavigationProperty
from sap_sf.odata.entity_provider import EntityProvider
from sap_sf.odata.metadata import parse_metadata
from sap_sf.source.schema import SchemaGenerator


SUPPORTED_VERSION = "2.0"
DEFAULT_PAGE_SIZE = 1000


class ODataServiceError(RuntimeError):
    """
    Exception raised when the SuccessFactors service answers with an error.

    Attributes
    ----------
    status : int
        HTTP status code, or 0 when the response was unusable
    body : str
        Error details extracted from the response
    url : str
        The URL that was called
    """

    def __init__(self, status: int, body: str, url: str):
        snippet = (body or "")[:1200]
        super().__init__(f"SuccessFactors service error {status} for {url}: {snippet}")
        self.status = status
        self.body = body or ""
        self.url = url


class InvalidCredentialsError(ODataServiceError):
    """The service rejected the configured user (HTTP 401)."""


class ResourceNotFoundError(ODataServiceError):
    """The base URL or entity does not exist (HTTP 404)."""


class UnsupportedVersionError(ODataServiceError):
    """The service does not speak OData 2.0."""


def _join_csv(items: Sequence[str]) -> str:
    """Join items as comma-separated values, stripping whitespace."""
    return ",".join([s.strip() for s in items if s and s.strip()])


def _extract_odata_error(res: ResponseContainer) -> str:
    text = res.text()
    try:
        data = json.loads(text)
    except ValueError:
        return text or res.http_status_msg
    if not isinstance(data, dict):
        return text
    err = data.get("error")
    if not isinstance(err, dict):
        return text

    code = err.get("code")
    message = None
    if isinstance(err.get("message"), dict):
        message = err["message"].get("value")
    elif isinstance(err.get("message"), str):
        message = err.get("message")

    parts = []
    if code:
        parts.append(f"code={code}")
    if message:
        parts.append(f"message={message}")
    return " | ".join(parts) or text


def _raise_for_error(res: ResponseContainer, url: str) -> None:
    if res.is_success:
        return
    body = _extract_odata_error(res)
    if res.http_status_code == 401:
        raise InvalidCredentialsError(res.http_status_code, body, url)
    if res.http_status_code == 404:
        raise ResourceNotFoundError(res.http_status_code, body, url)
    raise ODataServiceError(res.http_status_code, body, url)


def _records(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, dict):
        d = payload.get("d")
        if isinstance(d, dict):
            return d.get("results") or []
        if isinstance(d, list):
            return d
        return payload.get("value") or []
    return []


class SuccessFactorsService:
    """
    Entity-scoped SuccessFactors client.

    The metadata document is fetched once and cached; data pages are
    fetched with retry on server errors.

    Parameters
    ----------
    transporter : SuccessFactorsTransporter
        Authenticated transport
    base_url : str
        OData root, e.g. ``https://host/odata/v2``
    entity_name : str
        Entity set to extract
    filter_option : str, optional
        Raw $filter expression
    select : list of str, optional
        Fields for $select, ``Nav/Prop`` for expanded fields
    expand : list of str, optional
        Navigation paths for $expand
    page_size : int
        Records per page ($top)

    Examples
    --------
    >>> svc = SuccessFactorsService(transporter, "https://host/odata/v2", "User",
    ...                             select=["userId", "manager/userId"])
    >>> svc.fetch_metadata().get_entity_type("User").key_property_names
    ('userId',)
    >>> for page in svc.iter_pages():
    ...     print(len(page))
    """

    def __init__(
        self,
        transporter: SuccessFactorsTransporter,
        base_url: str,
        entity_name: str,
        *,
        filter_option: Optional[str] = None,
        select: Optional[List[str]] = None,
        expand: Optional[List[str]] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.transporter = transporter
        self.base = base_url.rstrip("/")
        self.entity_name = entity_name
        self.filter_option = filter_option
        self.select = list(select or [])
        self.expand = list(expand or [])
        self.page_size = int(page_size)
        self.logger = logging.getLogger("sap_sf.service")
        self._provider: Optional[EntityProvider] = None

    # ---------------- URLs ----------------

    def _url(self, path: str, params: Optional[Dict[str, str]] = None) -> str:
        url = f"{self.base}/{path.lstrip('/')}"
        return requests.Request("GET", url, params=params or {}).prepare().url

    def metadata_url(self) -> str:
        return self._url("$metadata")

    def test_url(self) -> str:
        return self._url(self.entity_name, {"$top": "1", "$format": "json"})

    def count_url(self) -> str:
        params: Dict[str, str] = {}
        if self.filter_option:
            params["$filter"] = self.filter_option
        return self._url(f"{self.entity_name}/$count", params)

    def data_url(self, skip: Optional[int] = None, top: Optional[int] = None) -> str:
        params: Dict[str, str] = {}
        if self.filter_option:
            params["$filter"] = self.filter_option
        if self.select:
            params["$select"] = _join_csv(self.select)
        expand = self.expand_paths()
        if expand:
            params["$expand"] = _join_csv(expand)
        keys = self.order_by()
        if keys:
            params["$orderby"] = _join_csv(keys)
        if top is not None:
            params["$top"] = str(int(top))
        if skip is not None:
            params["$skip"] = str(int(skip))
        params["$format"] = "json"
        return self._url(self.entity_name, params)

    def expand_paths(self) -> List[str]:
        """
        Expand paths needed by the query: the configured ones plus the
        navigation prefixes used by ``Nav/Prop`` select items.
        """
        out: List[str] = []
        for path in self.expand:
            if path not in out:
                out.append(path)

        # Bare navigation names in select can only be told apart once metadata is loaded
        entity_type = None
        if self._provider is not None:
            entity_type = self._provider.get_entity_type(self.entity_name)

        for item in self.select:
            if "/" in item:
                prefix = item.rsplit("/", 1)[0]
            elif entity_type is not None and isinstance(entity_type.get_property(item), EdmNavigationProperty):
                prefix = item
            else:
                continue
            if prefix not in out:
                out.append(prefix)
        return out

    def order_by(self) -> List[str]:
        """Key properties of the entity, once metadata is loaded; keeps ``$skip`` paging stable."""
        if self._provider is None:
            return []
        return self._provider.get_key_property_names(self.entity_name)

    # ---------------- calls ----------------

    def check_url(self) -> None:
        """
        Verify the base URL, entity and credentials with a one-record call.

        Raises
        ------
        InvalidCredentialsError, ResourceNotFoundError, ODataServiceError
        """
        url = self.test_url()
        self.logger.debug("Testing SuccessFactors endpoint %s", url)
        res = self.transporter.call(url, MEDIA_JSON, CALL_TEST)
        _raise_for_error(res, url)

    def fetch_metadata(self) -> EntityProvider:
        """
        Fetch and parse the service ``$metadata`` on first use.

        Returns
        -------
        EntityProvider
            Lookups over the parsed metadata

        Raises
        ------
        UnsupportedVersionError
            If the service is not OData 2.0
        ODataServiceError
            If the metadata call fails
        """
        if self._provider is not None:
            return self._provider

        url = self.metadata_url()
        self.logger.debug("Fetching SuccessFactors metadata from %s", url)
        res = self.transporter.call(url, MEDIA_XML, CALL_METADATA)
        _raise_for_error(res, url)
        if res.response_stream is None:
            raise ODataServiceError(res.http_status_code, "Metadata response has no body", url)

        edm = parse_metadata(res.response_stream)
        version = res.data_service_version or edm.data_service_version
        if not version:
            raise UnsupportedVersionError(
                res.http_status_code, "Service did not report its data service version", url
            )
        if version.split(";", 1)[0].strip() != SUPPORTED_VERSION:
            raise UnsupportedVersionError(
                res.http_status_code,
                f"Unsupported data service version '{version}', expected {SUPPORTED_VERSION}",
                url,
            )

        self._provider = EntityProvider(edm)
        return self._provider

    def build_schema(self) -> List[ColumnMetadata]:
        """Column metadata tree for the configured entity, select and expand."""
        generator = SchemaGenerator(self.fetch_metadata())
        return generator.build_output_schema(self.entity_name, self.select, self.expand)

    def get_total_record_count(self) -> int:
        url = self.count_url()
        res = self.transporter.call(url, MEDIA_JSON, CALL_COUNT)
        _raise_for_error(res, url)
        text = res.text().strip()
        try:
            return int(text)
        except ValueError:
            raise ODataServiceError(res.http_status_code, f"Invalid record count '{text[:100]}'", url) from None

    def fetch_page(self, skip: int, top: int) -> List[Dict[str, Any]]:
        """
        Fetch one page of records, retrying on server errors.

        Raises
        ------
        RetryExhaustedError
            If the service kept failing with 5xx
        ODataServiceError
            For any other non-success response
        """
        url = self.data_url(skip=skip, top=top)
        res = self.transporter.call_with_retry(url, MEDIA_JSON)
        _raise_for_error(res, url)
        if res.response_stream is None:
            return []
        try:
            payload = json.loads(res.text())
        except ValueError:
            raise ODataServiceError(res.http_status_code, "Response is not valid JSON", url) from None
        return _records(payload)

    def iter_pages(self, max_records: Optional[int] = None) -> Generator[List[Dict[str, Any]], None, None]:
        """
        Iterate through pages of records using ``$skip`` / ``$top``.

        Metadata is fetched first, so pages are ordered by the entity keys.

        Parameters
        ----------
        max_records : int, optional
            Stop after this many records

        Yields
        ------
        list of dict
            Each page of entity records
        """
        # $expand for bare navigation selects and $orderby both need the metadata
        self.fetch_metadata()
        total = self.get_total_record_count()
        limit = total if max_records is None else min(total, int(max_records))
        self.logger.debug("Fetching %s of %s records of %s", limit, total, self.entity_name)

        fetched = 0
        while fetched < limit:
            top = min(self.page_size, limit - fetched)
            page = self.fetch_page(skip=fetched, top=top)
            if not page:
                return
            yield page
            fetched += len(page)
            if len(page) < top:
                return

    def read_all(self, max_records: Optional[int] = None) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for page in self.iter_pages(max_records=max_records):
            out.extend(page)
        return out
