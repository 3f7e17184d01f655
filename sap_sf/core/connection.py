"""
sap_sf.core.connection - High-level connection management
==========================================================

Provides a ConnectionContext that wires configuration, transport and the
entity service together.
"""

from __future__ import annotations

from typing import Any, Dict, Generator, List, Optional, TYPE_CHECKING

from sap_sf.core.config import SuccessFactorsConfig
from sap_sf.core.transport import SuccessFactorsTransporter

if TYPE_CHECKING:
    from sap_sf.odata.column_metadata import ColumnMetadata
    from sap_sf.source.service import SuccessFactorsService


class ConnectionContext:
    """
    High-level connection manager for a SuccessFactors entity extraction.

    Falls back to ``SF_*`` environment variables when no configuration is
    passed. Use as a context manager to release the HTTP session.

    Parameters
    ----------
    config : SuccessFactorsConfig, optional
        Extraction configuration, read from the environment when omitted
    transporter : SuccessFactorsTransporter, optional
        Transport to use instead of building one from the configuration

    Examples
    --------
    >>> with ConnectionContext() as conn:   # reads SF_* env vars
    ...     columns = conn.schema()
    ...     for page in conn.records():
    ...         handle(page)
    """

    def __init__(
        self,
        config: Optional[SuccessFactorsConfig] = None,
        *,
        transporter: Optional[SuccessFactorsTransporter] = None,
    ) -> None:
        self.config = config if config is not None else SuccessFactorsConfig.from_env()
        self._transporter = transporter
        self._service: Optional["SuccessFactorsService"] = None

    @property
    def transporter(self) -> SuccessFactorsTransporter:
        """Get or create the underlying transport."""
        if self._transporter is None:
            self._transporter = SuccessFactorsTransporter(
                self.config.username,
                self.config.password,
                verify=self.config.verify,
            )
        return self._transporter

    @property
    def service(self) -> "SuccessFactorsService":
        """Get or create the entity service for the configured entity."""
        if self._service is None:
            # Import here to avoid circular imports
            from sap_sf.source.service import SuccessFactorsService
            self._service = SuccessFactorsService(
                self.transporter,
                self.config.base_url,
                self.config.entity_name,
                filter_option=self.config.filter_option,
                select=self.config.select_fields,
                expand=self.config.expand_fields,
                page_size=self.config.page_size,
            )
        return self._service

    def close(self) -> None:
        """Close the connection."""
        if self._transporter is not None:
            self._transporter.close()
            self._transporter = None
        self._service = None

    def __enter__(self) -> "ConnectionContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def schema(self) -> List["ColumnMetadata"]:
        """Column metadata tree for the configured entity."""
        return self.service.build_schema()

    def records(self, max_records: Optional[int] = None) -> Generator[List[Dict[str, Any]], None, None]:
        """Pages of records for the configured entity."""
        return self.service.iter_pages(max_records=max_records)

    @property
    def base_url(self) -> str:
        """The configured base URL."""
        return self.config.base_url

    @property
    def entity_name(self) -> str:
        return self.config.entity_name
