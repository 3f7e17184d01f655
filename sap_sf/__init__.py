"""
SAP SuccessFactors OData source (sap_sf)
========================================

Batch extraction of SAP SuccessFactors entities over OData v2: metadata
resolution into column metadata trees and resilient paginated fetching.

Usage
-----
>>> from sap_sf import ConnectionContext, SuccessFactorsConfig
>>>
>>> cfg = SuccessFactorsConfig(
...     base_url="https://apisalesdemo2.successfactors.eu/odata/v2",
...     entity_name="User",
...     username="admin@SFPART000000",
...     password="secret",
...     expand_option="manager",
... )
>>> with ConnectionContext(cfg) as conn:
...     columns = conn.schema()
...     for page in conn.records(max_records=5000):
...         ...

Subpackages
-----------
- sap_sf.core: Transport, configuration and connection context
- sap_sf.odata: Metadata parsing, entity lookups, column metadata
- sap_sf.source: Schema generation and the entity service

"""

__version__ = "0.1.0"

# Core exports - available at package root
from sap_sf.core.transport import (
    ResponseContainer,
    RetryExhaustedError,
    RetryPolicy,
    SuccessFactorsTransporter,
    TransportError,
)
from sap_sf.core.config import SuccessFactorsConfig
from sap_sf.core.connection import ConnectionContext

# Convenience re-exports
from sap_sf.odata import (
    ColumnMetadata,
    ColumnMetadataBuilder,
    ColumnMetadataStateError,
    EntityProvider,
    MetadataAccessError,
    parse_metadata,
)
from sap_sf.source import SchemaError, SchemaGenerator, SuccessFactorsService, ODataServiceError

__all__ = [
    # Version
    "__version__",
    # Core
    "ResponseContainer",
    "RetryExhaustedError",
    "RetryPolicy",
    "SuccessFactorsTransporter",
    "TransportError",
    "SuccessFactorsConfig",
    "ConnectionContext",
    # OData
    "ColumnMetadata",
    "ColumnMetadataBuilder",
    "ColumnMetadataStateError",
    "EntityProvider",
    "MetadataAccessError",
    "parse_metadata",
    # Source
    "SchemaError",
    "SchemaGenerator",
    "SuccessFactorsService",
    "ODataServiceError",
]
