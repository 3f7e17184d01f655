"""
sap_sf.odata - OData metadata handling
=======================================

- parse_metadata: $metadata (EDMX) parsing into an Edm arena
- EntityProvider: Entity, navigation and complex type lookups
- ColumnMetadata / ColumnMetadataBuilder: Column metadata tree

"""

from sap_sf.odata.edm import Edm, MetadataAccessError
from sap_sf.odata.metadata import MetadataParseError, parse_metadata
from sap_sf.odata.entity_provider import EntityProvider
from sap_sf.odata.column_metadata import (
    ColumnMetadata,
    ColumnMetadataBuilder,
    ColumnMetadataStateError,
)

__all__ = [
    "Edm",
    "MetadataAccessError",
    "MetadataParseError",
    "parse_metadata",
    "EntityProvider",
    "ColumnMetadata",
    "ColumnMetadataBuilder",
    "ColumnMetadataStateError",
]
