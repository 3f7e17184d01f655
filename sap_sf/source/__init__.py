"""
sap_sf.source - SuccessFactors batch source
============================================

- SchemaGenerator: Output column trees for an entity, select and expand
- SuccessFactorsService: Metadata, record count and paginated records

"""

from sap_sf.source.schema import SchemaError, SchemaGenerator
from sap_sf.source.service import (
    InvalidCredentialsError,
    ODataServiceError,
    ResourceNotFoundError,
    SuccessFactorsService,
    UnsupportedVersionError,
)

__all__ = [
    "SchemaError",
    "SchemaGenerator",
    "SuccessFactorsService",
    "ODataServiceError",
    "InvalidCredentialsError",
    "ResourceNotFoundError",
    "UnsupportedVersionError",
]
