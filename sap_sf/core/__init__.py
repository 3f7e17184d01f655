"""
sap_sf.core - Core connectivity and configuration
==================================================

This module provides the foundational classes for connecting to SAP
SuccessFactors:

- SuccessFactorsTransporter: Authenticated HTTP calls with retry on 5xx
- ResponseContainer: Immutable outcome of a single call
- SuccessFactorsConfig: Extraction configuration (pydantic)
- ConnectionContext: High-level connection manager

"""

from sap_sf.core.transport import (
    ResponseContainer,
    RetryExhaustedError,
    RetryPolicy,
    SuccessFactorsTransporter,
    TransportError,
)

from sap_sf.core.config import SuccessFactorsConfig
from sap_sf.core.connection import ConnectionContext

__all__ = [
    "ResponseContainer",
    "RetryExhaustedError",
    "RetryPolicy",
    "SuccessFactorsTransporter",
    "TransportError",
    "SuccessFactorsConfig",
    "ConnectionContext",
]
