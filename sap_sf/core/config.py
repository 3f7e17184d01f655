"""
sap_sf.core.config - Source configuration
==========================================

Pydantic model for the properties a pipeline passes to the SuccessFactors
source. Values can also be read from ``SF_*`` environment variables (and a
``.env`` file).
"""

from __future__ import annotations

import os
from typing import List, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


DEFAULT_PAGE_SIZE = 1000


def split_option(value: Optional[str]) -> List[str]:
    """Split a comma separated ``$select`` / ``$expand`` value into trimmed items."""
    if not value:
        return []
    return [s.strip() for s in value.split(",") if s and s.strip()]


def _parse_verify(value: Optional[str]) -> Union[bool, str]:
    """``true`` / ``false`` toggle TLS verification; anything else is a CA bundle path."""
    if value is None or not value.strip():
        return True
    v = value.strip()
    if v.lower() in ("true", "1", "yes"):
        return True
    if v.lower() in ("false", "0", "no"):
        return False
    return v


class SuccessFactorsConfig(BaseModel):
    """
    Configuration of a SuccessFactors entity extraction.

    Examples
    --------
    >>> cfg = SuccessFactorsConfig(
    ...     base_url="https://apisalesdemo2.successfactors.eu/odata/v2",
    ...     entity_name="User",
    ...     username="admin@SFPART000000",
    ...     password="secret",
    ...     select_option="userId,manager/userId",
    ... )
    >>> cfg.select_fields
    ['userId', 'manager/userId']
    """

    base_url: str = Field(
        description="SuccessFactors OData root URL, e.g. https://host/odata/v2",
        json_schema_extra={"example": "https://apisalesdemo2.successfactors.eu/odata/v2"},
    )
    entity_name: str = Field(
        description="Entity set to extract, e.g. User",
        json_schema_extra={"example": "User"},
    )
    username: str = Field(description="User for basic auth, usually user@companyId")
    password: str = Field(description="Password for basic auth", repr=False)
    filter_option: Optional[str] = Field(default=None, description="Raw $filter expression")
    select_option: Optional[str] = Field(default=None, description="Comma separated $select")
    expand_option: Optional[str] = Field(default=None, description="Comma separated $expand")
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0, description="Records per page ($top)")
    verify: Union[bool, str] = Field(default=True, description="SSL verification or CA bundle path")

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v

    @field_validator("entity_name", "username", "password")
    @classmethod
    def _check_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("filter_option", "select_option", "expand_option")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def select_fields(self) -> List[str]:
        return split_option(self.select_option)

    @property
    def expand_fields(self) -> List[str]:
        return split_option(self.expand_option)

    @classmethod
    def from_env(cls, **overrides) -> "SuccessFactorsConfig":
        """
        Build the configuration from ``SF_*`` environment variables.

        A ``.env`` file in the working directory is loaded first. Keyword
        arguments take precedence over the environment.
        """
        load_dotenv()
        values = {
            "base_url": os.environ.get("SF_BASE_URL", ""),
            "entity_name": os.environ.get("SF_ENTITY", ""),
            "username": os.environ.get("SF_USER", ""),
            "password": os.environ.get("SF_PASS", ""),
            "filter_option": os.environ.get("SF_FILTER"),
            "select_option": os.environ.get("SF_SELECT"),
            "expand_option": os.environ.get("SF_EXPAND"),
            "page_size": os.environ.get("SF_PAGE_SIZE", str(DEFAULT_PAGE_SIZE)),
            "verify": _parse_verify(os.environ.get("SF_VERIFY_TLS")),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
