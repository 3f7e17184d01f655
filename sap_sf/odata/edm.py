"""
sap_sf.odata.edm - Parsed OData metadata model
===============================================

Read-only model of an OData v2 ``$metadata`` document.

Types are kept in an arena keyed by qualified name (``Namespace.Name``).
Navigation properties and associations reference their targets by name
instead of holding object references, so cyclic relationships between entity
types need no special handling here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union


EDM_NAMESPACE = "Edm"

# Association end multiplicity -> ordinal used by column metadata
MULTIPLICITY_ORDINALS: Dict[str, int] = {
    "0..1": 0,
    "1": 1,
    "*": 2,
}


class MetadataAccessError(RuntimeError):
    """Raised when the metadata graph references something it does not contain."""


def qualified_name(namespace: str, name: str) -> str:
    return f"{namespace}.{name}" if namespace else name


def split_qualified_name(qname: str) -> Tuple[str, str]:
    """Split ``Namespace.Name`` into its parts; namespaces may contain dots."""
    if "." not in qname:
        return "", qname
    namespace, _, name = qname.rpartition(".")
    return namespace, name


@dataclass(frozen=True)
class EdmProperty:
    """
    A structural property of an entity or complex type.

    ``annotations`` holds the ``sap:*`` attributes found on the property,
    keyed by their local name (``label``, ``display-format``, ...).
    """
    name: str
    type_name: str
    nullable: Optional[bool] = None
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    default_value: Optional[str] = None
    fixed_length: Optional[bool] = None
    unicode: Optional[bool] = None
    collation: Optional[str] = None
    concurrency_mode: Optional[str] = None
    annotations: Dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def is_simple(self) -> bool:
        return self.type_name.startswith(EDM_NAMESPACE + ".")

    @property
    def label(self) -> Optional[str]:
        return self.annotations.get("label")

    @property
    def display_format(self) -> Optional[str]:
        return self.annotations.get("display-format")

    @property
    def filter_restrictions(self) -> Optional[str]:
        return self.annotations.get("filter-restriction") or self.annotations.get(
            "filter-restrictions"
        )

    @property
    def required_in_filter(self) -> Optional[bool]:
        value = self.annotations.get("required-in-filter")
        if value is None:
            return None
        return value.strip().lower() == "true"


@dataclass(frozen=True)
class EdmNavigationProperty:
    """
    A named relationship from one entity type to another.

    ``relationship`` is the qualified association name; ``from_role`` and
    ``to_role`` name the association ends.
    """
    name: str
    relationship: str
    from_role: str
    to_role: str
    annotations: Dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def label(self) -> Optional[str]:
        return self.annotations.get("label")


@dataclass(frozen=True)
class EdmAssociationEnd:
    role: str
    type_name: str
    multiplicity: str = "1"

    @property
    def multiplicity_ordinal(self) -> Optional[int]:
        return MULTIPLICITY_ORDINALS.get(self.multiplicity)


@dataclass(frozen=True)
class EdmAssociation:
    namespace: str
    name: str
    ends: Dict[str, EdmAssociationEnd] = field(default_factory=dict, compare=False)

    @property
    def qualified_name(self) -> str:
        return qualified_name(self.namespace, self.name)

    def get_end(self, role: str) -> Optional[EdmAssociationEnd]:
        return self.ends.get(role)


@dataclass(frozen=True)
class EdmComplexType:
    namespace: str
    name: str
    properties: Tuple[EdmProperty, ...] = ()

    @property
    def qualified_name(self) -> str:
        return qualified_name(self.namespace, self.name)

    @property
    def property_names(self) -> List[str]:
        return [p.name for p in self.properties]

    def get_property(self, name: str) -> Optional[EdmProperty]:
        for p in self.properties:
            if p.name == name:
                return p
        return None


@dataclass(frozen=True)
class EdmEntityType:
    namespace: str
    name: str
    properties: Tuple[EdmProperty, ...] = ()
    navigation_properties: Tuple[EdmNavigationProperty, ...] = ()
    key_property_names: Tuple[str, ...] = ()
    annotations: Dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def qualified_name(self) -> str:
        return qualified_name(self.namespace, self.name)

    @property
    def label(self) -> Optional[str]:
        return self.annotations.get("label")

    @property
    def property_names(self) -> List[str]:
        return [p.name for p in self.properties]

    @property
    def navigation_property_names(self) -> List[str]:
        return [n.name for n in self.navigation_properties]

    def get_property(self, name: str) -> Union[EdmProperty, EdmNavigationProperty, None]:
        """Look up a structural or navigation property by name."""
        for p in self.properties:
            if p.name == name:
                return p
        for n in self.navigation_properties:
            if n.name == name:
                return n
        return None


@dataclass(frozen=True)
class EdmEntitySet:
    name: str
    entity_type_name: str
    container_name: str = ""


@dataclass(frozen=True)
class EdmEntityContainer:
    name: str
    is_default: bool = False
    entity_sets: Tuple[EdmEntitySet, ...] = ()


class Edm:
    """
    Arena of all types declared by a metadata document.

    Parameters
    ----------
    entity_types : iterable of EdmEntityType
    complex_types : iterable of EdmComplexType
    associations : iterable of EdmAssociation
    containers : iterable of EdmEntityContainer
    data_service_version : str, optional
        ``m:DataServiceVersion`` declared by the document
    """

    def __init__(
        self,
        entity_types=(),
        complex_types=(),
        associations=(),
        containers=(),
        *,
        data_service_version: Optional[str] = None,
    ) -> None:
        self._entity_types: Dict[str, EdmEntityType] = {
            t.qualified_name: t for t in entity_types
        }
        self._complex_types: Dict[str, EdmComplexType] = {
            t.qualified_name: t for t in complex_types
        }
        self._associations: Dict[str, EdmAssociation] = {
            a.qualified_name: a for a in associations
        }
        self._containers: Tuple[EdmEntityContainer, ...] = tuple(containers)
        self.data_service_version = data_service_version

    # ---------------- lookups ----------------

    @property
    def entity_types(self) -> List[EdmEntityType]:
        return list(self._entity_types.values())

    @property
    def complex_types(self) -> List[EdmComplexType]:
        return list(self._complex_types.values())

    @property
    def containers(self) -> List[EdmEntityContainer]:
        return list(self._containers)

    @property
    def entity_sets(self) -> List[EdmEntitySet]:
        """All entity sets of all containers, in document order."""
        return [es for c in self._containers for es in c.entity_sets]

    @property
    def default_entity_container(self) -> EdmEntityContainer:
        if not self._containers:
            raise MetadataAccessError("Metadata declares no entity container")
        for c in self._containers:
            if c.is_default:
                return c
        return self._containers[0]

    def entity_type(self, qname: str) -> EdmEntityType:
        try:
            return self._entity_types[qname]
        except KeyError:
            raise MetadataAccessError(f"Entity type '{qname}' is not declared") from None

    def find_entity_type(self, qname: str) -> Optional[EdmEntityType]:
        return self._entity_types.get(qname)

    def complex_type(self, namespace: str, name: str) -> Optional[EdmComplexType]:
        return self._complex_types.get(qualified_name(namespace, name))

    def find_complex_type(self, qname: str) -> Optional[EdmComplexType]:
        return self._complex_types.get(qname)

    def association(self, qname: str) -> EdmAssociation:
        try:
            return self._associations[qname]
        except KeyError:
            raise MetadataAccessError(f"Association '{qname}' is not declared") from None

    def entity_set_type(self, entity_set: EdmEntitySet) -> EdmEntityType:
        return self.entity_type(entity_set.entity_type_name)

    def relationship_end(self, nav: EdmNavigationProperty, role: str) -> EdmAssociationEnd:
        end = self.association(nav.relationship).get_end(role)
        if end is None:
            raise MetadataAccessError(
                f"Association '{nav.relationship}' has no end with role '{role}'"
            )
        return end

    def relationship_end_type(self, nav: EdmNavigationProperty, role: str) -> EdmEntityType:
        """Follow ``nav``'s association to the entity type playing ``role``."""
        return self.entity_type(self.relationship_end(nav, role).type_name)
