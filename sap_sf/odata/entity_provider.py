"""
sap_sf.odata.entity_provider - Lookups over parsed service metadata
====================================================================

Reusable read-only functions over a parsed :class:`Edm`:

- entity set / entity type by name
- property list of an entity type
- navigation property along an expand path
- complex type by namespace and name

Lookups that find nothing return ``None``. Only a broken metadata graph
raises (:class:`~sap_sf.odata.edm.MetadataAccessError`).
"""

from __future__ import annotations

from typing import List, Optional
import logging

from sap_sf.odata.edm import (
    Edm,
    EdmComplexType,
    EdmEntitySet,
    EdmEntityType,
    EdmNavigationProperty,
)


logger = logging.getLogger("sap_sf.metadata")


def _is_not_null_or_empty(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


class EntityProvider:
    """
    Metadata lookups for a single SuccessFactors service.

    Holds a reference to the parsed metadata for the duration of a pipeline
    configuration or run. Safe for concurrent reads.

    Parameters
    ----------
    edm : Edm
        Parsed metadata document

    Examples
    --------
    >>> provider = EntityProvider(parse_metadata(xml_text))
    >>> provider.get_entity_property_list(provider.get_entity_type("User"))
    ['userId', 'username', ...]
    >>> provider.get_navigation_property("User", "manager/hr").name
    'hr'
    """

    def __init__(self, edm: Edm) -> None:
        self.edm = edm

    def get_entity_set(self, entity_name: Optional[str]) -> Optional[EdmEntitySet]:
        """
        Find the entity set with exactly the given name (case-sensitive).

        Returns
        -------
        EdmEntitySet or None
        """
        if _is_not_null_or_empty(entity_name):
            for entity_set in self.edm.entity_sets:
                if entity_set.name == entity_name:
                    return entity_set
        return None

    def get_entity_type(self, entity_name: Optional[str]) -> Optional[EdmEntityType]:
        entity_set = self.get_entity_set(entity_name)
        if entity_set is not None:
            return self.edm.entity_set_type(entity_set)

        logger.debug("Could not find entity: %s", entity_name)
        return None

    def get_entity_property_list(self, entity_type: Optional[EdmEntityType]) -> Optional[List[str]]:
        """Property names of the entity type, in declared order."""
        if entity_type is not None:
            return entity_type.property_names
        return None

    def get_default_entity_set(self) -> List[EdmEntitySet]:
        """Entity sets of the service's default entity container."""
        return list(self.edm.default_entity_container.entity_sets)

    def get_key_property_names(self, entity_name: Optional[str]) -> List[str]:
        entity_type = self.get_entity_type(entity_name)
        return list(entity_type.key_property_names) if entity_type is not None else []

    def get_navigation_property(
        self,
        entity_name: Optional[str],
        nav_path: Optional[str],
    ) -> Optional[EdmNavigationProperty]:
        """
        Find the last navigation property of the given expand path.

        The path is split on ``/``. Each segment naming a navigation property
        of the current entity type moves the current type to that
        relationship's target. Segments that are not navigation properties of
        the current type are skipped without moving the current type.

        Only the navigation property of the last resolved hop is returned;
        earlier hops are used to find the type the next segment belongs to.

        Parameters
        ----------
        entity_name : str
            Entity set name
        nav_path : str
            Navigation property name or path, e.g. ``"manager/hr"``

        Returns
        -------
        EdmNavigationProperty or None
            None when inputs are empty, the entity is unknown, or no segment
            resolves
        """
        if _is_not_null_or_empty(entity_name) and _is_not_null_or_empty(nav_path):
            entity_type = self.get_entity_type(entity_name)
            if entity_type is not None:
                association: Optional[EdmNavigationProperty] = None
                for name in nav_path.split("/"):
                    if name in entity_type.navigation_property_names:
                        nav_property = entity_type.get_property(name)
                        entity_type = self.edm.relationship_end_type(nav_property, nav_property.to_role)
                        association = nav_property
                return association

        logger.debug(
            "Entity name: '%s' and Expand path: '%s', navigation property is not found in the "
            "given expand path. Root cause: null / empty or invalid entity name or expand path "
            "was provided.",
            entity_name, nav_path,
        )
        return None

    def extract_entity_type_from_navigation_property(
        self,
        nav_property: Optional[EdmNavigationProperty],
    ) -> Optional[EdmEntityType]:
        """Entity type at the ``to_role`` end of the navigation property."""
        if nav_property is not None:
            return self.edm.relationship_end_type(nav_property, nav_property.to_role)

        logger.debug(
            "Could not extract the entity type from the given navigation property. "
            "Root cause: no navigation property was passed."
        )
        return None

    def get_complex_type(
        self,
        namespace: Optional[str],
        property_name: Optional[str],
    ) -> Optional[EdmComplexType]:
        if _is_not_null_or_empty(namespace) and _is_not_null_or_empty(property_name):
            return self.edm.complex_type(namespace, property_name)

        logger.debug(
            "Namespace: '%s' and Complex property name: '%s', no complex type found. "
            "Root cause: null / empty or invalid namespace or complex property name provided.",
            namespace, property_name,
        )
        return None

    def get_navigation_property_entity_type(
        self,
        entity_name: Optional[str],
        nav_path: Optional[str],
    ) -> Optional[EdmEntityType]:
        nav_property = self.get_navigation_property(entity_name, nav_path)
        return self.extract_entity_type_from_navigation_property(nav_property)
