"""
sap_sf.odata.metadata - OData $metadata parsing
================================================

Parser for OData v2 ``$metadata`` (EDMX) documents as served by SAP
SuccessFactors. Produces an :class:`~sap_sf.odata.edm.Edm` arena.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Union
import logging
import xml.etree.ElementTree as ET

from sap_sf.odata.edm import (
    Edm,
    EdmAssociation,
    EdmAssociationEnd,
    EdmComplexType,
    EdmEntityContainer,
    EdmEntitySet,
    EdmEntityType,
    EdmNavigationProperty,
    EdmProperty,
    MetadataAccessError,
)


SAP_NS = "http://www.sap.com/Protocols/SAPData"
METADATA_NS = "http://schemas.microsoft.com/ado/2007/08/dataservices/metadata"

logger = logging.getLogger("sap_sf.metadata")


class MetadataParseError(MetadataAccessError):
    """Raised when a metadata document cannot be read."""


def _strip_ns(tag: str) -> str:
    """Strip XML namespace from a tag name."""
    return tag.split("}", 1)[-1] if "}" in tag else tag


def _ns_of(tag: str) -> str:
    return tag[1:].split("}", 1)[0] if tag.startswith("{") else ""


def _children(node: ET.Element, local_name: str) -> List[ET.Element]:
    return [c for c in node if _strip_ns(c.tag) == local_name]


def _as_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.strip().lower() == "true"


def _as_int(value: Optional[str]) -> Optional[int]:
    # MaxLength may be "Max"
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _sap_annotations(node: ET.Element) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for key, value in node.attrib.items():
        if _ns_of(key) == SAP_NS:
            out[_strip_ns(key)] = value
    return out


def _parse_property(node: ET.Element) -> EdmProperty:
    a = node.attrib
    return EdmProperty(
        name=a["Name"],
        type_name=a.get("Type", "Edm.String"),
        nullable=_as_bool(a.get("Nullable")),
        max_length=_as_int(a.get("MaxLength")),
        precision=_as_int(a.get("Precision")),
        scale=_as_int(a.get("Scale")),
        default_value=a.get("DefaultValue"),
        fixed_length=_as_bool(a.get("FixedLength")),
        unicode=_as_bool(a.get("Unicode")),
        collation=a.get("Collation"),
        concurrency_mode=a.get("ConcurrencyMode"),
        annotations=_sap_annotations(node),
    )


def _parse_properties(node: ET.Element) -> List[EdmProperty]:
    return [_parse_property(p) for p in _children(node, "Property") if p.attrib.get("Name")]


def _parse_entity_type(node: ET.Element, namespace: str) -> EdmEntityType:
    keys: List[str] = []
    for key in _children(node, "Key"):
        for ref in _children(key, "PropertyRef"):
            if ref.attrib.get("Name"):
                keys.append(ref.attrib["Name"])

    navs = [
        EdmNavigationProperty(
            name=n.attrib["Name"],
            relationship=n.attrib.get("Relationship", ""),
            from_role=n.attrib.get("FromRole", ""),
            to_role=n.attrib.get("ToRole", ""),
            annotations=_sap_annotations(n),
        )
        for n in _children(node, "NavigationProperty")
        if n.attrib.get("Name")
    ]

    return EdmEntityType(
        namespace=namespace,
        name=node.attrib["Name"],
        properties=tuple(_parse_properties(node)),
        navigation_properties=tuple(navs),
        key_property_names=tuple(keys),
        annotations=_sap_annotations(node),
    )


def _parse_association(node: ET.Element, namespace: str) -> EdmAssociation:
    ends: Dict[str, EdmAssociationEnd] = {}
    for end in _children(node, "End"):
        role = end.attrib.get("Role")
        if not role:
            continue
        ends[role] = EdmAssociationEnd(
            role=role,
            type_name=end.attrib.get("Type", ""),
            multiplicity=end.attrib.get("Multiplicity", "1"),
        )
    return EdmAssociation(namespace=namespace, name=node.attrib["Name"], ends=ends)


def _parse_container(node: ET.Element) -> EdmEntityContainer:
    name = node.attrib.get("Name", "")
    sets = [
        EdmEntitySet(
            name=es.attrib["Name"],
            entity_type_name=es.attrib["EntityType"],
            container_name=name,
        )
        for es in _children(node, "EntitySet")
        if es.attrib.get("Name") and es.attrib.get("EntityType")
    ]
    return EdmEntityContainer(
        name=name,
        is_default=bool(_as_bool(node.attrib.get(f"{{{METADATA_NS}}}IsDefaultEntityContainer"))),
        entity_sets=tuple(sets),
    )


def parse_metadata(document: Union[str, bytes]) -> Edm:
    """
    Parse an EDMX ``$metadata`` document.

    Parameters
    ----------
    document : str or bytes
        Raw XML as returned by the service

    Returns
    -------
    Edm
        The parsed type arena

    Raises
    ------
    MetadataParseError
        If the document is not well-formed XML or has no schema
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise MetadataParseError(f"Could not read metadata document: {e}") from e

    version: Optional[str] = None
    for node in root.iter():
        if _strip_ns(node.tag) == "DataServices":
            version = node.attrib.get(f"{{{METADATA_NS}}}DataServiceVersion")
            break

    schemas = [node for node in root.iter() if _strip_ns(node.tag) == "Schema"]
    if not schemas:
        raise MetadataParseError("Metadata document contains no Schema element")

    entity_types: List[EdmEntityType] = []
    complex_types: List[EdmComplexType] = []
    associations: List[EdmAssociation] = []
    containers: List[EdmEntityContainer] = []

    for schema in schemas:
        namespace = schema.attrib.get("Namespace", "")
        for node in schema:
            tag = _strip_ns(node.tag)
            if not node.attrib.get("Name") and tag != "EntityContainer":
                continue
            if tag == "EntityType":
                entity_types.append(_parse_entity_type(node, namespace))
            elif tag == "ComplexType":
                complex_types.append(
                    EdmComplexType(
                        namespace=namespace,
                        name=node.attrib["Name"],
                        properties=tuple(_parse_properties(node)),
                    )
                )
            elif tag == "Association":
                associations.append(_parse_association(node, namespace))
            elif tag == "EntityContainer":
                containers.append(_parse_container(node))

    logger.debug(
        "Parsed metadata: %s entity types, %s complex types, %s associations, %s containers",
        len(entity_types), len(complex_types), len(associations), len(containers),
    )
    return Edm(
        entity_types,
        complex_types,
        associations,
        containers,
        data_service_version=version,
    )
