"""
sap_sf.source.schema - Output schema generation
================================================

Walks the metadata of an entity and builds its column metadata tree:

- default schema: every property of the entity
- selected schema: only the ``$select`` columns, ``Nav/Prop`` nested under ``Nav``
- expanded schema: every property plus the ``$expand`` navigation paths
"""

from __future__ import annotations

from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple
import logging

from sap_sf.odata.column_metadata import (
    KIND_COMPLEX,
    KIND_NAVIGATION,
    KIND_SIMPLE,
    ColumnMetadata,
    ColumnMetadataBuilder,
)
from sap_sf.odata.edm import (
    EdmAssociationEnd,
    EdmEntityType,
    EdmNavigationProperty,
    EdmProperty,
    MetadataAccessError,
)
from sap_sf.odata.entity_provider import EntityProvider


logger = logging.getLogger("sap_sf.schema")

DEFAULT_MAX_EXPAND_DEPTH = 10


class SchemaError(ValueError):
    """Raised when the requested entity, select or expand cannot be mapped to columns."""


def _append_unique(node: ColumnMetadataBuilder, child: ColumnMetadataBuilder) -> None:
    for existing in node.get_child_list():
        if existing.name == child.name:
            return
    node.append_child(child)


class SchemaGenerator:
    """
    Builds column metadata trees for SuccessFactors entities.

    Parameters
    ----------
    provider : EntityProvider
        Metadata lookups for the service
    max_expand_depth : int
        Maximum number of hops in an expand or select path. Navigation
        relationships may be cyclic (``User/manager/manager/...``), the
        limit keeps user supplied paths bounded.

    Examples
    --------
    >>> gen = SchemaGenerator(provider)
    >>> columns = gen.build_expanded_output_schema("User", ["manager"])
    >>> [c.name for c in columns]
    ['userId', 'username', 'homeAddress', 'manager']
    """

    def __init__(self, provider: EntityProvider, *, max_expand_depth: int = DEFAULT_MAX_EXPAND_DEPTH) -> None:
        self.provider = provider
        self.edm = provider.edm
        self.max_expand_depth = max_expand_depth

    # ---------------- public ops ----------------

    def build_output_schema(
        self,
        entity_name: str,
        select: Optional[Sequence[str]] = None,
        expand: Optional[Sequence[str]] = None,
    ) -> List[ColumnMetadata]:
        """Pick the selected, expanded or default schema from the given options."""
        if select:
            return self.build_selected_output_schema(entity_name, select)
        if expand:
            return self.build_expanded_output_schema(entity_name, expand)
        return self.build_default_output_schema(entity_name)

    def build_default_output_schema(self, entity_name: str) -> List[ColumnMetadata]:
        root, entity_type = self._root(entity_name)
        self._append_properties(root, entity_type)
        return self._finish(root)

    def build_selected_output_schema(self, entity_name: str, select: Sequence[str]) -> List[ColumnMetadata]:
        """
        Columns for a ``$select`` list.

        A plain name selects a property of the entity, or all properties of
        a navigation target. ``Nav/Prop`` selects ``Prop`` of the entity
        reached through ``Nav`` and nests it under the ``Nav`` column.

        Raises
        ------
        SchemaError
            If the entity is unknown or any selected column does not exist
        """
        root, entity_type = self._root(entity_name)
        nav_nodes: Dict[str, Tuple[ColumnMetadataBuilder, EdmEntityType]] = {}
        missing: List[str] = []

        for item in select:
            item = item.strip()
            if not item:
                continue
            segments = item.split("/")
            if len(segments) == 1:
                prop = entity_type.get_property(item)
                if isinstance(prop, EdmProperty):
                    _append_unique(root, self._property_column(prop))
                elif isinstance(prop, EdmNavigationProperty):
                    self._expand_path(root, entity_type, segments, nav_nodes, with_properties=True)
                else:
                    missing.append(item)
                continue

            found = self._expand_path(root, entity_type, segments[:-1], nav_nodes, with_properties=False)
            if found is None:
                missing.append(item)
                continue
            node, target_type = found
            leaf = segments[-1]
            if leaf == "*":
                self._append_properties(node, target_type)
                continue
            prop = target_type.get_property(leaf)
            if isinstance(prop, EdmProperty):
                _append_unique(node, self._property_column(prop))
            elif isinstance(prop, EdmNavigationProperty):
                self._expand_path(root, entity_type, segments, nav_nodes, with_properties=True)
            else:
                missing.append(item)

        if missing:
            raise SchemaError(
                f"Selected column(s) not found in entity '{entity_name}': {', '.join(missing)}"
            )
        return self._finish(root)

    def build_expanded_output_schema(self, entity_name: str, expand: Sequence[str]) -> List[ColumnMetadata]:
        """
        Every property of the entity plus one nested column per expand hop.

        ``A/B`` nests ``B`` under ``A``; both carry all their properties.
        Expand paths that resolve to no navigation property are skipped.
        """
        root, entity_type = self._root(entity_name)
        self._append_properties(root, entity_type)
        nav_nodes: Dict[str, Tuple[ColumnMetadataBuilder, EdmEntityType]] = {}

        for path in expand:
            path = path.strip()
            if not path:
                continue
            if self.provider.get_navigation_property(entity_name, path) is None:
                logger.warning("Expand path '%s' is not valid for entity '%s', skipping it", path, entity_name)
                continue
            segments = path.split("/")
            for i in range(1, len(segments) + 1):
                self._expand_path(root, entity_type, segments[:i], nav_nodes, with_properties=True)

        return self._finish(root)

    # ---------------- tree building ----------------

    def _root(self, entity_name: str) -> Tuple[ColumnMetadataBuilder, EdmEntityType]:
        entity_type = self.provider.get_entity_type(entity_name)
        if entity_type is None:
            raise SchemaError(f"Entity '{entity_name}' not found in the service metadata")
        return ColumnMetadataBuilder(entity_name, entity_type.qualified_name), entity_type

    def _finish(self, root: ColumnMetadataBuilder) -> List[ColumnMetadata]:
        if not root.contains_child():
            raise SchemaError(f"No columns found for entity '{root.name}'")
        columns = list(root.finalize_children().get_child_list())
        logger.debug("Built %s columns for entity '%s'", len(columns), root.name)
        return columns

    def _append_properties(self, node: ColumnMetadataBuilder, owner) -> None:
        for prop in owner.properties:
            _append_unique(node, self._property_column(prop))

    def _property_column(
        self,
        prop: EdmProperty,
        visited: FrozenSet[str] = frozenset(),
    ) -> ColumnMetadataBuilder:
        options = dict(
            collation=prop.collation,
            concurrency_mode_name=prop.concurrency_mode,
            default_value=prop.default_value,
            max_length=prop.max_length,
            precision=prop.precision,
            scale=prop.scale,
            is_nullable=prop.nullable,
            is_fixed_length=prop.fixed_length,
            is_unicode=prop.unicode,
            display_format=prop.display_format,
            filter_restrictions=prop.filter_restrictions,
            required_in_filter=prop.required_in_filter,
            label=prop.label,
        )
        if prop.is_simple:
            return ColumnMetadataBuilder(prop.name, prop.type_name, kind_name=KIND_SIMPLE, **options)

        complex_type = self.edm.find_complex_type(prop.type_name)
        if complex_type is None:
            raise MetadataAccessError(
                f"Property '{prop.name}' has undeclared type '{prop.type_name}'"
            )

        node = ColumnMetadataBuilder(prop.name, prop.type_name, kind_name=KIND_COMPLEX, **options)
        if complex_type.qualified_name in visited:
            logger.debug("Complex type '%s' nests itself, not descending further", prop.type_name)
            return node
        nested = visited | {complex_type.qualified_name}
        for child in complex_type.properties:
            node.append_child(self._property_column(child, nested))
        return node

    def _navigation_column(self, nav: EdmNavigationProperty, end: EdmAssociationEnd) -> ColumnMetadataBuilder:
        return ColumnMetadataBuilder(
            nav.name,
            end.type_name,
            kind_name=KIND_NAVIGATION,
            multiplicity_ordinal=end.multiplicity_ordinal,
            label=nav.label,
        )

    def _expand_path(
        self,
        root: ColumnMetadataBuilder,
        entity_type: EdmEntityType,
        segments: Sequence[str],
        nav_nodes: Dict[str, Tuple[ColumnMetadataBuilder, EdmEntityType]],
        *,
        with_properties: bool,
    ) -> Optional[Tuple[ColumnMetadataBuilder, EdmEntityType]]:
        """
        Create (or reuse) the nested navigation columns for ``segments``.

        Segments that are not navigation properties of the current type are
        skipped, as in :meth:`EntityProvider.get_navigation_property`.
        Returns the last column and its entity type, or None if no segment
        resolved.
        """
        if len(segments) > self.max_expand_depth:
            raise SchemaError(
                f"Path '{'/'.join(segments)}' exceeds the maximum depth of {self.max_expand_depth}"
            )

        current_type = entity_type
        parent = root
        key = ""
        found: Optional[Tuple[ColumnMetadataBuilder, EdmEntityType]] = None

        for segment in segments:
            nav = current_type.get_property(segment)
            if not isinstance(nav, EdmNavigationProperty):
                continue
            key = f"{key}/{segment}" if key else segment
            found = nav_nodes.get(key)
            if found is None:
                end = self.edm.relationship_end(nav, nav.to_role)
                found = (self._navigation_column(nav, end), self.edm.entity_type(end.type_name))
                nav_nodes[key] = found
                parent.append_child(found[0])
            parent, current_type = found

        if found is not None and with_properties:
            self._append_properties(found[0], found[1])
        return found
