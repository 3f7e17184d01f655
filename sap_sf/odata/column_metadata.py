"""
sap_sf.odata.column_metadata - Column metadata tree
====================================================

Description of one entity property (or sub-property) in the output schema.

Trees are built in two phases:

1. :class:`ColumnMetadataBuilder` collects children while the schema walk
   discovers them, in discovery order.
2. :meth:`ColumnMetadataBuilder.finalize_children` freezes the whole subtree
   into immutable :class:`ColumnMetadata` values.

A builder can be finalized once. Appending to it or finalizing it again
raises :class:`ColumnMetadataStateError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, List, Optional, Tuple, Union


KIND_SIMPLE = "simple"
KIND_COMPLEX = "complex"
KIND_NAVIGATION = "navigation"


class ColumnMetadataStateError(RuntimeError):
    """Raised when a finalized column subtree is modified."""


@dataclass(frozen=True)
class ColumnMetadata:
    """
    Immutable description of one output column.

    Attributes
    ----------
    name : str
        Property name
    type : str
        EDM type name, e.g. ``Edm.String``
    is_nullable : bool
        Defaults to True when unspecified
    is_fixed_length : bool
        Defaults to False when unspecified
    is_unicode : bool
        Defaults to False when unspecified
    kind_name : str, optional
        ``simple``, ``complex`` or ``navigation``
    multiplicity_ordinal : int, optional
        0 for ``0..1``, 1 for ``1``, 2 for ``*`` (navigation columns only)
    display_format, filter_restrictions, required_in_filter, label
        SAP specific annotations
    children : tuple of ColumnMetadata
        Nested columns, in discovery order
    """
    name: str
    type: str
    collation: Optional[str] = None
    concurrency_mode_name: Optional[str] = None
    default_value: Optional[str] = None
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    is_nullable: bool = True
    is_fixed_length: bool = False
    is_unicode: bool = False
    kind_name: Optional[str] = None
    multiplicity_ordinal: Optional[int] = None
    display_format: Optional[str] = None
    filter_restrictions: Optional[str] = None
    required_in_filter: bool = False
    label: Optional[str] = None
    children: Tuple["ColumnMetadata", ...] = field(default=())

    def get_child_list(self) -> Tuple["ColumnMetadata", ...]:
        return self.children

    def contains_child(self) -> bool:
        return len(self.children) > 0

    def find_child(self, name: str) -> Optional["ColumnMetadata"]:
        for child in self.children:
            if child.name == name:
                return child
        return None


_OPTION_NAMES = frozenset(f.name for f in fields(ColumnMetadata)) - {"name", "type", "children"}

# None means "unspecified" and falls back to these
_FLAG_DEFAULTS = {
    "is_nullable": True,
    "is_fixed_length": False,
    "is_unicode": False,
    "required_in_filter": False,
}


class ColumnMetadataBuilder:
    """
    Mutable column node used during the schema walk.

    Parameters
    ----------
    name : str
        Property name
    type : str
        EDM type name
    **options
        Any optional :class:`ColumnMetadata` attribute. ``None`` values mean
        "unspecified" and take the attribute's default.

    Examples
    --------
    >>> address = ColumnMetadataBuilder("address", "SFOData.Address", kind_name="complex")
    >>> address.append_child(ColumnMetadataBuilder("city", "Edm.String"))
    >>> column = address.finalize_children()
    >>> [c.name for c in column.get_child_list()]
    ['city']
    """

    def __init__(self, name: str, type: str, **options: Any) -> None:
        unknown = set(options) - _OPTION_NAMES
        if unknown:
            raise TypeError(f"Unknown column metadata option(s): {', '.join(sorted(unknown))}")
        if not name or not type:
            raise ValueError("Column metadata requires a name and a type")

        self.name = name
        self.type = type
        self._options = {k: v for k, v in options.items() if v is not None}
        self._children: List[Union["ColumnMetadataBuilder", ColumnMetadata]] = []
        self._finalized: Optional[ColumnMetadata] = None

    def __getattr__(self, item: str) -> Any:
        # Read access to options while building, e.g. builder.kind_name
        if item in _OPTION_NAMES:
            return self._options.get(item, _FLAG_DEFAULTS.get(item))
        raise AttributeError(item)

    def __repr__(self) -> str:
        return f"ColumnMetadataBuilder(name={self.name!r}, type={self.type!r}, children={len(self._children)})"

    @property
    def is_finalized(self) -> bool:
        return self._finalized is not None

    def append_child(self, child: Union["ColumnMetadataBuilder", ColumnMetadata, None]) -> None:
        """
        Add a child after the existing ones. ``None`` is ignored.

        Raises
        ------
        ColumnMetadataStateError
            If this node was already finalized
        """
        if self._finalized is not None:
            raise ColumnMetadataStateError(
                f"No more children can be added to column '{self.name}', "
                "'finalize_children' was already called on it."
            )
        if child is not None:
            self._children.append(child)

    def get_child_list(self) -> Tuple[Union["ColumnMetadataBuilder", ColumnMetadata], ...]:
        return tuple(self._children)

    def contains_child(self) -> bool:
        return len(self._children) > 0

    def finalize_children(self) -> ColumnMetadata:
        """
        Freeze this node and every nested child builder.

        Returns
        -------
        ColumnMetadata
            Immutable tree rooted at this node

        Raises
        ------
        ColumnMetadataStateError
            If called a second time, or if a child builder was already
            finalized elsewhere
        """
        if self._finalized is not None:
            raise ColumnMetadataStateError(
                f"Column '{self.name}' was already finalized."
            )

        children = tuple(
            c.finalize_children() if isinstance(c, ColumnMetadataBuilder) else c
            for c in self._children
        )
        values = dict(_FLAG_DEFAULTS)
        values.update(self._options)
        self._finalized = ColumnMetadata(name=self.name, type=self.type, children=children, **values)
        return self._finalized
