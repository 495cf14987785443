"""
Reconstruction of the ranked ice categories from a flat field namespace.

**Conceptual**: In the ASPeCt text format the three ice categories of an
observation are spread over indexed column names of the shape
`ice_observations.<n>.<attribute>` (n = 1, 2, 3 for primary, secondary,
tertiary). This module maps those names onto IceCategory objects through an
explicit, finite descriptor table. Names not in the table are ignored.

**Presence rule**: a slot is emitted only when, after validation, it has a
concentration or a non-empty type. Anything else (no fields at all, or only
secondary attributes such as snow type) leaves the slot absent. This keeps the
invariant that an IceCategory is never allocated with every field blank.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional

from src.models.observation import IceCategory, IceSlot
from src.validation.fields import (
    NON_NEGATIVE,
    PERCENT_RANGE,
    TENTHS_RANGE,
    optional_bounded_number,
    optional_text,
)


ICE_FIELD_PREFIX = "ice_observations"


def _number(bounds) -> Callable[[Optional[str]], Optional[float]]:
    minimum, maximum = bounds
    return lambda raw: optional_bounded_number(raw, minimum, maximum)


@dataclass(frozen=True)
class IceAttributeField:
    """
    Descriptor for one per-category attribute.

    Attributes:
        source_name: Attribute suffix in the file (after `ice_observations.<n>.`).
        target: Name of the IceCategory attribute it populates.
        convert: Raw text -> typed value (None when absent or invalid).
    """
    source_name: str
    target: str
    convert: Callable[[Optional[str]], object]


ICE_ATTRIBUTE_FIELDS: List[IceAttributeField] = [
    IceAttributeField("ice_concentration", "ice_concentration", _number(TENTHS_RANGE)),
    IceAttributeField("ice_type", "ice_type", optional_text),
    IceAttributeField("ice_thickness", "ice_thickness", optional_text),
    IceAttributeField("floe_size", "floe_size", optional_text),
    IceAttributeField("topography", "topography", optional_text),
    IceAttributeField("snow_type", "snow_type", optional_text),
    IceAttributeField("snow_thickness", "snow_thickness", optional_text),
    IceAttributeField("brown_ice", "brown_ice", optional_text),
    IceAttributeField("melt_pond_areal_coverage", "melt_pond_coverage", _number(PERCENT_RANGE)),
    IceAttributeField("melt_pond_depth", "melt_pond_depth", _number(NON_NEGATIVE)),
    IceAttributeField("melt_pond_length_1", "melt_pond_length_1", _number(NON_NEGATIVE)),
    IceAttributeField("melt_pond_length_2", "melt_pond_length_2", _number(NON_NEGATIVE)),
]


def ice_field_name(slot: IceSlot, attribute: str) -> str:
    """Full column name, e.g. ice_field_name(IceSlot.PRIMARY, "ice_type")."""
    return f"{ICE_FIELD_PREFIX}.{slot.value}.{attribute}"


# Every recognised per-category column name, in canonical order
ICE_FIELD_NAMES: List[str] = [
    ice_field_name(slot, descriptor.source_name)
    for slot in IceSlot
    for descriptor in ICE_ATTRIBUTE_FIELDS
]


def assemble_ice_category(slot: IceSlot, fields: Mapping[str, str]) -> Optional[IceCategory]:
    """
    Build the category for one slot, or None when the slot is absent.

    Args:
        slot: Which of the three categories to build.
        fields: Flat mapping of column name -> raw value for one row.

    Returns:
        IceCategory with every present attribute copied through, or None when
        neither a valid concentration nor a type is present.
    """
    values: Dict[str, object] = {}
    for descriptor in ICE_ATTRIBUTE_FIELDS:
        value = descriptor.convert(fields.get(ice_field_name(slot, descriptor.source_name)))
        if value is not None:
            values[descriptor.target] = value

    category = IceCategory(**values)
    if category.is_blank():
        return None
    return category


def assemble_ice_categories(fields: Mapping[str, str]) -> Dict[IceSlot, IceCategory]:
    """
    Build every present category of one row.

    Returns:
        Mapping containing only the slots that exist, e.g.
        {IceSlot.PRIMARY: IceCategory(ice_concentration=5.0)}.
    """
    categories: Dict[IceSlot, IceCategory] = {}
    for slot in IceSlot:
        category = assemble_ice_category(slot, fields)
        if category is not None:
            categories[slot] = category
    return categories


def ice_category_fields(slot: IceSlot, category: IceCategory) -> Dict[str, object]:
    """
    Flatten a category back to its indexed column names.

    Inverse of assemble_ice_category; used by the structured ASPeCt encoder.
    Unset attributes map to None.
    """
    flattened: Dict[str, object] = {}
    for descriptor in ICE_ATTRIBUTE_FIELDS:
        value = getattr(category, descriptor.target)
        flattened[ice_field_name(slot, descriptor.source_name)] = value if value != "" else None
    return flattened
