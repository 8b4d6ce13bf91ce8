"""Platform contact property definitions derived from the field mappings."""

from collections.abc import Iterable

from contactbridge.mapping import IDENTITY_FIELD
from contactbridge.models import FieldMapping, PropertyDefinition

DEFAULT_PROPERTY_TYPE = "text"


def build_property_definitions(mappings: Iterable[FieldMapping]) -> list[PropertyDefinition]:
    """One property per mapped platform field, except the identity field."""
    return [
        PropertyDefinition(
            name=mapping.platform.name,
            type=mapping.platform.type or DEFAULT_PROPERTY_TYPE,
        )
        for mapping in mappings
        if mapping.platform.name != IDENTITY_FIELD
    ]
