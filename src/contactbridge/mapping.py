"""Bidirectional field mapping between platform and external contact schemas."""

from collections.abc import Iterable
from typing import Any

from contactbridge.exceptions import ConfigurationError
from contactbridge.models import ContactRecord, FieldMapping, Side

IDENTITY_FIELD = "id"


def _coerce(mapping: FieldMapping | dict) -> FieldMapping:
    if isinstance(mapping, FieldMapping):
        return mapping
    return FieldMapping.model_validate(mapping)


class FieldMapper:
    """Projects contact records from one schema onto the other.

    The mapping list is the only source of truth: fields it does not name are
    dropped on every translation.
    """

    def __init__(self, mappings: Iterable[FieldMapping | dict]):
        self.mappings = [_coerce(m) for m in mappings]
        if not self.mappings:
            raise ConfigurationError("mappings must contain at least one field mapping")

        names = [m.platform.name for m in self.mappings]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate platform field names in mappings: {duplicates}")

        identity = [m for m in self.mappings if m.platform.name == IDENTITY_FIELD]
        if not identity:
            raise ConfigurationError(
                f"mappings must map the platform '{IDENTITY_FIELD}' field to an external field"
            )
        self._ext_id_key = identity[0].external.name

    def map_to(self, record: ContactRecord, source: Side, target: Side) -> ContactRecord:
        """Translate ``record`` from the ``source`` schema to the ``target`` one.

        The target side's transform, if any, is applied to each raw value.
        Mapped fields missing from ``record`` come out as ``None``.
        """
        result: ContactRecord = {}
        for mapping in self.mappings:
            src = mapping.side(source)
            dst = mapping.side(target)
            value: Any = record.get(src.name)
            if value is not None and dst.transform is not None:
                value = dst.transform(value)
            result[dst.name] = value
        return result

    def to_external(self, record: ContactRecord) -> ContactRecord:
        return self.map_to(record, "platform", "external")

    def to_platform(self, record: ContactRecord) -> ContactRecord:
        return self.map_to(record, "external", "platform")

    def get_ext_id_key(self) -> str:
        """Name of the external field holding the external system's identifier."""
        return self._ext_id_key
