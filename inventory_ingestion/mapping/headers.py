"""
Header normalizer: resolve raw CSV header labels onto the canonical fields.

Pure functions plus an explicit, extensible synonym registry. A header
matches a canonical field only if its normalized form is one of that
field's registered synonyms; there is no fuzzy matching.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from inventory_kernel.exceptions import ConfigurationError, SchemaError

from inventory_ingestion.domain.types import CanonicalField

_LEADING = re.compile(r"^[\s\ufeff]+")
_WHITESPACE = re.compile(r"\s+")


def normalize_header(label: str | None) -> str:
    """Strip a leading BOM, trim, collapse internal whitespace, lower-case."""
    if label is None:
        return ""
    s = _LEADING.sub("", label).strip()
    return _WHITESPACE.sub(" ", s).lower()


_DEFAULT_SYNONYMS: dict[CanonicalField, tuple[str, ...]] = {
    CanonicalField.ITEM_NAME: ("itemname", "item name", "item_name"),
    CanonicalField.SKU: ("sku",),
    CanonicalField.CATEGORY: ("category",),
    CanonicalField.UNIT: ("unit",),
    CanonicalField.CURRENT_STOCK: ("currentstock", "current stock", "current_stock"),
    CanonicalField.REORDER_LEVEL: ("reorderlevel", "reorder level", "reorder_level"),
    CanonicalField.STATUS: ("status",),
}


def _as_canonical(name: str | CanonicalField) -> CanonicalField:
    if isinstance(name, CanonicalField):
        return name
    try:
        return CanonicalField(name)
    except ValueError:
        # Tolerate the same variants we accept in headers ("current_stock")
        for canonical, labels in _DEFAULT_SYNONYMS.items():
            if normalize_header(name) in labels:
                return canonical
    raise ConfigurationError("header_synonyms", f"unknown canonical field {name!r}")


class HeaderSynonyms:
    """
    Immutable synonym registry: canonical field -> accepted normalized labels.

    ``with_synonyms`` returns a new registry; a label may belong to only one
    field.
    """

    def __init__(self, synonyms: Mapping[CanonicalField, Iterable[str]] | None = None):
        source = _DEFAULT_SYNONYMS if synonyms is None else synonyms
        table: dict[CanonicalField, tuple[str, ...]] = {c: () for c in CanonicalField}
        owner: dict[str, CanonicalField] = {}
        for canonical, labels in source.items():
            canonical = _as_canonical(canonical)
            normalized = tuple(dict.fromkeys(normalize_header(x) for x in labels if normalize_header(x)))
            for label in normalized:
                if owner.setdefault(label, canonical) is not canonical:
                    raise ConfigurationError(
                        "header_synonyms",
                        f"label {label!r} registered for both {owner[label].value} and {canonical.value}",
                    )
            table[canonical] = tuple(dict.fromkeys(table[canonical] + normalized))
        self._table = table
        self._owner = owner

    @classmethod
    def default(cls) -> HeaderSynonyms:
        return cls()

    def with_synonyms(self, canonical: str | CanonicalField, *labels: str) -> HeaderSynonyms:
        merged = dict(self._table)
        key = _as_canonical(canonical)
        merged[key] = merged[key] + tuple(labels)
        return HeaderSynonyms(merged)

    def extended(self, extra: Mapping[str, Sequence[str]]) -> HeaderSynonyms:
        """Registry with every ``field -> labels`` entry of ``extra`` added."""
        registry = self
        for name, labels in extra.items():
            registry = registry.with_synonyms(name, *labels)
        return registry

    def lookup(self, label: str | None) -> CanonicalField | None:
        return self._owner.get(normalize_header(label))


@dataclass(frozen=True)
class ResolvedColumn:
    label: str  # Raw header text as it appears in the file
    position: int  # 0-based column index


@dataclass(frozen=True)
class HeaderMapping:
    """Canonical field -> the raw header column that supplies it."""

    columns: dict[CanonicalField, ResolvedColumn]
    # Raw headers that duplicated an already-resolved field (first one wins)
    ignored: tuple[str, ...] = ()
    # Raw headers that match no canonical field
    unrecognized: tuple[str, ...] = ()

    def label_for(self, canonical: CanonicalField) -> str:
        return self.columns[canonical].label


def resolve_headers(
    headers: Sequence[str] | None,
    synonyms: HeaderSynonyms | None = None,
) -> HeaderMapping:
    """
    Resolve a header row.

    Raises:
        SchemaError: listing every canonical field with no matching header,
            in canonical order. A missing header row reports all fields.
    """
    registry = synonyms or HeaderSynonyms.default()
    if not headers:
        raise SchemaError(
            [c.value for c in CanonicalField],
            "No header row found",
        )

    columns: dict[CanonicalField, ResolvedColumn] = {}
    ignored: list[str] = []
    unrecognized: list[str] = []
    for position, label in enumerate(headers):
        canonical = registry.lookup(label)
        if canonical is None:
            if normalize_header(label):
                unrecognized.append(label)
            continue
        if canonical in columns:
            ignored.append(label)
            continue
        columns[canonical] = ResolvedColumn(label=label, position=position)

    missing = [c.value for c in CanonicalField if c not in columns]
    if missing:
        raise SchemaError(missing)
    return HeaderMapping(columns=columns, ignored=tuple(ignored), unrecognized=tuple(unrecognized))
