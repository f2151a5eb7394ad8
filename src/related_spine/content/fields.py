"""
Field Weight Model.

Classifies every enabled, keyword-searchable schema field into a comparison
type and attaches its search weight. The model is built once per process
from the active schema and never changes afterwards; fields that are
disabled or not keyword-searchable never contribute to a correlation score.

Architecture:
    ::

        SchemaField (from the item store)
              │  enabled? keyword-searchable?
              ▼
        FieldTypeRegistry  ── field-type tag → ComparisonType
              │
              ▼
        FieldWeightModel   ── immutable tuple of FieldSpec
              └── subset(names)  restricted comparisons

Examples:
    >>> model = FieldWeightModel.from_schema([
    ...     SchemaField("Title", "text", search_weight=2),
    ...     SchemaField("Notes", "text", include_in_keyword_search=False),
    ... ])
    >>> [spec.name for spec in model]
    ['Title']

Tags:
    field-model, weights, comparison-type, registry, schema
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from related_spine.core.errors import ConfigError
from related_spine.core.logging import get_logger

logger = get_logger(__name__)


class ComparisonType(str, Enum):
    """How two values of a field are compared."""

    TEXT = "TEXT"
    NUMERIC = "NUMERIC"
    DATE = "DATE"
    DATE_RANGE = "DATE_RANGE"


@dataclass(frozen=True)
class SchemaField:
    """Field descriptor as exposed by the item store's active schema."""

    name: str
    field_type: str
    enabled: bool = True
    include_in_keyword_search: bool = True
    search_weight: float = 1.0


@dataclass(frozen=True)
class FieldSpec:
    """One field taking part in similarity scoring."""

    name: str
    comparison_type: ComparisonType
    weight: float

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ConfigError(
                f"Field {self.name!r} has negative weight {self.weight}"
            ).with_context(field=self.name)


# =============================================================================
# FIELD TYPE REGISTRY
# =============================================================================

_BUILTIN_FIELD_TYPES: dict[str, ComparisonType] = {
    "text": ComparisonType.TEXT,
    "paragraph": ComparisonType.TEXT,
    "user": ComparisonType.TEXT,
    "url": ComparisonType.TEXT,
    "tree": ComparisonType.TEXT,
    "controlled_name": ComparisonType.TEXT,
    "option": ComparisonType.TEXT,
    "image": ComparisonType.TEXT,
    "file": ComparisonType.TEXT,
    "number": ComparisonType.NUMERIC,
    "flag": ComparisonType.NUMERIC,
    "date": ComparisonType.DATE_RANGE,
    "timestamp": ComparisonType.DATE,
}


class FieldTypeRegistry:
    """Lookup table from field-type tags to comparison types.

    Adding a field type means registering it here; nothing else in the
    engine dispatches on field-type tags.
    """

    def __init__(self, seed: dict[str, ComparisonType] | None = None):
        self._types: dict[str, ComparisonType] = {}
        for tag, comparison_type in (seed if seed is not None else _BUILTIN_FIELD_TYPES).items():
            self.register(tag, comparison_type)

    def register(self, tag: str, comparison_type: ComparisonType | str) -> None:
        """Map a field-type tag to a comparison type (replaces any mapping)."""
        try:
            resolved = ComparisonType(comparison_type)
        except ValueError as exc:
            raise ConfigError(
                f"Unknown comparison type {comparison_type!r} for field type {tag!r}",
                cause=exc,
            ) from exc
        self._types[tag.lower()] = resolved

    def lookup(self, tag: str) -> ComparisonType | None:
        """Comparison type for a tag, or ``None`` when unmapped."""
        return self._types.get(tag.lower())

    def tags(self) -> list[str]:
        return sorted(self._types)

    def __contains__(self, tag: object) -> bool:
        return isinstance(tag, str) and tag.lower() in self._types


_default_registry: FieldTypeRegistry | None = None


def get_field_type_registry() -> FieldTypeRegistry:
    """Process-wide registry, created lazily with the built-in tags."""
    global _default_registry
    if _default_registry is None:
        _default_registry = FieldTypeRegistry()
    return _default_registry


def reset_field_type_registry() -> None:
    """Drop custom registrations (for testing)."""
    global _default_registry
    _default_registry = None


def register_field_type(tag: str, comparison_type: ComparisonType | str) -> None:
    """Register a field-type tag on the process-wide registry."""
    get_field_type_registry().register(tag, comparison_type)


# =============================================================================
# FIELD WEIGHT MODEL
# =============================================================================


class FieldWeightModel:
    """Immutable, ordered collection of :class:`FieldSpec`.

    Iterating yields the specs in schema order. Names are unique; a later
    spec with a repeated name is rejected.
    """

    __slots__ = ("_specs", "_by_name")

    def __init__(self, specs: Iterable[FieldSpec] = ()):
        ordered = tuple(specs)
        by_name: dict[str, FieldSpec] = {}
        for spec in ordered:
            if spec.name in by_name:
                raise ConfigError(f"Duplicate field {spec.name!r} in weight model")
            by_name[spec.name] = spec
        self._specs = ordered
        self._by_name = by_name

    @classmethod
    def from_schema(
        cls,
        fields: Iterable[SchemaField],
        registry: FieldTypeRegistry | None = None,
    ) -> FieldWeightModel:
        """Build the model from schema field descriptors.

        Disabled and non-searchable fields are skipped silently; fields
        whose type tag has no registered comparison type are skipped with
        a debug line.
        """
        registry = registry or get_field_type_registry()
        specs: list[FieldSpec] = []
        for field in fields:
            if not field.enabled or not field.include_in_keyword_search:
                continue
            comparison_type = registry.lookup(field.field_type)
            if comparison_type is None:
                logger.debug(
                    "field_type_unmapped",
                    field=field.name,
                    field_type=field.field_type,
                )
                continue
            specs.append(FieldSpec(field.name, comparison_type, float(field.search_weight)))
        return cls(specs)

    @property
    def names(self) -> list[str]:
        return [spec.name for spec in self._specs]

    def get(self, name: str) -> FieldSpec | None:
        return self._by_name.get(name)

    def subset(self, field_names: Iterable[str]) -> FieldWeightModel:
        """Model restricted to the given names; unknown names are ignored."""
        wanted = set(field_names)
        return FieldWeightModel(spec for spec in self._specs if spec.name in wanted)

    def total_weight(self) -> float:
        return sum(spec.weight for spec in self._specs)

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldWeightModel):
            return NotImplemented
        return self._specs == other._specs

    def __hash__(self) -> int:
        return hash(self._specs)

    def __repr__(self) -> str:
        inner = ", ".join(f"{s.name}:{s.comparison_type.value}x{s.weight:g}" for s in self._specs)
        return f"FieldWeightModel({inner})"


__all__ = [
    "ComparisonType",
    "SchemaField",
    "FieldSpec",
    "FieldTypeRegistry",
    "FieldWeightModel",
    "get_field_type_registry",
    "register_field_type",
    "reset_field_type_registry",
]
