"""Item content: field weight model, comparators, item cache and item stores."""

from related_spine.content.comparators import (
    Comparator,
    ComparatorRegistry,
    get_comparator,
    get_comparator_registry,
    register_comparator,
)
from related_spine.content.fields import (
    ComparisonType,
    FieldSpec,
    FieldTypeRegistry,
    FieldWeightModel,
    SchemaField,
    get_field_type_registry,
    register_field_type,
)
from related_spine.content.item_cache import ItemContentCache
from related_spine.content.items import InMemoryItemStore, Item, SqlItemStore
from related_spine.content.text import STOP_WORDS, tokenize

__all__ = [
    "Comparator",
    "ComparatorRegistry",
    "ComparisonType",
    "FieldSpec",
    "FieldTypeRegistry",
    "FieldWeightModel",
    "InMemoryItemStore",
    "Item",
    "ItemContentCache",
    "STOP_WORDS",
    "SchemaField",
    "SqlItemStore",
    "get_comparator",
    "get_comparator_registry",
    "get_field_type_registry",
    "register_comparator",
    "register_field_type",
    "tokenize",
]
