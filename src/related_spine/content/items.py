"""
Reference item stores.

Items belong to an external system; the correlation engine only reads them
through the :class:`~related_spine.core.protocols.ItemStore` protocol. Two
adapters are shipped:

- :class:`InMemoryItemStore` for tests and embedding.
- :class:`SqlItemStore` over the ``rec_items`` / ``rec_item_fields`` /
  ``rec_schema_fields`` tables, used by the CLI.

Tags:
    items, item-store, adapter, sqlite
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from related_spine.content.fields import SchemaField
from related_spine.core.dialect import Dialect
from related_spine.core.protocols import Connection
from related_spine.core.repository import BaseRepository

DEFAULT_SCHEMA_ID = 1


@dataclass
class Item:
    """One item with its schema and named field values."""

    item_id: int
    schema_id: int = DEFAULT_SCHEMA_ID
    fields: dict[str, Any] = field(default_factory=dict)

    def get(self, field_name: str) -> Any:
        return self.fields.get(field_name)

    @property
    def is_transient(self) -> bool:
        """Negative ids mark temporary items that are never scored."""
        return self.item_id < 0


class InMemoryItemStore:
    """Dict-backed item store.

    ``loads`` counts :meth:`load_item` calls so callers can observe cache
    effectiveness.
    """

    def __init__(self, schema_fields: Iterable[SchemaField] = ()):
        self._items: dict[int, Item] = {}
        self._schema_fields: list[SchemaField] = list(schema_fields)
        self.loads = 0

    # -- Mutation (host side) ----------------------------------------------

    def add_item(
        self,
        item_id: int,
        fields: Mapping[str, Any] | None = None,
        *,
        schema_id: int = DEFAULT_SCHEMA_ID,
    ) -> Item:
        item = Item(item_id=item_id, schema_id=schema_id, fields=dict(fields or {}))
        self._items[item_id] = item
        return item

    def remove_item(self, item_id: int) -> None:
        self._items.pop(item_id, None)

    def set_field(self, item_id: int, field_name: str, value: Any) -> None:
        self._items[item_id].fields[field_name] = value

    def set_schema_fields(self, schema_fields: Iterable[SchemaField]) -> None:
        self._schema_fields = list(schema_fields)

    # -- ItemStore protocol ------------------------------------------------

    def item_exists(self, item_id: int) -> bool:
        return item_id in self._items

    def load_item(self, item_id: int) -> Item:
        self.loads += 1
        item = self._items[item_id]
        return Item(item.item_id, item.schema_id, dict(item.fields))

    def get_field_value(self, item_id: int, field_name: str) -> Any:
        return self._items[item_id].get(field_name)

    def list_item_ids(self) -> list[int]:
        return sorted(self._items)

    def schema_of(self, item_id: int) -> int:
        return self._items[item_id].schema_id

    def list_ids_in_schema(self, schema_id: int) -> list[int]:
        return sorted(i for i, item in self._items.items() if item.schema_id == schema_id)

    def list_schema_fields(self) -> list[SchemaField]:
        return list(self._schema_fields)


class SqlItemStore(BaseRepository):
    """Item store over the ``rec_*`` item tables.

    Field values are stored as JSON text so lists, numbers and ranges
    round-trip; dates are written as ISO strings.
    """

    def __init__(self, conn: Connection, dialect: Dialect | None = None):
        super().__init__(conn, dialect)

    # -- Mutation (host side) ----------------------------------------------

    def add_item(
        self,
        item_id: int,
        fields: Mapping[str, Any] | None = None,
        *,
        schema_id: int = DEFAULT_SCHEMA_ID,
    ) -> None:
        self.execute(
            self.dialect.upsert("rec_items", ["item_id", "schema_id"], ["item_id"]),
            (item_id, schema_id),
        )
        self.execute(f"DELETE FROM rec_item_fields WHERE item_id = {self.ph(1)}", (item_id,))
        for name, value in (fields or {}).items():
            self.execute(
                f"INSERT INTO rec_item_fields (item_id, field_name, value) VALUES ({self.ph(3)})",
                (item_id, name, json.dumps(value, default=str)),
            )
        self.commit()

    def remove_item(self, item_id: int) -> None:
        self.execute(f"DELETE FROM rec_item_fields WHERE item_id = {self.ph(1)}", (item_id,))
        self.execute(f"DELETE FROM rec_items WHERE item_id = {self.ph(1)}", (item_id,))
        self.commit()

    def add_schema_field(self, schema_field: SchemaField, position: int | None = None) -> None:
        if position is None:
            position = self.query_scalar("SELECT COUNT(*) FROM rec_schema_fields") or 0
        self.execute(
            self.dialect.upsert(
                "rec_schema_fields",
                [
                    "name",
                    "field_type",
                    "enabled",
                    "include_in_keyword_search",
                    "search_weight",
                    "position",
                ],
                ["name"],
            ),
            (
                schema_field.name,
                schema_field.field_type,
                int(schema_field.enabled),
                int(schema_field.include_in_keyword_search),
                float(schema_field.search_weight),
                position,
            ),
        )
        self.commit()

    # -- ItemStore protocol ------------------------------------------------

    def item_exists(self, item_id: int) -> bool:
        row = self.query_one(f"SELECT 1 AS found FROM rec_items WHERE item_id = {self.ph(1)}", (item_id,))
        return row is not None

    def load_item(self, item_id: int) -> Item:
        row = self.query_one(
            f"SELECT item_id, schema_id FROM rec_items WHERE item_id = {self.ph(1)}",
            (item_id,),
        )
        if row is None:
            raise KeyError(item_id)
        values = self.query(
            f"SELECT field_name, value FROM rec_item_fields WHERE item_id = {self.ph(1)}",
            (item_id,),
        )
        return Item(
            item_id=row["item_id"],
            schema_id=row["schema_id"],
            fields={v["field_name"]: json.loads(v["value"]) for v in values},
        )

    def get_field_value(self, item_id: int, field_name: str) -> Any:
        raw = self.query_scalar(
            f"SELECT value FROM rec_item_fields WHERE item_id = {self.ph(1)} AND field_name = {self.ph(1)}",
            (item_id, field_name),
        )
        return None if raw is None else json.loads(raw)

    def list_item_ids(self) -> list[int]:
        return self.query_column("SELECT item_id FROM rec_items ORDER BY item_id")

    def schema_of(self, item_id: int) -> int:
        schema_id = self.query_scalar(
            f"SELECT schema_id FROM rec_items WHERE item_id = {self.ph(1)}", (item_id,)
        )
        if schema_id is None:
            raise KeyError(item_id)
        return schema_id

    def list_ids_in_schema(self, schema_id: int) -> list[int]:
        return self.query_column(
            f"SELECT item_id FROM rec_items WHERE schema_id = {self.ph(1)} ORDER BY item_id",
            (schema_id,),
        )

    def list_schema_fields(self) -> list[SchemaField]:
        rows = self.query(
            "SELECT name, field_type, enabled, include_in_keyword_search, search_weight "
            "FROM rec_schema_fields ORDER BY position, name"
        )
        return [
            SchemaField(
                name=r["name"],
                field_type=r["field_type"],
                enabled=bool(r["enabled"]),
                include_in_keyword_search=bool(r["include_in_keyword_search"]),
                search_weight=float(r["search_weight"]),
            )
            for r in rows
        ]


__all__ = ["DEFAULT_SCHEMA_ID", "Item", "InMemoryItemStore", "SqlItemStore"]
