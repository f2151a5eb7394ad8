"""
Tests for related_spine.content.items.

Covers:
- InMemoryItemStore: ids, schemas, copies on load, removal
- SqlItemStore: JSON field values, schema fields, missing items
"""

import pytest

from related_spine.content.fields import SchemaField
from related_spine.content.items import InMemoryItemStore, Item, SqlItemStore


class TestItem:
    def test_transient(self):
        assert Item(-3).is_transient
        assert not Item(3).is_transient

    def test_get_missing_field(self):
        assert Item(1, fields={"Title": "x"}).get("Other") is None


class TestInMemoryItemStore:
    """Test the dict-backed store."""

    def test_listing(self, item_store):
        assert item_store.list_item_ids() == [1, 2, 3, 4]
        assert item_store.list_ids_in_schema(1) == [1, 2, 3]
        assert item_store.list_ids_in_schema(2) == [4]
        assert item_store.schema_of(4) == 2

    def test_load_returns_copy(self, item_store):
        """Mutating a loaded item does not change the store."""
        item = item_store.load_item(1)
        item.fields["Title"] = "changed"
        assert item_store.get_field_value(1, "Title") == "Harbour at dusk"
        assert item_store.loads == 1

    def test_remove_and_set_field(self, item_store):
        item_store.set_field(2, "Title", "New title")
        assert item_store.get_field_value(2, "Title") == "New title"
        item_store.remove_item(2)
        item_store.remove_item(2)
        assert not item_store.item_exists(2)

    def test_schema_fields(self, item_store, schema_fields):
        assert item_store.list_schema_fields() == schema_fields
        item_store.set_schema_fields([])
        assert item_store.list_schema_fields() == []


@pytest.fixture
def sql_items(conn):
    return SqlItemStore(conn)


class TestSqlItemStore:
    """Test the SQL reference store."""

    def test_add_and_load(self, sql_items):
        sql_items.add_item(7, {"Title": "Harbour", "Year": 1999, "Tags": ["a", "b"]}, schema_id=3)

        item = sql_items.load_item(7)
        assert item.item_id == 7
        assert item.schema_id == 3
        assert item.get("Year") == 1999
        assert item.get("Tags") == ["a", "b"]
        assert sql_items.get_field_value(7, "Title") == "Harbour"
        assert sql_items.get_field_value(7, "Missing") is None

    def test_re_adding_replaces_fields(self, sql_items):
        sql_items.add_item(7, {"Title": "Old", "Extra": 1})
        sql_items.add_item(7, {"Title": "New"})
        assert sql_items.load_item(7).fields == {"Title": "New"}

    def test_listing(self, sql_items):
        sql_items.add_item(3, {}, schema_id=1)
        sql_items.add_item(-1, {}, schema_id=1)
        sql_items.add_item(2, {}, schema_id=2)

        assert sql_items.list_item_ids() == [-1, 2, 3]
        assert sql_items.list_ids_in_schema(1) == [-1, 3]
        assert sql_items.schema_of(2) == 2

    def test_missing_item(self, sql_items):
        assert not sql_items.item_exists(99)
        with pytest.raises(KeyError):
            sql_items.load_item(99)
        with pytest.raises(KeyError):
            sql_items.schema_of(99)

    def test_remove(self, sql_items):
        sql_items.add_item(5, {"Title": "x"})
        sql_items.remove_item(5)
        assert not sql_items.item_exists(5)
        assert sql_items.get_field_value(5, "Title") is None

    def test_schema_fields_in_position_order(self, sql_items):
        sql_items.add_schema_field(SchemaField("Description", "paragraph"), position=2)
        sql_items.add_schema_field(SchemaField("Title", "text", search_weight=2), position=1)
        sql_items.add_schema_field(
            SchemaField("Notes", "paragraph", include_in_keyword_search=False)
        )

        fields = sql_items.list_schema_fields()
        assert [f.name for f in fields] == ["Title", "Description", "Notes"]
        assert fields[0].search_weight == 2.0
        assert fields[2].include_in_keyword_search is False
