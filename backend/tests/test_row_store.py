"""InMemoryDB and OwnedResource tests."""

import pytest

from propcall.api.pipeline import OwnedResource, pagination, total_pages
from propcall.db import Embed, InMemoryDB, UniqueViolation, build_db
from propcall.errors import ConflictError, NotFoundError
from propcall.services.security import Identity

ALICE = Identity(id="user-a", email="a@example.com")
BOB = Identity(id="user-b", email="b@example.com")


@pytest.fixture
def store():
    return InMemoryDB()


def test_build_db_without_credentials_is_in_memory():
    assert isinstance(build_db(None, None), InMemoryDB)
    assert isinstance(build_db("https://project.supabase.co", ""), InMemoryDB)


def test_insert_applies_defaults(store):
    row = store.insert("properties", {"user_id": "u", "name": "Loft"})
    assert row["id"]
    assert row["status"] == "active"
    assert row["price"] is None
    assert row["created_at"]


def test_unique_keys(store):
    store.insert("tags", {"user_id": "u", "name": "Hot"})
    store.insert("tags", {"user_id": "v", "name": "Hot"})
    with pytest.raises(UniqueViolation):
        store.insert("tags", {"user_id": "u", "name": "Hot"})


def test_unknown_table(store):
    with pytest.raises(ValueError):
        store.select("nope")


def test_count_ignores_slice(store):
    for i in range(5):
        store.insert("tags", {"user_id": "u", "name": f"t{i}"})
    rows, total = store.select("tags", order="name", offset=2, limit=2)
    assert [r["name"] for r in rows] == ["t2", "t3"]
    assert total == 5


def test_desc_order_puts_nulls_first(store):
    store.insert("call_history", {"caller_number": "1", "call_timestamp": "2024-01-01T00:00:00+00:00"})
    store.insert("call_history", {"caller_number": "2", "call_timestamp": None})
    store.insert("call_history", {"caller_number": "3", "call_timestamp": "2024-02-01T00:00:00Z"})
    rows, _ = store.select("call_history", order="call_timestamp", desc=True)
    assert [r["caller_number"] for r in rows] == ["2", "3", "1"]


def test_range_filters_compare_timestamps(store):
    store.insert("call_history", {"caller_number": "1", "call_timestamp": "2024-01-01T10:00:00+00:00"})
    store.insert("call_history", {"caller_number": "2", "call_timestamp": "2024-01-02T10:00:00+00:00"})
    rows, _ = store.select("call_history", filters=[
        ("gte", "call_timestamp", "2024-01-02T00:00:00Z"),
        ("lte", "call_timestamp", "2024-01-02T23:59:59.999000+00:00"),
    ])
    assert [r["caller_number"] for r in rows] == ["2"]


def test_embed_attaches_related_row(store):
    house = store.insert("properties", {"user_id": "u", "name": "Loft", "address": "1 Main"})
    store.insert("call_history", {"caller_number": "1", "property_id": house["id"]})
    store.insert("call_history", {"caller_number": "2"})
    rows, _ = store.select(
        "call_history",
        columns=("caller_number",),
        embeds=(Embed("property", "properties", "property_id", ("id", "name")),),
        order="caller_number",
    )
    assert rows == [
        {"caller_number": "1", "property": {"id": house["id"], "name": "Loft"}},
        {"caller_number": "2", "property": None},
    ]


def test_upsert_updates_in_place(store):
    first = store.upsert("ai_agents", {"user_id": "u", "agent_name": "A"}, on_conflict=("user_id",))
    second = store.upsert("ai_agents", {"user_id": "u", "agent_name": "B"}, on_conflict=("user_id",))
    assert first["id"] == second["id"]
    assert second["agent_name"] == "B"
    assert len(store.tables["ai_agents"]) == 1


def test_delete_returns_removed_rows(store):
    store.insert("tags", {"user_id": "u", "name": "a"})
    store.insert("tags", {"user_id": "u", "name": "b"})
    removed = store.delete("tags", [("eq", "name", "a")])
    assert [r["name"] for r in removed] == ["a"]
    assert store.delete("tags", [("eq", "name", "a")]) == []


# -- OwnedResource ---------------------------------------------------------

def test_owned_resource_scopes_every_operation(store):
    tags = OwnedResource("tags", "Tag", updated_field=None)
    row = tags.create(store, ALICE, {"name": "Hot"})
    assert row["user_id"] == ALICE.id

    with pytest.raises(NotFoundError) as exc:
        tags.get(store, BOB, row["id"])
    assert exc.value.detail == "Tag not found"
    with pytest.raises(NotFoundError):
        tags.update(store, BOB, {"name": "Mine now"}, rid=row["id"])
    with pytest.raises(NotFoundError):
        tags.delete(store, BOB, row["id"])

    assert tags.get(store, ALICE, row["id"])["name"] == "Hot"


def test_owned_resource_maps_duplicates_to_conflict(store):
    tags = OwnedResource("tags", "Tag", updated_field=None, conflict_message="Duplicate tag")
    tags.create(store, ALICE, {"name": "Hot"})
    with pytest.raises(ConflictError) as exc:
        tags.create(store, ALICE, {"name": "Hot"})
    assert exc.value.detail == "Duplicate tag"


def test_owner_cannot_be_overridden_by_values(store):
    properties = OwnedResource("properties", "Property")
    row = properties.create(store, ALICE, {"name": "Loft", "user_id": BOB.id})
    assert row["user_id"] == ALICE.id


def test_update_stamps_updated_at(store):
    properties = OwnedResource("properties", "Property")
    row = store.insert("properties", {"user_id": ALICE.id, "name": "Loft", "updated_at": "2020-01-01T00:00:00+00:00"})
    updated = properties.update(store, ALICE, {"name": "Loft 2"}, rid=row["id"])
    assert updated["updated_at"] > "2020-01-01T00:00:00+00:00"
    assert updated["created_at"] == row["created_at"]


@pytest.mark.parametrize(
    "total, limit, expected",
    [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (12, 5, 3)],
)
def test_total_pages(total, limit, expected):
    assert total_pages(total, limit) == expected


def test_pagination_shape():
    assert pagination(25, 2, 10) == {"totalItems": 25, "currentPage": 2, "itemsPerPage": 10, "totalPages": 3}
