"""Tests for collections, tags and the import merge."""

from __future__ import annotations

from promptchronicle.db.models import BundlePayload, Collection, Tag
from promptchronicle.library.organize import (
    DEFAULT_COLLECTION_COLOR,
    DEFAULT_COLLECTION_ICON,
    MergeReport,
    assign_collection,
    collection_children,
    collection_item_count,
    create_collection,
    create_tag,
    delete_collection,
    delete_tag,
    merge_workspace,
    toggle_item_tag,
    update_collection,
    update_tag,
)

NOW = 1709294400.0


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


def test_create_collection_defaults():
    collections, created = create_collection([], "My Work Stuff", now=NOW)

    assert collections == [created]
    assert created.id == "col-1709294400000-my-work-stuff"
    assert created.name == "My Work Stuff"
    assert created.color == DEFAULT_COLLECTION_COLOR
    assert created.icon == DEFAULT_COLLECTION_ICON
    assert created.parent_id is None
    assert created.created_at == "2024-03-01T12:00:00.000Z"


def test_create_nested_collection_keeps_input_list():
    existing = [Collection(id="col-root", name="Root")]
    collections, child = create_collection(existing, "Child", parent_id="col-root", color="#000000")

    assert len(existing) == 1
    assert [c.id for c in collections] == ["col-root", child.id]
    assert child.parent_id == "col-root"
    assert child.color == "#000000"


def test_update_collection():
    collections = [Collection(id="c1", name="Old"), Collection(id="c2", name="Other")]
    updated = update_collection(collections, "c1", name="New")
    assert [c.name for c in updated] == ["New", "Other"]
    assert collections[0].name == "Old"


def test_delete_collection_lifts_children_and_unfiles_items(item_factory):
    collections = [
        Collection(id="top", name="Top"),
        Collection(id="mid", name="Mid", parent_id="top"),
        Collection(id="leaf", name="Leaf", parent_id="mid"),
    ]
    items = [
        item_factory("i1", collection_id="mid"),
        item_factory("i2", collection_id="leaf"),
        item_factory("i3"),
    ]

    remaining, updated = delete_collection(collections, items, "mid")

    assert {c.id: c.parent_id for c in remaining} == {"top": None, "leaf": "top"}
    assert [i.collection_id for i in updated] == [None, "leaf", None]
    assert items[0].collection_id == "mid"


def test_collection_children_and_counts(item_factory):
    collections = [
        Collection(id="a", name="A"),
        Collection(id="b", name="B", parent_id="a"),
        Collection(id="c", name="C", parent_id="a"),
    ]
    items = [item_factory("1", collection_id="b"), item_factory("2", collection_id="b")]

    assert [c.id for c in collection_children(collections, None)] == ["a"]
    assert [c.id for c in collection_children(collections, "a")] == ["b", "c"]
    assert collection_item_count(items, "b") == 2
    assert collection_item_count(items, "c") == 0


def test_assign_collection(item_factory):
    items = [item_factory("1"), item_factory("2")]
    updated = assign_collection(items, "2", "col-x")
    assert [i.collection_id for i in updated] == [None, "col-x"]
    assert assign_collection(updated, "2", None)[1].collection_id is None


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def test_create_and_update_tag():
    tags, tag = create_tag([], "Needs Review", "#ff0000", now=NOW)
    assert tag.id == "tag-1709294400000-needs-review"
    assert tags == [tag]

    renamed = update_tag(tags, tag.id, name="Reviewed", color="#00ff00")
    assert renamed[0].name == "Reviewed"
    assert renamed[0].color == "#00ff00"


def test_delete_tag_strips_references(item_factory):
    tags = [Tag(id="t1", name="one"), Tag(id="t2", name="two")]
    items = [item_factory("1", tag_ids=["t1", "t2"]), item_factory("2", tag_ids=["t2"])]

    remaining, updated = delete_tag(tags, items, "t1")

    assert [t.id for t in remaining] == ["t2"]
    assert [i.tag_ids for i in updated] == [["t2"], ["t2"]]
    assert items[0].tag_ids == ["t1", "t2"]


def test_toggle_item_tag(item_factory):
    items = [item_factory("1", tag_ids=["t1"])]

    added = toggle_item_tag(items, "1", "t2")
    assert added[0].tag_ids == ["t1", "t2"]

    removed = toggle_item_tag(added, "1", "t1")
    assert removed[0].tag_ids == ["t2"]


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def test_merge_skips_existing_ids(item_factory):
    current = BundlePayload(
        items=[item_factory("1", title="mine")],
        collections=[Collection(id="c1", name="Mine")],
        tags=[Tag(id="t1", name="mine")],
    )
    incoming = BundlePayload(
        items=[item_factory("1", title="theirs"), item_factory("2")],
        collections=[Collection(id="c1", name="Theirs"), Collection(id="c2", name="New")],
        tags=[Tag(id="t2", name="new")],
    )

    merged, report = merge_workspace(current, incoming)

    assert [i.id for i in merged.items] == ["1", "2"]
    assert merged.items[0].title == "mine"
    assert [c.name for c in merged.collections] == ["Mine", "New"]
    assert [t.id for t in merged.tags] == ["t1", "t2"]
    assert report == MergeReport(items_added=1, items_skipped=1, collections_added=1, tags_added=1)


def test_merge_report_summary():
    assert MergeReport(3, 0, 1, 2).summary() == "Imported 3 items. 1 collections, 2 tags added."
    assert "2 duplicates skipped" in MergeReport(1, 2, 0, 0).summary()
