import pytest

from sf_store.core.schemas import (
    FavoriteUnit,
    LegacyCollection,
    RecommendedUnit,
    TrashedUnit,
)
from sf_store.services.data_adapter import DataAdapter
from sf_store.services.migration import migrate_to_legacy


@pytest.fixture
def adapter(manager):
    return DataAdapter(manager)


def test_collections_view(adapter):
    assert adapter.get_collections() == [
        LegacyCollection(id="c1", name="颜色", created_at=1),
        LegacyCollection(id="c2", name="形状", created_at=2),
    ]


def test_levels_view_carries_collection_id(adapter):
    levels = adapter.get_levels_by_collection_id("c1")
    assert [(level.id, level.collection_id) for level in levels] == [("l1", "c1"), ("l2", "c1")]
    assert [u.id for u in levels[0].units] == ["u1", "u2", "u3", "u4"]


def test_features_are_global_for_any_collection(adapter):
    for collection_id in ("c1", "c2", "whatever"):
        features = adapter.get_features_by_collection_id(collection_id)
        assert [f.id for f in features] == ["f1", "f2"]
        assert all(f.collection_id == "global" for f in features)


def test_status_views(adapter):
    recommended = adapter.get_recommended_units("c1")
    trashed = adapter.get_trashed_units("c1")
    favorite = adapter.get_favorite_units("c1")

    assert all(isinstance(e, RecommendedUnit) for e in recommended)
    assert all(isinstance(e, TrashedUnit) for e in trashed)
    assert [e.unit.id for e in recommended] == ["u2"]
    assert [e.unit.id for e in trashed] == ["u3"]
    assert trashed[0].level_name == "基础"
    assert trashed[0].level_id == "l1"
    assert isinstance(favorite[0], FavoriteUnit)
    assert (favorite[0].unit.id, favorite[0].reason, favorite[0].created_at) == ("u1", "好看", 100)


@pytest.mark.parametrize("method", [
    "get_levels_by_collection_id",
    "get_recommended_units",
    "get_trashed_units",
    "get_favorite_units",
])
def test_unknown_collection_gives_empty_list(adapter, method):
    assert getattr(adapter, method)("missing") == []


def test_collection_without_marked_units(adapter):
    assert adapter.get_recommended_units("c2") == []
    assert adapter.get_favorite_units("c2") == []


def test_unit_features_are_flattened(adapter):
    rows = [(r.unit_id, r.feature_id, r.value) for r in adapter.get_unit_features()]
    assert rows == [("u1", "f1", 5), ("u1", "f2", True), ("u2", "f1", 3)]


def test_views_follow_manager_changes(manager, adapter):
    manager.update_unit_status(0, 0, 3, "recommended")
    manager.remove_feature("f1")

    assert [e.unit.id for e in adapter.get_recommended_units("c1")] == ["u2", "u4"]
    assert [r.feature_id for r in adapter.get_unit_features()] == ["f2"]


def test_views_match_reverse_migration(manager, adapter):
    bundle = migrate_to_legacy(manager.get_data())
    assert adapter.get_trashed_units("c1") == bundle.trashed_units["c1"]
    assert adapter.get_favorite_units("c1") == bundle.favorite_units["c1"]
    assert adapter.get_levels_by_collection_id("c2") == [lv for lv in bundle.levels if lv.collection_id == "c2"]
