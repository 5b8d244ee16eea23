import json

import pytest

from sf_store.core.schemas import LegacyBundle, UnitStatus
from sf_store.infra.clipboard import MemoryClipboard
from sf_store.infra.storage.kv_store import MemoryKeyValueStore
from sf_store.services.data_manager import UnifiedDataManager
from sf_store.services.migration import migrate_bundle

PREFIX = "@sf_app:"


def legacy_tables() -> dict:
    """旧版七张表的原始 JSON 内容（键名不带前缀）"""
    return {
        "collections": [
            {"id": "c1", "name": "颜色", "createdAt": 1},
            {"id": "c2", "name": "形状", "createdAt": 2},
        ],
        "levels": [
            {
                "id": "l1", "collectionId": "c1", "name": "基础", "identifier": "alpha",
                "units": [
                    {"id": "u1", "name": "A"},
                    {"id": "u2", "name": "B"},
                    {"id": "u3", "name": "C"},
                    {"id": "u4", "name": "D"},
                ],
                "createdAt": 10,
            },
            {
                "id": "l2", "collectionId": "c1", "name": "进阶", "identifier": "numeric",
                "units": [{"id": "u5", "name": "1"}],
                "createdAt": 11,
            },
            {
                "id": "l3", "collectionId": "c2", "name": "平面", "identifier": "numeric",
                "units": [{"id": "u6", "name": "1"}],
                "createdAt": 12,
            },
            {
                "id": "lx", "collectionId": "missing", "name": "孤立", "identifier": "numeric",
                "units": [{"id": "u7", "name": "1"}],
                "createdAt": 13,
            },
        ],
        "features": [
            {"id": "f1", "collectionId": "c1", "name": "亮度", "type": "numeric", "createdAt": 20},
            {"id": "f2", "collectionId": "global", "name": "常用", "type": "single_choice", "createdAt": 21},
        ],
        "unit_features": [
            {"unitId": "u1", "featureId": "f1", "value": 5},
            {"unitId": "u1", "featureId": "f2", "value": True},
            {"unitId": "u2", "featureId": "f1", "value": 3},
            {"unitId": "u3", "featureId": "fx", "value": 2},
            {"unitId": "u9", "featureId": "f1", "value": 1},
        ],
        "recommended_units": {
            "c1": [{"unit": {"id": "u2", "name": "B"}, "levelName": "基础", "levelId": "l1", "collectionId": "c1"}],
        },
        "trashed_units": {
            "c1": [
                {"unit": {"id": "u3", "name": "C"}, "levelName": "基础", "levelId": "l1", "collectionId": "c1"},
                {"unit": {"id": "u1", "name": "A"}, "levelName": "基础", "levelId": "l1", "collectionId": "c1"},
            ],
        },
        "favorite_units": {
            "c1": [
                {
                    "unit": {"id": "u1", "name": "A"}, "levelName": "基础", "levelId": "l1",
                    "collectionId": "c1", "reason": "好看", "createdAt": 100,
                },
            ],
        },
    }


def seed_legacy(store, tables=None):
    for name, value in (tables or legacy_tables()).items():
        store.set(f"{PREFIX}{name}", json.dumps(value, ensure_ascii=False))


def all_units(data):
    for collection in data.collections:
        for level in collection.levels:
            yield from level.units


def assert_favorite_invariant(data):
    for unit in all_units(data):
        if unit.status == UnitStatus.FAVORITE:
            assert unit.favorite_reason is not None
            assert unit.favorite_created_at is not None
        else:
            assert unit.favorite_reason is None
            assert unit.favorite_created_at is None


@pytest.fixture
def legacy_bundle() -> LegacyBundle:
    return LegacyBundle.model_validate(legacy_tables())


@pytest.fixture
def unified_data(legacy_bundle):
    return migrate_bundle(legacy_bundle)


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def clipboard() -> MemoryClipboard:
    return MemoryClipboard()


@pytest.fixture
def manager(unified_data, clipboard) -> UnifiedDataManager:
    return UnifiedDataManager(unified_data, clipboard=clipboard)
