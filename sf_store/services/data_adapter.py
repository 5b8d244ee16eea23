"""
数据适配器 (Data Adapter)
将统一数据结构适配为旧数据结构的访问方式，供尚未迁移到统一接口的读取方使用。
适配器本身不保存状态，每次调用都从管理器当前的数据重新计算。
"""
from typing import List, Optional

from sf_store.core.schemas import (
    DEFAULT_FAVORITE_REASON,
    GLOBAL_COLLECTION_ID,
    Collection,
    FavoriteUnit,
    LegacyCollection,
    LegacyFeature,
    LegacyLevel,
    LegacyUnitFeature,
    LegacyUnitRef,
    RecommendedUnit,
    TrashedUnit,
    UnitStatus,
    now_ms,
)
from sf_store.services.data_manager import UnifiedDataManager


class DataAdapter:
    """旧接口只读视图"""

    def __init__(self, data_manager: UnifiedDataManager):
        self.data_manager = data_manager

    def _find_collection(self, collection_id: str) -> Optional[Collection]:
        index = self.data_manager.get_collection_index_by_id(collection_id)
        return self.data_manager.get_collection(index) if index >= 0 else None

    def _entries(self, collection_id: str, status: UnitStatus):
        collection = self._find_collection(collection_id)
        if collection is None:
            return
        for level in collection.levels:
            for unit in level.units:
                if unit.status == status:
                    yield level, unit, {
                        "unit": LegacyUnitRef(id=unit.id, name=unit.name),
                        "level_name": level.name,
                        "level_id": level.id,
                        "collection_id": collection_id,
                    }

    def get_collections(self) -> List[LegacyCollection]:
        return [
            LegacyCollection(id=c.id, name=c.name, created_at=c.created_at)
            for c in self.data_manager.get_collections()
        ]

    def get_levels_by_collection_id(self, collection_id: str) -> List[LegacyLevel]:
        collection = self._find_collection(collection_id)
        if collection is None:
            return []
        return [
            LegacyLevel(
                id=level.id,
                collection_id=collection_id,
                name=level.name,
                identifier=level.identifier,
                units=[LegacyUnitRef(id=u.id, name=u.name) for u in level.units],
                created_at=level.created_at,
            )
            for level in collection.levels
        ]

    def get_features_by_collection_id(self, collection_id: str) -> List[LegacyFeature]:
        """新结构中特性是全局的，collection_id 参数被忽略"""
        return [
            LegacyFeature(
                id=f.id,
                collection_id=GLOBAL_COLLECTION_ID,
                name=f.name,
                type=f.type,
                created_at=f.created_at,
            )
            for f in self.data_manager.get_features_array()
        ]

    def get_recommended_units(self, collection_id: str) -> List[RecommendedUnit]:
        return [RecommendedUnit(**entry) for _, _, entry in self._entries(collection_id, UnitStatus.RECOMMENDED)]

    def get_trashed_units(self, collection_id: str) -> List[TrashedUnit]:
        return [TrashedUnit(**entry) for _, _, entry in self._entries(collection_id, UnitStatus.TRASH)]

    def get_favorite_units(self, collection_id: str) -> List[FavoriteUnit]:
        return [
            FavoriteUnit(
                **entry,
                reason=unit.favorite_reason or DEFAULT_FAVORITE_REASON,
                created_at=unit.favorite_created_at or now_ms(),
            )
            for _, unit, entry in self._entries(collection_id, UnitStatus.FAVORITE)
        ]

    def get_unit_features(self) -> List[LegacyUnitFeature]:
        return [
            LegacyUnitFeature(unit_id=unit.id, feature_id=item.feature_id, value=item.value)
            for collection in self.data_manager.get_collections()
            for level in collection.levels
            for unit in level.units
            for item in unit.features
        ]
