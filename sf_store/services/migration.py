"""
数据迁移 (Data Migration)
在旧版分表结构与统一嵌套结构之间双向转换。
两个方向都是纯函数：不读写存储、不修改输入对象，缺失的输入按空处理。
"""
from typing import Dict, List, Optional

from sf_store.core.schemas import (
    DEFAULT_FAVORITE_REASON,
    GLOBAL_COLLECTION_ID,
    Collection,
    DataStructure,
    FavoriteUnit,
    Feature,
    LegacyBundle,
    LegacyCollection,
    LegacyFeature,
    LegacyLevel,
    LegacyUnitFeature,
    LegacyUnitRef,
    Level,
    RecommendedUnit,
    TrashedUnit,
    Unit,
    UnitFeatureValue,
    UnitStatus,
    feature_value_matches,
    now_ms,
)


def _entries_for_level(mapping: Optional[Dict[str, list]], collection_id: str, level_id: str) -> list:
    return [entry for entry in (mapping or {}).get(collection_id) or [] if entry.level_id == level_id]


def _resolve_status(unit_id: str, favorite_ids, recommended_ids, trashed_ids) -> UnitStatus:
    """
    单元同时出现在多个旧列表中时按 favorite > recommended > trash > normal 取第一个命中的状态。
    """
    if unit_id in favorite_ids:
        return UnitStatus.FAVORITE
    if unit_id in recommended_ids:
        return UnitStatus.RECOMMENDED
    if unit_id in trashed_ids:
        return UnitStatus.TRASH
    return UnitStatus.NORMAL


def migrate_to_unified(
    old_collections: Optional[List[LegacyCollection]] = None,
    old_levels: Optional[List[LegacyLevel]] = None,
    old_features: Optional[List[LegacyFeature]] = None,
    old_unit_features: Optional[List[LegacyUnitFeature]] = None,
    old_recommended: Optional[Dict[str, List[RecommendedUnit]]] = None,
    old_trashed: Optional[Dict[str, List[TrashedUnit]]] = None,
    old_favorite: Optional[Dict[str, List[FavoriteUnit]]] = None,
) -> DataStructure:
    """
    从旧数据结构迁移到统一数据结构。

    特性全部变为全局（丢弃 collectionId）；推荐 / 回收站 / 收藏三张列表折叠为单元自身的 status。
    单元-特性行按 unitId 挂到单元上，但引用了不存在特性、或取值与特性类型不符的行会被跳过：
    这样迁移结果中单元引用的 featureId 一定存在于 features 中，取值也一定合法。
    """
    features = {
        old.id: Feature(id=old.id, name=old.name, type=old.type, created_at=old.created_at)
        for old in old_features or []
    }

    # 按单元ID聚合特性值，保持原有顺序
    values_by_unit: Dict[str, List[UnitFeatureValue]] = {}
    for row in old_unit_features or []:
        feature = features.get(row.feature_id)
        if feature is None or not feature_value_matches(feature.type, row.value):
            continue
        values_by_unit.setdefault(row.unit_id, []).append(
            UnitFeatureValue(feature_id=row.feature_id, value=row.value)
        )

    collections = []
    for old_collection in old_collections or []:
        levels = []
        for old_level in old_levels or []:
            if old_level.collection_id != old_collection.id:
                continue

            recommended_ids = {e.unit.id for e in _entries_for_level(old_recommended, old_collection.id, old_level.id)}
            trashed_ids = {e.unit.id for e in _entries_for_level(old_trashed, old_collection.id, old_level.id)}
            favorite_map = {}
            for entry in _entries_for_level(old_favorite, old_collection.id, old_level.id):
                favorite_map.setdefault(entry.unit.id, entry)

            units = []
            for old_unit in old_level.units:
                status = _resolve_status(old_unit.id, favorite_map, recommended_ids, trashed_ids)
                unit_data = {
                    "id": old_unit.id,
                    "name": old_unit.name,
                    "status": status,
                    "features": [v.model_copy() for v in values_by_unit.get(old_unit.id, [])],
                }
                if status == UnitStatus.FAVORITE:
                    entry = favorite_map[old_unit.id]
                    unit_data["favorite_reason"] = entry.reason or DEFAULT_FAVORITE_REASON
                    # 旧数据缺少收藏时间时沿用层次的创建时间，保证迁移结果只取决于输入
                    unit_data["favorite_created_at"] = (
                        entry.created_at if entry.created_at is not None else old_level.created_at
                    )
                units.append(Unit(**unit_data))

            levels.append(Level(
                id=old_level.id,
                name=old_level.name,
                identifier=old_level.identifier,
                units=units,
                created_at=old_level.created_at,
            ))

        collections.append(Collection(
            id=old_collection.id,
            name=old_collection.name,
            created_at=old_collection.created_at,
            levels=levels,
        ))

    return DataStructure(collections=collections, features=features)


def migrate_bundle(bundle: LegacyBundle) -> DataStructure:
    """migrate_to_unified 的打包版本"""
    return migrate_to_unified(
        bundle.collections,
        bundle.levels,
        bundle.features,
        bundle.unit_features,
        bundle.recommended_units,
        bundle.trashed_units,
        bundle.favorite_units,
    )


def migrate_to_legacy(data: DataStructure) -> LegacyBundle:
    """
    从统一数据结构迁移回旧数据结构（用于兼容旧版读取方）。
    每个集合在三张状态表中都有一个（可能为空的）列表；normal 单元不出现在任何状态表中。
    """
    bundle = LegacyBundle()

    for feature in data.features.values():
        bundle.features.append(LegacyFeature(
            id=feature.id,
            collection_id=GLOBAL_COLLECTION_ID,
            name=feature.name,
            type=feature.type,
            created_at=feature.created_at,
        ))

    for collection in data.collections:
        bundle.collections.append(LegacyCollection(
            id=collection.id, name=collection.name, created_at=collection.created_at
        ))
        recommended = bundle.recommended_units.setdefault(collection.id, [])
        trashed = bundle.trashed_units.setdefault(collection.id, [])
        favorite = bundle.favorite_units.setdefault(collection.id, [])

        for level in collection.levels:
            old_level = LegacyLevel(
                id=level.id,
                collection_id=collection.id,
                name=level.name,
                identifier=level.identifier,
                created_at=level.created_at,
            )
            for unit in level.units:
                ref = LegacyUnitRef(id=unit.id, name=unit.name)
                old_level.units.append(ref)
                placement = {
                    "unit": ref.model_copy(),
                    "level_name": level.name,
                    "level_id": level.id,
                    "collection_id": collection.id,
                }
                if unit.status == UnitStatus.RECOMMENDED:
                    recommended.append(RecommendedUnit(**placement))
                elif unit.status == UnitStatus.TRASH:
                    trashed.append(TrashedUnit(**placement))
                elif unit.status == UnitStatus.FAVORITE:
                    favorite.append(FavoriteUnit(
                        **placement,
                        reason=unit.favorite_reason or DEFAULT_FAVORITE_REASON,
                        created_at=unit.favorite_created_at or now_ms(),
                    ))

                for value in unit.features:
                    bundle.unit_features.append(LegacyUnitFeature(
                        unit_id=unit.id, feature_id=value.feature_id, value=value.value
                    ))
            bundle.levels.append(old_level)

    return bundle
