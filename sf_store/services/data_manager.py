"""
统一数据管理器 (Unified Data Manager)
在内存中独占持有一份 DataStructure，提供集合 / 层次 / 单元 / 特性的增删改查、
JSON 导入导出与剪贴板复制粘贴。

约定：
- 集合、层次、单元按位置索引访问；索引越界（含负数）时什么也不做：
  读取方法返回 None（列表方法返回空列表），修改方法返回 False，成功时返回 True。
- 所有方法都是同步的，不会隐式保存；持久化由调用方通过 UnifiedStorage.save 完成。
"""
import logging
from typing import Dict, List, Optional

from sf_store.core.schemas import (
    DEFAULT_FAVORITE_REASON,
    Collection,
    DataStructure,
    Feature,
    FeatureType,
    FeatureValue,
    Level,
    LevelIdentifier,
    Unit,
    UnitFeatureValue,
    UnitLocation,
    UnitStatus,
    feature_value_matches,
    now_ms,
)
from sf_store.core.validation import parse_data_structure
from sf_store.infra.clipboard import SystemClipboard

logger = logging.getLogger(__name__)


def generate_unit_name(identifier, index: int) -> str:
    """
    按层次的标识类型生成第 index 个（从 0 开始）单元的名称。
    数字：1, 2, 3…；英文：A…Z, AA, AB…
    """
    if index < 0:
        raise ValueError(f"单元序号不能为负数: {index}")
    if LevelIdentifier(identifier) == LevelIdentifier.NUMERIC:
        return str(index + 1)
    n = index + 1
    name = ""
    while n > 0:
        n, rem = divmod(n - 1, 26)
        name = chr(65 + rem) + name
    return name


def _in_range(index: int, items: list) -> bool:
    return 0 <= index < len(items)


def _move(items: list, from_index: int, to_index: int) -> bool:
    if not (_in_range(from_index, items) and _in_range(to_index, items)):
        return False
    items.insert(to_index, items.pop(from_index))
    return True


def _name_taken(names, name: str, exclude_index: Optional[int]) -> bool:
    target = name.strip()
    return any(
        existing.strip() == target
        for i, existing in enumerate(names)
        if i != exclude_index
    )


class UnifiedDataManager:
    """统一数据管理器"""

    def __init__(self, initial_data: Optional[DataStructure] = None, clipboard=None):
        self._data = initial_data if initial_data is not None else DataStructure()
        self.clipboard = clipboard if clipboard is not None else SystemClipboard()

    def get_data(self) -> DataStructure:
        """获取完整数据"""
        return self._data

    def set_data(self, data: DataStructure):
        """整体替换数据"""
        self._data = data

    # ========== 集合相关操作 ==========

    def get_collections(self) -> List[Collection]:
        return self._data.collections

    def add_collection(self, collection: Collection):
        self._data.collections.append(collection)

    def remove_collection(self, collection_index: int) -> bool:
        if not _in_range(collection_index, self._data.collections):
            return False
        del self._data.collections[collection_index]
        return True

    def update_collection(self, collection_index: int, collection: Collection) -> bool:
        if not _in_range(collection_index, self._data.collections):
            return False
        self._data.collections[collection_index] = collection
        return True

    def get_collection(self, collection_index: int) -> Optional[Collection]:
        if not _in_range(collection_index, self._data.collections):
            return None
        return self._data.collections[collection_index]

    def get_collection_index_by_id(self, collection_id: str) -> int:
        """根据集合ID获取集合索引，不存在时返回 -1"""
        for i, collection in enumerate(self._data.collections):
            if collection.id == collection_id:
                return i
        return -1

    def move_collection(self, from_index: int, to_index: int) -> bool:
        return _move(self._data.collections, from_index, to_index)

    def is_collection_name_taken(self, name: str, exclude_index: Optional[int] = None) -> bool:
        return _name_taken((c.name for c in self._data.collections), name, exclude_index)

    # ========== 层次相关操作 ==========

    def get_levels(self, collection_index: int) -> List[Level]:
        collection = self.get_collection(collection_index)
        return collection.levels if collection else []

    def add_level(self, collection_index: int, level: Level) -> bool:
        collection = self.get_collection(collection_index)
        if collection is None:
            return False
        collection.levels.append(level)
        return True

    def remove_level(self, collection_index: int, level_index: int) -> bool:
        collection = self.get_collection(collection_index)
        if collection is None or not _in_range(level_index, collection.levels):
            return False
        del collection.levels[level_index]
        return True

    def update_level(self, collection_index: int, level_index: int, level: Level) -> bool:
        collection = self.get_collection(collection_index)
        if collection is None or not _in_range(level_index, collection.levels):
            return False
        collection.levels[level_index] = level
        return True

    def get_level(self, collection_index: int, level_index: int) -> Optional[Level]:
        collection = self.get_collection(collection_index)
        if collection is None or not _in_range(level_index, collection.levels):
            return None
        return collection.levels[level_index]

    def move_level(self, collection_index: int, from_index: int, to_index: int) -> bool:
        """调整层次顺序（拖拽排序）"""
        collection = self.get_collection(collection_index)
        if collection is None:
            return False
        return _move(collection.levels, from_index, to_index)

    def is_level_name_taken(self, collection_index: int, name: str, exclude_index: Optional[int] = None) -> bool:
        return _name_taken((level.name for level in self.get_levels(collection_index)), name, exclude_index)

    # ========== 单元相关操作 ==========

    def get_units(self, collection_index: int, level_index: int) -> List[Unit]:
        level = self.get_level(collection_index, level_index)
        return level.units if level else []

    def add_unit(self, collection_index: int, level_index: int, unit: Unit) -> bool:
        level = self.get_level(collection_index, level_index)
        if level is None:
            return False
        level.units.append(unit)
        return True

    def add_generated_unit(self, collection_index: int, level_index: int, unit_id: str = None) -> Optional[Unit]:
        """
        按层次的标识类型自动命名并追加一个 normal 单元。
        名称从当前单元数量开始编号，跳过层次内已被占用的名称。
        """
        level = self.get_level(collection_index, level_index)
        if level is None:
            return None
        index = len(level.units)
        taken = {u.name for u in level.units}
        name = generate_unit_name(level.identifier, index)
        while name in taken:
            index += 1
            name = generate_unit_name(level.identifier, index)
        unit = Unit(id=unit_id or f"{now_ms()}-{len(level.units)}", name=name)
        level.units.append(unit)
        return unit

    def remove_unit(self, collection_index: int, level_index: int, unit_index: int) -> bool:
        level = self.get_level(collection_index, level_index)
        if level is None or not _in_range(unit_index, level.units):
            return False
        del level.units[unit_index]
        return True

    def update_unit(self, collection_index: int, level_index: int, unit_index: int, unit: Unit) -> bool:
        level = self.get_level(collection_index, level_index)
        if level is None or not _in_range(unit_index, level.units):
            return False
        level.units[unit_index] = unit
        return True

    def get_unit(self, collection_index: int, level_index: int, unit_index: int) -> Optional[Unit]:
        level = self.get_level(collection_index, level_index)
        if level is None or not _in_range(unit_index, level.units):
            return None
        return level.units[unit_index]

    def move_unit(self, collection_index: int, level_index: int, from_index: int, to_index: int) -> bool:
        level = self.get_level(collection_index, level_index)
        if level is None:
            return False
        return _move(level.units, from_index, to_index)

    def is_unit_name_taken(
        self, collection_index: int, level_index: int, name: str, exclude_index: Optional[int] = None
    ) -> bool:
        return _name_taken((u.name for u in self.get_units(collection_index, level_index)), name, exclude_index)

    def update_unit_status(
        self,
        collection_index: int,
        level_index: int,
        unit_index: int,
        status,
        favorite_reason: Optional[str] = None,
    ) -> bool:
        """
        更新单元状态。
        设为 favorite 时记录收藏原因（缺省为“无”）和当前时间；其他状态会删除这两个字段。
        """
        unit = self.get_unit(collection_index, level_index, unit_index)
        if unit is None:
            return False
        status = UnitStatus(status)
        unit.status = status
        if status == UnitStatus.FAVORITE:
            unit.favorite_reason = favorite_reason or DEFAULT_FAVORITE_REASON
            unit.favorite_created_at = now_ms()
        else:
            unit.favorite_reason = None
            unit.favorite_created_at = None
        return True

    def find_unit(self, unit_id: str) -> Optional[UnitLocation]:
        """根据单元ID查找单元（遍历所有集合、层次），返回第一个匹配项"""
        for ci, collection in enumerate(self._data.collections):
            for li, level in enumerate(collection.levels):
                for ui, unit in enumerate(level.units):
                    if unit.id == unit_id:
                        return UnitLocation(ci, li, ui, unit)
        return None

    def get_units_by_status(self, collection_index: int, status) -> List[UnitLocation]:
        status = UnitStatus(status)
        return [
            UnitLocation(collection_index, li, ui, unit)
            for li, level in enumerate(self.get_levels(collection_index))
            for ui, unit in enumerate(level.units)
            if unit.status == status
        ]

    def clear_trash(self, collection_index: int) -> int:
        """清空回收站：删除集合中所有 trash 单元，返回删除的数量"""
        removed = 0
        for level in self.get_levels(collection_index):
            kept = [u for u in level.units if u.status != UnitStatus.TRASH]
            removed += len(level.units) - len(kept)
            level.units[:] = kept
        return removed

    # ========== 特性相关操作 ==========

    def get_features(self) -> Dict[str, Feature]:
        return self._data.features

    def get_features_array(self) -> List[Feature]:
        return list(self._data.features.values())

    def get_feature(self, feature_id: str) -> Optional[Feature]:
        return self._data.features.get(feature_id)

    def add_feature(self, feature: Feature):
        self._data.features[feature.id] = feature

    def update_feature(self, feature_id: str, feature: Feature) -> bool:
        if feature_id not in self._data.features:
            return False
        self._data.features[feature_id] = feature
        return True

    def remove_feature(self, feature_id: str) -> bool:
        """
        删除特性：先从所有集合、层次、单元中删除对它的引用，再删除特性本身。
        返回特性此前是否存在。
        """
        for collection in self._data.collections:
            for level in collection.levels:
                for unit in level.units:
                    unit.features = [f for f in unit.features if f.feature_id != feature_id]
        return self._data.features.pop(feature_id, None) is not None

    def is_feature_name_taken(self, name: str, exclude_id: Optional[str] = None) -> bool:
        target = name.strip()
        return any(
            f.name.strip() == target
            for f in self._data.features.values()
            if f.id != exclude_id
        )

    def get_unit_feature_value(self, unit: Unit, feature_id: str) -> Optional[FeatureValue]:
        """读取单元的特性值；数值特性没有值时返回 0"""
        for item in unit.features:
            if item.feature_id == feature_id:
                return item.value
        feature = self.get_feature(feature_id)
        if feature is not None and feature.type == FeatureType.NUMERIC:
            return 0
        return None

    def set_unit_feature_value(
        self, collection_index: int, level_index: int, unit_index: int, feature_id: str, value: FeatureValue
    ) -> bool:
        """设置单元的特性值；特性不存在、或值不是布尔（单选）/ 范围内整数（数值）时返回 False"""
        unit = self.get_unit(collection_index, level_index, unit_index)
        feature = self.get_feature(feature_id)
        if unit is None or feature is None or not feature_value_matches(feature.type, value):
            return False
        for item in unit.features:
            if item.feature_id == feature_id:
                item.value = value
                return True
        unit.features.append(UnitFeatureValue(feature_id=feature_id, value=value))
        return True

    # ========== 导入导出相关操作 ==========

    def export_to_json(self) -> str:
        """导出数据为JSON字符串"""
        return self._data.to_json(indent=2)

    def import_from_json(self, json_string: str) -> bool:
        """
        从JSON字符串导入数据。
        校验失败时返回 False，当前数据保持不变。
        """
        result = parse_data_structure(json_string)
        if not result.ok:
            logger.error(f"导入数据失败: {result.error}")
            return False
        self._data = result.data
        logger.info(f"导入数据成功: 集合 {len(self._data.collections)} 个")
        return True

    def copy_to_clipboard(self) -> bool:
        """复制数据到剪贴板"""
        try:
            self.clipboard.set_string(self.export_to_json())
            return True
        except Exception as e:
            logger.error(f"复制到剪贴板失败: {e}")
            return False

    def paste_from_clipboard(self) -> bool:
        """从剪贴板读取数据并导入"""
        try:
            json_string = self.clipboard.get_string()
        except Exception as e:
            logger.error(f"从剪贴板读取失败: {e}")
            return False
        if not json_string:
            return False
        return self.import_from_json(json_string)
