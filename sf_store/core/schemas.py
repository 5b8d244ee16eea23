"""
业务对象定义 (Schemas)
定义统一数据结构（集合 → 层次 → 单元 + 全局特性）、旧版分表数据结构，
以及各层之间传递的结果对象。

统一数据结构的 JSON 线格式使用 camelCase 字段名（collections / levels / units /
featureId / createdAt ...），与导出、导入、剪贴板交换的格式完全一致。
"""
import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# 收藏原因缺省值
DEFAULT_FAVORITE_REASON = "无"
# 旧结构中表示“全局特性”的集合ID
GLOBAL_COLLECTION_ID = "global"


def now_ms() -> int:
    """当前时间戳（毫秒）"""
    return int(time.time() * 1000)


class UnitStatus(str, Enum):
    """单元状态标记（互斥）"""
    NORMAL = "normal"
    RECOMMENDED = "recommended"
    FAVORITE = "favorite"
    TRASH = "trash"


class LevelIdentifier(str, Enum):
    """层次的单元命名方式：数字 1,2,3… 或英文 A,B,C…"""
    NUMERIC = "numeric"
    ALPHA = "alpha"


class FeatureType(str, Enum):
    """特性类型：数值或单选（布尔）"""
    NUMERIC = "numeric"
    SINGLE_CHOICE = "single_choice"


# 数值特性的取值范围（含两端）
FEATURE_VALUE_MIN = 0
FEATURE_VALUE_MAX = 30

# 数值类型存储整数，单选类型存储布尔值
FeatureValue = Union[bool, int]
# 旧数据中的特性值不做类型收窄，迁移时再按特性类型筛选
LegacyFeatureValue = Union[bool, int, float]


def is_numeric_value(value) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and FEATURE_VALUE_MIN <= value <= FEATURE_VALUE_MAX
    )


def feature_value_matches(feature_type, value) -> bool:
    """单选特性只接受布尔值，数值特性只接受范围内的整数"""
    if FeatureType(feature_type) == FeatureType.SINGLE_CHOICE:
        return isinstance(value, bool)
    return is_numeric_value(value)


class SchemaModel(BaseModel):
    """所有数据模型的基类：Python 侧使用 snake_case，线格式使用 camelCase。"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- 统一数据结构 ---

class UnitFeatureValue(SchemaModel):
    """单元关联的特性值"""
    feature_id: str
    value: FeatureValue

    @field_validator("value")
    @classmethod
    def _check_range(cls, value):
        if not isinstance(value, bool) and not is_numeric_value(value):
            raise ValueError(f"数值特性取值必须在 {FEATURE_VALUE_MIN}~{FEATURE_VALUE_MAX} 之间: {value}")
        return value


class Unit(SchemaModel):
    """
    单元：最小数据单位，包含状态标记和特性值。
    favorite_reason / favorite_created_at 仅在 status 为 favorite 时存在。
    """
    id: str
    name: str
    status: UnitStatus = UnitStatus.NORMAL
    features: List[UnitFeatureValue] = Field(default_factory=list)
    favorite_reason: Optional[str] = None
    favorite_created_at: Optional[int] = None

    @model_validator(mode="after")
    def _normalize(self):
        if self.status == UnitStatus.FAVORITE:
            if not self.favorite_reason:
                self.favorite_reason = DEFAULT_FAVORITE_REASON
            if self.favorite_created_at is None:
                self.favorite_created_at = now_ms()
        else:
            self.favorite_reason = None
            self.favorite_created_at = None

        # 同一单元内 featureId 唯一，保留第一次出现的值
        seen = set()
        unique_features = []
        for item in self.features:
            if item.feature_id in seen:
                continue
            seen.add(item.feature_id)
            unique_features.append(item)
        self.features = unique_features
        return self


class Level(SchemaModel):
    """层次：包含有序的单元列表"""
    id: str
    name: str
    identifier: LevelIdentifier = LevelIdentifier.NUMERIC
    units: List[Unit] = Field(default_factory=list)
    created_at: int


class Collection(SchemaModel):
    """集合：包含集合元数据和有序的层次列表"""
    id: str
    name: str
    created_at: int
    levels: List[Level] = Field(default_factory=list)


class Feature(SchemaModel):
    """特性：全局的、可以被任意单元关联的属性"""
    id: str
    name: str
    type: FeatureType
    created_at: int


class DataStructure(SchemaModel):
    """
    完整数据结构（根对象）
    collections: 集合数组；features: 以特性ID为键的特性对象。
    不变量：任何单元引用的 featureId 都必须存在于 features 中。
    """
    collections: List[Collection] = Field(default_factory=list)
    features: Dict[str, Feature] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _drop_invalid_feature_refs(self):
        # 删除引用不存在特性、或值与特性类型不符的特性值
        for collection in self.collections:
            for level in collection.levels:
                for unit in level.units:
                    unit.features = [
                        f for f in unit.features
                        if f.feature_id in self.features
                        and feature_value_matches(self.features[f.feature_id].type, f.value)
                    ]
        return self

    def to_wire(self) -> Dict[str, Any]:
        """转换为 JSON 线格式字典（camelCase，省略缺失的收藏字段）"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self, indent: Optional[int] = None) -> str:
        """序列化为 JSON 字符串"""
        return json.dumps(self.to_wire(), ensure_ascii=False, indent=indent)


# --- 旧版分表数据结构（仅作为迁移输入 / 兼容视图输出） ---

class LegacyCollection(SchemaModel):
    id: str
    name: str
    created_at: int = 0


class LegacyUnitRef(SchemaModel):
    id: str
    name: str


class LegacyLevel(SchemaModel):
    id: str
    collection_id: str
    name: str
    identifier: LevelIdentifier = LevelIdentifier.NUMERIC
    units: List[LegacyUnitRef] = Field(default_factory=list)
    created_at: int = 0


class LegacyFeature(SchemaModel):
    id: str
    collection_id: str = GLOBAL_COLLECTION_ID
    name: str
    type: FeatureType
    created_at: int = 0


class LegacyUnitFeature(SchemaModel):
    """单元-特性扁平关联表中的一行"""
    unit_id: str
    feature_id: str
    value: LegacyFeatureValue


class StatusUnitEntry(SchemaModel):
    """推荐 / 回收站 / 收藏 列表中的一项"""
    unit: LegacyUnitRef
    level_name: str = ""
    level_id: str
    collection_id: str


class RecommendedUnit(StatusUnitEntry):
    pass


class TrashedUnit(StatusUnitEntry):
    pass


class FavoriteUnit(StatusUnitEntry):
    reason: Optional[str] = None
    created_at: Optional[int] = None


class LegacyBundle(SchemaModel):
    """旧版七张表的完整快照，状态列表均以集合ID为键"""
    collections: List[LegacyCollection] = Field(default_factory=list)
    levels: List[LegacyLevel] = Field(default_factory=list)
    features: List[LegacyFeature] = Field(default_factory=list)
    unit_features: List[LegacyUnitFeature] = Field(default_factory=list)
    recommended_units: Dict[str, List[RecommendedUnit]] = Field(default_factory=dict)
    trashed_units: Dict[str, List[TrashedUnit]] = Field(default_factory=dict)
    favorite_units: Dict[str, List[FavoriteUnit]] = Field(default_factory=dict)

    @field_validator("recommended_units", "trashed_units", "favorite_units", mode="before")
    @classmethod
    def _null_lists_as_empty(cls, value):
        # 旧数据中某个集合的列表可能是 null，按空列表处理
        if value is None:
            return {}
        if isinstance(value, dict):
            return {key: [] if entries is None else entries for key, entries in value.items()}
        return value


# --- 结果对象 ---

@dataclass
class ValidationResult:
    """结构校验结果：成功时携带解析后的数据，失败时携带原因"""
    ok: bool
    data: Optional[DataStructure] = None
    error: Optional[str] = None


class LoadSource(str, Enum):
    """加载结果的数据来源"""
    UNIFIED = "unified"      # 读取到已存在的统一数据
    MIGRATED = "migrated"    # 由旧版数据迁移而来
    EMPTY = "empty"          # 尚无任何数据
    RECOVERED = "recovered"  # 读取/迁移失败，回退为空数据


@dataclass
class LoadResult:
    """统一存储加载结果"""
    data: DataStructure
    source: LoadSource
    error: Optional[str] = None

    @property
    def recovered(self) -> bool:
        return self.source == LoadSource.RECOVERED


@dataclass
class UnitLocation:
    """单元在树中的完整索引路径"""
    collection_index: int
    level_index: int
    unit_index: int
    unit: Unit
