"""
统一存储网关 (Unified Storage)
负责检测并执行一次性的旧数据迁移，以及统一数据结构的加载与保存。

键值存储中有两个持久条目：迁移完成标记（"true" / 不存在）与统一数据 JSON。
只有 save / write_legacy / reset_migration_flag 会把存储错误抛给调用方；
其余读取路径失败时记录日志并回退为空数据结构。
"""
import json
import logging
from typing import Dict, Optional

from pydantic import ValidationError

from sf_store.core.exceptions import MigrationError, StorageOperationError
from sf_store.core.schemas import DataStructure, LegacyBundle, LoadResult, LoadSource
from sf_store.core.validation import parse_data_structure
from sf_store.services.migration import migrate_bundle, migrate_to_legacy

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "@sf_app:"
UNIFIED_DATA_KEY = "unified_data"
MIGRATION_FLAG_KEY = "migration_completed"

# 旧版键名，与 LegacyBundle 的字段名一致
LEGACY_KEYS = (
    "collections",
    "levels",
    "features",
    "unit_features",
    "recommended_units",
    "trashed_units",
    "favorite_units",
)
LEGACY_MARKER_KEY = "collections"


class UnifiedStorage:
    """统一存储管理器"""

    def __init__(self, store, key_prefix: str = DEFAULT_KEY_PREFIX):
        self.store = store
        self.key_prefix = key_prefix

    def key(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    @property
    def unified_key(self) -> str:
        return self.key(UNIFIED_DATA_KEY)

    @property
    def migration_flag_key(self) -> str:
        return self.key(MIGRATION_FLAG_KEY)

    # ========== 迁移 ==========

    def needs_migration(self) -> bool:
        """
        检查是否需要迁移。
        已有完成标记时返回 False；否则仅当旧版 collections 键存在时返回 True。
        读取失败按“无需迁移”处理，避免反复执行破坏性的迁移。
        """
        try:
            if self.store.get(self.migration_flag_key) == "true":
                return False
            return self.store.get(self.key(LEGACY_MARKER_KEY)) is not None
        except Exception as e:
            logger.error(f"检查迁移状态失败: {e}", exc_info=True)
            return False

    def _read_legacy_values(self) -> Dict[str, Optional[str]]:
        keys = [self.key(name) for name in LEGACY_KEYS]
        get_many = getattr(self.store, "get_many", None)
        if get_many is not None:
            return get_many(keys)
        return {key: self.store.get(key) for key in keys}

    def read_legacy_bundle(self) -> LegacyBundle:
        """读取旧版七张表，缺失的表按空处理"""
        try:
            values = self._read_legacy_values()
        except StorageOperationError as e:
            raise MigrationError(f"读取旧数据失败: {e}") from e

        raw = {}
        for name in LEGACY_KEYS:
            json_value = values.get(self.key(name))
            if json_value is None:
                continue
            try:
                parsed = json.loads(json_value)
            except ValueError as e:
                raise MigrationError(f"旧数据 {name} 不是合法 JSON: {e}") from e
            if parsed is not None:
                raw[name] = parsed

        try:
            return LegacyBundle.model_validate(raw)
        except ValidationError as e:
            raise MigrationError(f"旧数据格式不正确: {e}") from e

    def migrate_with_status(self) -> LoadResult:
        """
        执行数据迁移：读取旧数据 → 转换 → 保存统一数据 → 写入完成标记。
        任一步骤失败都回退为空数据结构，不会抛出异常。
        """
        try:
            bundle = self.read_legacy_bundle()
            data = migrate_bundle(bundle)
            self.save(data)
            # 标记必须在统一数据写入成功之后设置
            self.store.set(self.migration_flag_key, "true")
            logger.info(
                f"数据迁移完成: 集合 {len(data.collections)} 个, 特性 {len(data.features)} 个"
            )
            return LoadResult(data=data, source=LoadSource.MIGRATED)
        except Exception as e:
            logger.error(f"数据迁移失败: {e}", exc_info=True)
            logger.warning("旧数据未能迁移，已使用空数据启动。")
            return LoadResult(data=DataStructure(), source=LoadSource.RECOVERED, error=str(e))

    def migrate(self) -> DataStructure:
        return self.migrate_with_status().data

    # ========== 加载与保存 ==========

    def load_with_status(self) -> LoadResult:
        """加载统一数据（必要时先迁移），并说明数据来源"""
        if self.needs_migration():
            logger.info("检测到旧数据，开始迁移...")
            return self.migrate_with_status()

        try:
            json_value = self.store.get(self.unified_key)
        except Exception as e:
            logger.error(f"加载统一数据失败: {e}", exc_info=True)
            return LoadResult(data=DataStructure(), source=LoadSource.RECOVERED, error=str(e))

        if json_value is None:
            return LoadResult(data=DataStructure(), source=LoadSource.EMPTY)

        result = parse_data_structure(json_value)
        if not result.ok:
            logger.warning(f"统一数据格式不正确，使用默认数据: {result.error}")
            return LoadResult(data=DataStructure(), source=LoadSource.RECOVERED, error=result.error)
        return LoadResult(data=result.data, source=LoadSource.UNIFIED)

    def load(self) -> DataStructure:
        return self.load_with_status().data

    def save(self, data: DataStructure):
        """整体覆盖保存统一数据；失败时抛出 StorageOperationError"""
        try:
            self.store.set(self.unified_key, data.to_json())
        except StorageOperationError as e:
            logger.error(f"保存统一数据失败: {e}")
            raise
        except Exception as e:
            logger.error(f"保存统一数据失败: {e}", exc_info=True)
            raise StorageOperationError(f"保存统一数据失败: {e}") from e

    # ========== 旧格式回写 ==========

    def write_legacy(self, data: DataStructure):
        """将统一数据按旧版七张表的格式写回存储，供尚未升级的读取方使用"""
        bundle = migrate_to_legacy(data).model_dump(mode="json", by_alias=True, exclude_none=True)
        aliases = {name: field.alias or name for name, field in LegacyBundle.model_fields.items()}
        try:
            for name in LEGACY_KEYS:
                self.store.set(self.key(name), json.dumps(bundle[aliases[name]], ensure_ascii=False))
        except StorageOperationError:
            raise
        except Exception as e:
            raise StorageOperationError(f"写入旧格式数据失败: {e}") from e
        logger.info("已将统一数据写回旧格式。")

    def reset_migration_flag(self):
        """删除迁移完成标记，下次加载时若存在旧数据将重新迁移"""
        self.store.remove(self.migration_flag_key)
        logger.info("迁移完成标记已清除。")
