"""
数据会话 (Data Session)
一次会话内持有统一数据管理器，并把导入、剪贴板等用户操作与持久化串联起来。
"""
from __future__ import annotations
import logging

from sf_store.core.schemas import LoadResult
from sf_store.services.data_manager import UnifiedDataManager
from sf_store.services.unified_storage import UnifiedStorage

logger = logging.getLogger(__name__)

class DataSession:
    """
    统一数据会话。
    load 在启动时调用一次（会自动处理迁移）；之后所有修改都通过 manager 完成，
    再由 save / update 整体写回存储。
    """

    def __init__(self, storage: UnifiedStorage, clipboard=None):
        self.storage = storage
        self.manager = UnifiedDataManager(clipboard=clipboard)
        self.loading = False
        self.last_load: LoadResult | None = None

    def load(self) -> LoadResult:
        """从统一存储加载数据并替换当前数据"""
        self.loading = True
        try:
            result = self.storage.load_with_status()
            self.manager.set_data(result.data)
            self.last_load = result
            logger.info(f"数据已加载 (来源: {result.source.value})")
            return result
        finally:
            self.loading = False

    def save(self):
        """保存当前数据；失败时抛出 StorageOperationError，由调用方提示用户重试"""
        self.storage.save(self.manager.get_data())

    def update(self):
        """在修改 manager 中的数据之后调用"""
        self.save()

    def export_data(self) -> bool:
        """导出数据到剪贴板"""
        return self.manager.copy_to_clipboard()

    def import_data(self) -> bool:
        """从剪贴板导入数据，成功后立即保存"""
        success = self.manager.paste_from_clipboard()
        if success:
            self.update()
        return success

    def export_json(self) -> str:
        return self.manager.export_to_json()

    def import_json(self, json_string: str) -> bool:
        """导入JSON字符串，成功后立即保存"""
        success = self.manager.import_from_json(json_string)
        if success:
            self.update()
        return success
