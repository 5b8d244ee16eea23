"""
启动流程 (Workflow)
系统的 Facade 层：读取配置、初始化日志与存储，并在唯一的启动路径上完成数据加载（含迁移）。
"""
from __future__ import annotations
import logging

from sf_store.config import load_environment
from sf_store.config.loader import StoreSettings, load_config, settings_from_config
from sf_store.core import logger as logger_config
from sf_store.infra.clipboard import create_clipboard
from sf_store.infra.storage.kv_store import create_store
from sf_store.services.session import DataSession
from sf_store.services.unified_storage import UnifiedStorage

logger = logging.getLogger(__name__)

def build_session(settings: StoreSettings) -> DataSession:
    """按设置创建存储、剪贴板与会话（不加载数据）"""
    store = create_store(settings)
    storage = UnifiedStorage(store, key_prefix=settings.key_prefix)
    return DataSession(storage, clipboard=create_clipboard(settings.clipboard_backend))

def bootstrap(config: dict | None = None, setup_logs: bool = True) -> DataSession:
    """
    应用启动入口。

    Args:
        config: 已合并的配置字典；为空时从 config.yaml / user_config.yaml 加载。
        setup_logs: 是否初始化日志输出。

    Returns:
        DataSession: 已完成加载的数据会话。
    """
    load_environment()
    if config is None:
        config = load_config()
    settings = settings_from_config(config)
    if setup_logs:
        logger_config.setup_logging(settings.log_dir, settings.log_level)

    logger.info(f"启动数据会话 (存储后端: {settings.storage_backend})")
    session = build_session(settings)
    result = session.load()
    if result.recovered:
        logger.warning(f"启动时数据加载失败，已使用空数据: {result.error}")
    return session
