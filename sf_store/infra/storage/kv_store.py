"""
键值存储 (Key-Value Store)
为统一存储网关提供 get / set / remove 字符串接口。
SQLKeyValueStore 使用 SQLite 持久化；MemoryKeyValueStore 仅存在于内存中。
"""
import os
import logging
from functools import lru_cache
from typing import Dict, Iterable, Optional

from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from sf_store.config.loader import StoreSettings
from sf_store.core.exceptions import StorageOperationError
from sf_store.core.models import Base, StorageEntry

logger = logging.getLogger(__name__)

@lru_cache(maxsize=5)
def get_engine(db_path: str):
    """
    获取指定数据库文件的引擎 (带缓存)。
    """
    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}")

    # 自动建表
    Base.metadata.create_all(engine)
    logger.info(f"已初始化键值存储: {db_path}")
    return engine


class SQLKeyValueStore:
    """基于 SQLAlchemy + SQLite 的键值存储"""

    def __init__(self, db_path: str):
        self.db_path = os.path.abspath(db_path)
        try:
            self._session_factory = sessionmaker(bind=get_engine(self.db_path))
        except SQLAlchemyError as e:
            raise StorageOperationError(f"打开数据库失败 {self.db_path}: {e}") from e

    def _session(self) -> Session:
        return self._session_factory()

    def get(self, key: str) -> Optional[str]:
        """读取键值，不存在时返回 None"""
        session = self._session()
        try:
            entry = session.get(StorageEntry, key)
            return entry.value if entry else None
        except SQLAlchemyError as e:
            raise StorageOperationError(f"读取 {key} 失败: {e}") from e
        finally:
            session.close()

    def get_many(self, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        """一次查询读取多个键，缺失的键对应 None"""
        keys = list(keys)
        session = self._session()
        try:
            rows = session.execute(
                select(StorageEntry).where(StorageEntry.key.in_(keys))
            ).scalars().all()
            found = {row.key: row.value for row in rows}
            return {key: found.get(key) for key in keys}
        except SQLAlchemyError as e:
            raise StorageOperationError(f"批量读取失败: {e}") from e
        finally:
            session.close()

    def set(self, key: str, value: str):
        """保存或覆盖键值"""
        session = self._session()
        try:
            entry = session.get(StorageEntry, key)
            if entry:
                entry.value = value
            else:
                session.add(StorageEntry(key=key, value=value))
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"保存 {key} 失败: {e}")
            raise StorageOperationError(f"保存 {key} 失败: {e}") from e
        finally:
            session.close()

    def remove(self, key: str):
        """删除键值，不存在时忽略"""
        session = self._session()
        try:
            entry = session.get(StorageEntry, key)
            if entry:
                session.delete(entry)
                session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"删除 {key} 失败: {e}")
            raise StorageOperationError(f"删除 {key} 失败: {e}") from e
        finally:
            session.close()


class MemoryKeyValueStore:
    """内存键值存储：进程结束即丢失，用于测试与临时会话。"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.entries: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.entries.get(key)

    def get_many(self, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        return {key: self.entries.get(key) for key in keys}

    def set(self, key: str, value: str):
        self.entries[key] = value

    def remove(self, key: str):
        self.entries.pop(key, None)


def create_store(settings: StoreSettings):
    """根据存储设置创建键值存储实例"""
    if settings.storage_backend == "sqlite":
        return SQLKeyValueStore(settings.storage_path)
    return MemoryKeyValueStore()
