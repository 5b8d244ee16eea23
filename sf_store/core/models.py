"""
存储数据模型 (Storage Models)
定义键值存储在 SQLite 中的表结构。
"""
from sqlalchemy import Column, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class StorageEntry(Base):
    """
    键值表 (Key-Value)
    旧版的七张数据表、统一数据结构以及迁移标记都以 JSON 字符串形式存放在这里。
    """
    __tablename__ = 'kv_entries'

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
