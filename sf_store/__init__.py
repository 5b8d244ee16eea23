"""
sf_store
集合 → 层次 → 单元 的本地数据仓库：统一数据结构、旧版数据迁移与内存数据管理。
"""

__version__ = "1.0.0"
