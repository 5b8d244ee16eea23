"""
自定义异常类
用于在存储、迁移、剪贴板等不同层之间传递具有明确语义的错误信息。
"""

class StorageOperationError(Exception):
    """当读写键值存储时发生错误"""
    pass

class DataValidationError(Exception):
    """当 JSON 数据结构不符合统一数据格式时发生错误"""
    pass

class MigrationError(Exception):
    """当读取或转换旧版数据时发生错误"""
    pass

class ClipboardOperationError(Exception):
    """当访问系统剪贴板时发生错误"""
    pass

class ConfigurationError(Exception):
    """当应用配置不正确或缺失时发生错误"""
    pass
