"""
配置加载 (Config Loader)
读取 config.yaml，并用 user_config.yaml 按分区覆盖。
"""
import yaml
import os
import logging
from dataclasses import dataclass

from sf_store.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

def get_resource_path(relative_path: str) -> str:
    """
    获取配置文件路径（相对于当前工作目录）
    """
    return os.path.join(os.path.abspath("."), relative_path)

CONFIG_PATH = get_resource_path("config.yaml")
USER_CONFIG_PATH = get_resource_path("user_config.yaml")

# 配置文件缺失时使用的默认值
DEFAULT_CONFIG = {
    "storage": {
        "backend": "sqlite",
        "path": "data/sf_store.db",
        "key_prefix": "@sf_app:",
    },
    "logging": {
        "level": "INFO",
        "dir": "logs",
    },
    "clipboard": {
        "backend": "system",
    },
}

MERGED_SECTIONS = ("storage", "logging", "clipboard")


@dataclass
class StoreSettings:
    """运行时使用的存储相关设置"""
    storage_backend: str = "sqlite"
    storage_path: str = "data/sf_store.db"
    key_prefix: str = "@sf_app:"
    log_level: str = "INFO"
    log_dir: str = "logs"
    clipboard_backend: str = "system"


def _merge_configs(base_config: dict, user_config: dict) -> dict:
    """
    合并基础配置和用户配置。
    用户配置中的 storage / logging / clipboard 分区会覆盖或扩展基础配置。
    """
    merged_config = {k: dict(v) if isinstance(v, dict) else v for k, v in base_config.items()}
    for section in MERGED_SECTIONS:
        if section in user_config:
            merged_config[section] = merged_config.get(section, {})
            merged_config[section].update(user_config[section] or {})
    return merged_config

def _read_yaml(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if data else {}
    except yaml.YAMLError as e:
        logger.error(f"解析 {path} 文件失败: {e}", exc_info=True)
        raise ConfigurationError(f"错误: 解析 {path} 文件失败: {e}")

def load_user_config(user_config_path: str = None) -> dict:
    """
    加载并解析 user_config.yaml 文件。
    """
    path = user_config_path or USER_CONFIG_PATH
    if not os.path.exists(path):
        return {}
    return _read_yaml(path)

def load_config(config_path: str = None, user_config_path: str = None) -> dict:
    """
    加载并解析 config.yaml 和 user_config.yaml 文件，并进行合并。
    环境变量 SF_STORE_DB_PATH 会覆盖 storage.path。
    """
    path = config_path or CONFIG_PATH
    if os.path.exists(path):
        base_config = _merge_configs(DEFAULT_CONFIG, _read_yaml(path))
    else:
        logger.warning(f"配置文件 {path} 未找到，使用默认配置。")
        base_config = _merge_configs(DEFAULT_CONFIG, {})

    merged_config = _merge_configs(base_config, load_user_config(user_config_path))

    db_path = os.getenv("SF_STORE_DB_PATH")
    if db_path:
        merged_config["storage"]["path"] = db_path
    return merged_config

def settings_from_config(config: dict) -> StoreSettings:
    """将合并后的配置字典转换为 StoreSettings"""
    storage = config.get("storage", {})
    logging_conf = config.get("logging", {})
    clipboard = config.get("clipboard", {})

    backend = storage.get("backend", "sqlite")
    if backend not in ("sqlite", "memory"):
        raise ConfigurationError(f"未知的存储后端: {backend}")

    return StoreSettings(
        storage_backend=backend,
        storage_path=storage.get("path", StoreSettings.storage_path),
        key_prefix=storage.get("key_prefix", StoreSettings.key_prefix),
        log_level=str(logging_conf.get("level", StoreSettings.log_level)),
        log_dir=logging_conf.get("dir", StoreSettings.log_dir),
        clipboard_backend=clipboard.get("backend", StoreSettings.clipboard_backend),
    )

def save_user_config(user_config_data: dict, user_config_path: str = None):
    """
    将用户配置字典写回到 user_config.yaml 文件。

    Args:
        user_config_data (dict): 要保存的用户配置数据（例如 storage 和 logging）。
    """
    path = user_config_path or USER_CONFIG_PATH
    try:
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(user_config_data, f, allow_unicode=True, sort_keys=False)
        logger.info(f"用户配置已成功保存到 {path}。")
    except OSError as e:
        logger.error(f"写入 {path} 文件失败: {e}", exc_info=True)
        raise ConfigurationError(f"错误: 写入 {path} 文件失败: {e}")
