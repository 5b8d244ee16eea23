"""
sf_store 配置包
load_environment 在启动时由 bootstrap 调用，使 .env 中的 SF_STORE_DB_PATH、LOG_LEVEL 等变量生效。
"""
from dotenv import find_dotenv, load_dotenv
import logging

logger = logging.getLogger(__name__)

def load_environment():
    """
    从当前工作目录（及其上级目录）的 .env 文件加载环境变量到环境中。
    """
    load_dotenv(find_dotenv(usecwd=True))
    logger.debug("环境变量已从 .env 文件加载，SF_STORE_DB_PATH / LOG_LEVEL 可在其中设置。")
