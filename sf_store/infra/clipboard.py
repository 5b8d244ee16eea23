"""
剪贴板访问 (Clipboard)
SystemClipboard 通过 pyperclip 访问系统剪贴板；MemoryClipboard 用于无图形环境与测试。
"""
import logging

import pyperclip

from sf_store.core.exceptions import ClipboardOperationError

logger = logging.getLogger(__name__)


class SystemClipboard:
    """系统剪贴板"""

    def set_string(self, text: str):
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise ClipboardOperationError(f"写入剪贴板失败: {e}") from e

    def get_string(self) -> str:
        try:
            return pyperclip.paste() or ""
        except pyperclip.PyperclipException as e:
            raise ClipboardOperationError(f"读取剪贴板失败: {e}") from e


class MemoryClipboard:
    """进程内剪贴板"""

    def __init__(self, text: str = ""):
        self.text = text

    def set_string(self, text: str):
        self.text = text

    def get_string(self) -> str:
        return self.text


def create_clipboard(backend: str = "system"):
    """根据配置创建剪贴板实例"""
    if backend == "memory":
        return MemoryClipboard()
    return SystemClipboard()
