"""
统一数据结构校验 (Validation)
加载与导入共用同一套校验：先检查根对象形状，再按 schema 解析为强类型对象。
"""
import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from sf_store.core.exceptions import DataValidationError
from sf_store.core.schemas import DataStructure, ValidationResult

logger = logging.getLogger(__name__)


def check_shape(raw: Any) -> Optional[str]:
    """
    检查根对象形状：collections 必须是数组，features 必须是对象（不能为 null）。

    Returns:
        Optional[str]: 不合法时返回原因，合法时返回 None。
    """
    if not isinstance(raw, dict):
        return "根对象必须是 JSON 对象"
    if not isinstance(raw.get("collections"), list):
        return "collections 必须是数组"
    if not isinstance(raw.get("features"), dict):
        return "features 必须是对象（不能为 null）"
    return None


def validate_data_structure(raw: Any) -> ValidationResult:
    """校验已解析的 JSON 数据，并转换为 DataStructure"""
    reason = check_shape(raw)
    if reason:
        return ValidationResult(ok=False, error=reason)
    try:
        data = DataStructure.model_validate(raw)
    except ValidationError as e:
        return ValidationResult(ok=False, error=f"数据格式不正确: {e.error_count()} 处错误, {e.errors()[0]['msg']}")
    return ValidationResult(ok=True, data=data)


def parse_data_structure(json_string: str) -> ValidationResult:
    """从 JSON 字符串解析并校验统一数据结构"""
    try:
        raw = json.loads(json_string)
    except (TypeError, ValueError) as e:
        return ValidationResult(ok=False, error=f"JSON 解析失败: {e}")
    return validate_data_structure(raw)


def require_valid(result: ValidationResult) -> DataStructure:
    """校验失败时抛出 DataValidationError，成功时返回数据"""
    if not result.ok:
        raise DataValidationError(result.error)
    return result.data
