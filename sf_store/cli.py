"""命令行工具：查看状态、导入导出统一数据。"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from sf_store.core.exceptions import DataValidationError, StorageOperationError
from sf_store.core.validation import parse_data_structure, require_valid
from sf_store.services.workflow import bootstrap


def _status(session, args) -> int:
    data = session.manager.get_data()
    units = sum(len(level.units) for c in data.collections for level in c.levels)
    print(f"数据来源: {session.last_load.source.value}")
    print(f"集合: {len(data.collections)}  单元: {units}  特性: {len(data.features)}")
    if session.last_load.error:
        print(f"加载错误: {session.last_load.error}")
    return 0


def _export(session, args) -> int:
    text = session.export_json()
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"已导出到 {args.output}")
    else:
        print(text)
    return 0


def _import(session, args) -> int:
    text = Path(args.file).read_text(encoding="utf-8")
    try:
        require_valid(parse_data_structure(text))
    except DataValidationError as e:
        print(f"导入失败：{e}", file=sys.stderr)
        return 1
    if not session.import_json(text):
        print("导入失败：数据格式不正确。", file=sys.stderr)
        return 1
    print("导入成功。")
    return 0


def _copy(session, args) -> int:
    if not session.export_data():
        print("复制到剪贴板失败。", file=sys.stderr)
        return 1
    print("已复制到剪贴板。")
    return 0


def _paste(session, args) -> int:
    if not session.import_data():
        print("从剪贴板导入失败。", file=sys.stderr)
        return 1
    print("已从剪贴板导入。")
    return 0


def _legacy_export(session, args) -> int:
    session.storage.write_legacy(session.manager.get_data())
    print("已写回旧格式数据。")
    return 0


COMMANDS = {
    "status": _status,
    "export": _export,
    "import": _import,
    "copy": _copy,
    "paste": _paste,
    "legacy-export": _legacy_export,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sf-store", description="统一数据管理工具")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="显示数据概况")
    export_parser = sub.add_parser("export", help="导出统一数据 JSON")
    export_parser.add_argument("-o", "--output", help="输出文件（缺省打印到标准输出）")
    import_parser = sub.add_parser("import", help="从 JSON 文件导入并保存")
    import_parser.add_argument("file", help="JSON 文件路径")
    sub.add_parser("copy", help="复制数据到剪贴板")
    sub.add_parser("paste", help="从剪贴板导入并保存")
    sub.add_parser("legacy-export", help="按旧版分表格式写回存储")
    return parser


def main(argv=None, config: dict | None = None, setup_logs: bool = True) -> int:
    args = build_parser().parse_args(argv)
    session = bootstrap(config, setup_logs=setup_logs)
    try:
        return COMMANDS[args.command](session, args)
    except StorageOperationError as e:
        print(f"保存失败，请重试: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
