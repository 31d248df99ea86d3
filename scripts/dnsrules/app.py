"""规则编译器主流程。"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from .builder import build_dns_config
from .cli import parse_args
from .errors import DNSRuleError
from .render import config_to_dict
from .resolver import AssetListLoader, ExternalListResolver
from .source import load_dns_config, to_dns_config, validate_dns_config


def main(argv: list[str] | None = None) -> int:
    """脚本主流程：读取配置 -> 校验 -> 编译 -> 输出 JSON。"""

    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
        stream=sys.stderr,
    )

    input_path = Path(args.input).resolve()
    if not input_path.exists():
        print(f"[ERROR] 找不到输入文件: {input_path}", file=sys.stderr)
        return 1

    try:
        data = load_dns_config(input_path)
    except ValueError as exc:
        # json.JSONDecodeError 也是 ValueError 的子类。
        print(f"[ERROR] 无法读取 DNS 配置：{exc}", file=sys.stderr)
        return 1

    validation_errors, validation_warnings = validate_dns_config(data)
    if validation_errors:
        print("[ERROR] DNS 配置校验失败：", file=sys.stderr)
        for item in validation_errors:
            print(f"  - {item}", file=sys.stderr)
        return 1

    all_warnings: list[str] = [f"[validate] {item}" for item in validation_warnings]
    build_warnings: list[str] = []
    resolver = ExternalListResolver(AssetListLoader(args.asset_dir or None))
    try:
        config = build_dns_config(to_dns_config(data), resolver, warnings=build_warnings)
    except DNSRuleError as exc:
        print(f"[ERROR] 规则编译失败：{exc}", file=sys.stderr)
        if exc.__cause__ is not None:
            print(f"  - 原因：{exc.__cause__}", file=sys.stderr)
        return 1
    all_warnings.extend(f"[build] {item}" for item in build_warnings)

    if args.strict and all_warnings:
        print("[ERROR] strict 模式命中 warning，已终止输出：", file=sys.stderr)
        for item in all_warnings:
            print(f"  - {item}", file=sys.stderr)
        return 2

    print(json.dumps(config_to_dict(config), ensure_ascii=False, indent=args.indent))
    print(
        f"[OK] 已编译 {len(config.name_servers)} 个 name server、{len(config.static_hosts)} 条 hosts 映射",
        file=sys.stderr,
    )
    if all_warnings:
        # warning 输出到 stderr，便于与 stdout 中的 JSON 分流。
        print("[WARN] 需要人工关注的配置项：", file=sys.stderr)
        for item in all_warnings:
            print(f"  - {item}", file=sys.stderr)

    return 0
