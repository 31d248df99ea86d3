"""命令行参数解析。"""

from __future__ import annotations

import argparse

from .constants import ASSET_LOCATION_ENV


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """解析命令行参数。

    编译结果只输出到 stdout，不落盘；需要保存时由调用方重定向。
    """

    parser = argparse.ArgumentParser(description="编译 v2ray 风格的 DNS 规则配置")
    parser.add_argument(
        "--input",
        default="dns.json",
        help="DNS 配置文件路径（默认：dns.json）",
    )
    parser.add_argument(
        "--asset-dir",
        default="",
        help=f"外部列表所在目录；为空时读取环境变量 {ASSET_LOCATION_ENV}，再回退到当前目录",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="输出 JSON 的缩进空格数（默认：2）",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="严格模式：出现任何 warning 即返回非 0",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="输出 debug 日志（列表展开明细等）",
    )
    return parser.parse_args(argv)
