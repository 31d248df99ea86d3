"""expectIps 列表的默认构建实现。

真正的 geoip 网段表由外部提供；这里只把字面 IP/CIDR 转成网络对象，
`geoip:CODE` 保留为占位引用，交给运行时按代码加载。
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class GeoIPReference:
    code: str


def build_cidr_list(entries: Iterable[str]) -> tuple:
    """把 expectIps 条目转换为网络对象/引用的有序元组。

    任一条目非法时抛 ValueError，由调用方包装为 InvalidIPRuleError。
    """

    result = []
    for item in entries:
        value = str(item).strip()
        if value.startswith("geoip:"):
            code = value[6:].strip().upper()
            if not code:
                raise ValueError(f"geoip 引用缺少国家/地区代码：{item}")
            result.append(GeoIPReference(code))
            continue
        # 单个 IP 按 /32 或 /128 处理。
        result.append(ipaddress.ip_network(value, strict=False))
    return tuple(result)
