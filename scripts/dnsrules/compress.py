"""规则的压缩表示：单字母类别码 + 值。

压缩串既是 HostMapping 上对外可见的 pattern，也是外部规则索引的键，
因此必须是“方言 + 值”的纯函数。
"""

from __future__ import annotations

from .constants import DEFAULT_GEOSITE_FILE, DEFAULT_PATTERN_CODE, PATTERN_PREFIX_CODES
from .models import DomainRule


def compress_pattern(pattern: str) -> str:
    """将原始文本规则改写为压缩表示。

    这里只做前缀改写，不校验参数；`ext:` 参数是否合法由解析层负责报错。
    """

    for prefix, code in PATTERN_PREFIX_CODES:
        if not pattern.startswith(prefix):
            continue
        arg = pattern[len(prefix):]
        if prefix == "geosite:":
            return f"{code}{DEFAULT_GEOSITE_FILE}:{arg.upper()}"
        return code + arg
    return DEFAULT_PATTERN_CODE + pattern


def compress_rule(rule: DomainRule) -> str:
    return rule.kind.code + rule.value


def external_key(compressed: str) -> str:
    """从 `e<文件名>:<标签>` 中取出外部规则索引的键。"""

    if not compressed.startswith("e"):
        raise ValueError(f"不是外部列表引用的压缩表示：{compressed}")
    return compressed[1:]
