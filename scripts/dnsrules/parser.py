"""文本规则解析：识别前缀方言，产出 (类别, 值)。

方言按固定顺序逐个尝试，首个命中的前缀生效；没有任何前缀时按完整匹配处理。
新增方言只需在 `_DIALECTS` 中追加一项。
"""

from __future__ import annotations

from typing import Callable

from .constants import DEFAULT_GEOSITE_FILE
from .errors import InvalidDomainRuleError, InvalidExternalReferenceError
from .models import DomainKind, DomainRule, ParsedRule, RuleKind

_DIRECT_KINDS = {
    RuleKind.FULL: DomainKind.FULL,
    RuleKind.SUBDOMAIN: DomainKind.SUBDOMAIN,
    RuleKind.KEYWORD: DomainKind.KEYWORD,
    RuleKind.REGEX: DomainKind.REGEX,
}


def split_external(arg: str, original: str) -> tuple[str, str]:
    """拆分 `ext:` 参数为 (文件名, 标签)。

    只允许恰好一个 `:`；缺少分隔符、多出分段或任一侧为空都视为配置错误。
    """

    parts = arg.split(":")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise InvalidExternalReferenceError(f"无效的外部列表引用：{original}", original)
    return parts[0], parts[1]


def _direct(kind: RuleKind) -> Callable[[str, str], ParsedRule]:
    def handler(arg: str, original: str) -> ParsedRule:
        # 借 DomainRule 完成空值与正则编译校验。
        try:
            DomainRule(_DIRECT_KINDS[kind], arg)
        except InvalidDomainRuleError as exc:
            raise InvalidDomainRuleError(f"无效的域名规则：{original}（{exc}）", original) from exc
        return ParsedRule(kind, arg)

    return handler


def _geosite(arg: str, original: str) -> ParsedRule:
    if not arg:
        raise InvalidExternalReferenceError(f"geosite 引用缺少标签：{original}", original)
    tag = arg.upper()
    return ParsedRule(RuleKind.EXTERNAL, f"{DEFAULT_GEOSITE_FILE}:{tag}", DEFAULT_GEOSITE_FILE, tag)


def _ext(arg: str, original: str) -> ParsedRule:
    filename, tag = split_external(arg, original)
    return ParsedRule(RuleKind.EXTERNAL, arg, filename, tag)


def _geoip(arg: str, original: str) -> ParsedRule:
    # 载荷由 CIDR 构建方解释，这里只识别前缀。
    if not arg:
        raise InvalidDomainRuleError(f"geoip 引用缺少国家/地区代码：{original}", original)
    return ParsedRule(RuleKind.GEOIP, arg)


_DIALECTS: tuple[tuple[str, Callable[[str, str], ParsedRule]], ...] = (
    ("domain:", _direct(RuleKind.SUBDOMAIN)),
    ("full:", _direct(RuleKind.FULL)),
    ("keyword:", _direct(RuleKind.KEYWORD)),
    ("regexp:", _direct(RuleKind.REGEX)),
    ("geosite:", _geosite),
    ("ext:", _ext),
    ("geoip:", _geoip),
)

_default = _direct(RuleKind.FULL)


def parse_rule(text: str) -> ParsedRule:
    """解析单条文本规则，不展开外部列表。"""

    for prefix, handler in _DIALECTS:
        if text.startswith(prefix):
            return handler(text[len(prefix):], text)
    return _default(text, text)


def to_domain_rule(parsed: ParsedRule) -> DomainRule:
    return DomainRule(_DIRECT_KINDS[parsed.kind], parsed.value)


def parse_domain_rule(text: str, resolver) -> list[DomainRule]:
    """解析一条域名规则并展开外部列表引用。

    直接方言恰好产出一条规则；`geosite:`/`ext:` 产出解析器返回的整组规则。
    """

    parsed = parse_rule(text)
    if parsed.is_external:
        return resolver.resolve(parsed.filename, parsed.tag)
    if parsed.kind is RuleKind.GEOIP:
        raise InvalidDomainRuleError(f"geoip 规则不能用于域名匹配：{text}", text)
    return [to_domain_rule(parsed)]
