"""规则编译过程中的中间模型与产物。"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from .address import Address
from .errors import InvalidDomainRuleError


class DomainKind(str, Enum):
    """域名匹配方式。

    `EXTERNAL` 只出现在 HostMapping 上：它记录“引用了一个外部列表”的原始条目，
    真正可匹配的是紧随其后的展开条目。
    """

    FULL = "full"
    SUBDOMAIN = "domain"
    KEYWORD = "keyword"
    REGEX = "regexp"
    EXTERNAL = "external"

    @property
    def code(self) -> str:
        return _KIND_CODES[self]


_KIND_CODES = {
    DomainKind.FULL: "f",
    DomainKind.SUBDOMAIN: "d",
    DomainKind.KEYWORD: "k",
    DomainKind.REGEX: "r",
    DomainKind.EXTERNAL: "e",
}

KIND_BY_CODE = {code: kind for kind, code in _KIND_CODES.items()}


class RuleKind(str, Enum):
    """单条文本规则解析后的方言类别。"""

    FULL = "full"
    SUBDOMAIN = "domain"
    KEYWORD = "keyword"
    REGEX = "regexp"
    EXTERNAL = "external"
    GEOIP = "geoip"


@dataclass(frozen=True)
class DomainRule:
    """一条可直接匹配的域名规则。

    构造即校验：空值和无法编译的正则在这里失败，不会拖到查询阶段才暴露。
    """

    kind: DomainKind
    value: str

    def __post_init__(self) -> None:
        if self.kind is DomainKind.EXTERNAL:
            raise InvalidDomainRuleError(
                f"外部列表引用不是可匹配的域名规则：{self.value}", self.value
            )
        if not self.value:
            raise InvalidDomainRuleError(f"{self.kind.value} 规则的值为空。", self.value)
        if self.kind is DomainKind.REGEX:
            try:
                re.compile(self.value)
            except re.error as exc:
                raise InvalidDomainRuleError(
                    f"无法编译的正则表达式：{self.value}（{exc}）", self.value
                ) from exc


@dataclass(frozen=True)
class ParsedRule:
    """文本规则的解析结果（尚未展开外部列表）。"""

    kind: RuleKind
    value: str
    filename: str = ""
    tag: str = ""

    @property
    def is_external(self) -> bool:
        return self.kind is RuleKind.EXTERNAL


@dataclass(frozen=True)
class PriorityDomain:
    kind: DomainKind
    value: str


@dataclass(frozen=True)
class NameServer:
    """单个上游 name server 的编译结果。

    priority_domains 是有序列表：查询时按声明顺序取第一个命中的 server。
    """

    address: Address
    port: int
    network: str = "udp"
    priority_domains: tuple[PriorityDomain, ...] = ()
    expect_ips: tuple = ()


@dataclass(frozen=True)
class HostMapping:
    target: Address
    kind: DomainKind
    pattern: str
    compressed_pattern: str


@dataclass(frozen=True)
class FakeDnsConfig:
    ip_range: str
    patterns: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedConfig:
    """交给 DNS 运行时的完整编译产物，构建完成后不再修改。"""

    client_ip: bytes | None = None
    tag: str = ""
    name_servers: tuple[NameServer, ...] = ()
    static_hosts: tuple[HostMapping, ...] = ()
    external_rules: dict[str, tuple[str, ...]] = field(default_factory=dict)
    fake_dns: FakeDnsConfig | None = None


@dataclass
class NameServerConfig:
    """配置层传入的 name server 声明（标量已由配置层校验）。"""

    address: Address | None
    port: int = 53
    domains: list[str] = field(default_factory=list)
    expect_ips: list[str] = field(default_factory=list)


@dataclass
class DnsConfig:
    servers: list[NameServerConfig] = field(default_factory=list)
    hosts: dict[str, Address] = field(default_factory=dict)
    client_ip: Address | None = None
    tag: str = ""
    fake_ip_range: str | None = None
    # None 表示未启用 fake DNS；空列表表示启用但没有规则。
    use_fake: list[str] | None = None
