"""把 DNS 规则声明编译为运行时使用的结构化配置。"""

from __future__ import annotations

import ipaddress
import logging
from typing import Callable, Iterable

from .cidr import build_cidr_list
from .compress import compress_pattern, compress_rule, external_key
from .constants import DEFAULT_FAKE_IP_RANGE
from .errors import (
    DNSRuleError,
    InvalidClientIPError,
    InvalidDomainRuleError,
    InvalidIPRuleError,
    MissingAddressError,
)
from .models import (
    DnsConfig,
    DomainKind,
    FakeDnsConfig,
    HostMapping,
    NameServer,
    NameServerConfig,
    PriorityDomain,
    ResolvedConfig,
    RuleKind,
)
from .parser import parse_domain_rule, parse_rule, to_domain_rule

logger = logging.getLogger(__name__)

CidrBuilder = Callable[[list[str]], tuple]


def dedupe_keep_order(items: Iterable[str]) -> list[str]:
    """按首次出现顺序去重。

    fake 规则按顺序匹配，不能使用会打乱顺序的去重方式。
    """

    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


def _with_literal(exc: DNSRuleError, literal: str) -> DNSRuleError:
    """把列表内部的错误改写为携带用户原始条目的同类错误。"""

    return type(exc)(f"无效的规则 `{literal}`：{exc}", literal)


def build_name_server(
    config: NameServerConfig,
    resolver,
    cidr_builder: CidrBuilder = build_cidr_list,
) -> NameServer:
    """编译单个 name server。

    domains 按声明顺序展开为优先域名；任一条目解析失败即中止，异常携带原始条目。
    """

    if config.address is None:
        raise MissingAddressError("name server 未配置地址。")

    priority_domains: list[PriorityDomain] = []
    for item in config.domains:
        try:
            rules = parse_domain_rule(item, resolver)
        except DNSRuleError as exc:
            if exc.value == item:
                raise
            raise _with_literal(exc, item) from exc
        for rule in rules:
            priority_domains.append(PriorityDomain(rule.kind, rule.value))

    try:
        expect_ips = cidr_builder(list(config.expect_ips))
    except ValueError as exc:
        raise InvalidIPRuleError(f"无效的 IP 规则：{config.expect_ips}（{exc}）", config.expect_ips) from exc

    return NameServer(
        address=config.address,
        port=config.port,
        network="udp",
        priority_domains=tuple(priority_domains),
        expect_ips=tuple(expect_ips),
    )


def build_host_mappings(
    hosts: dict,
    resolver,
    external_rules: dict[str, tuple[str, ...]],
) -> list[HostMapping]:
    """按 pattern 字典序编译静态 hosts。

    每个 pattern 先按压缩表示记录一条映射；若是外部列表引用，再为解析出的每个条目追加一条
    共享同一目标的映射，并把展开结果写入 external_rules。
    """

    mappings: list[HostMapping] = []
    # 排序保证同一输入多次构建的产物完全一致，不依赖字典迭代顺序。
    for pattern in sorted(hosts):
        target = hosts[pattern]
        compressed = compress_pattern(pattern)
        parsed = parse_rule(pattern)

        if parsed.kind is RuleKind.GEOIP:
            raise InvalidDomainRuleError(f"geoip 规则不能用作 hosts 匹配：{pattern}", pattern)
        if not parsed.is_external:
            rule = to_domain_rule(parsed)
            mappings.append(HostMapping(target, rule.kind, rule.value, compressed))
            continue

        mappings.append(HostMapping(target, DomainKind.EXTERNAL, parsed.value, compressed))
        try:
            rules = resolver.resolve(parsed.filename, parsed.tag)
        except DNSRuleError as exc:
            raise _with_literal(exc, pattern) from exc
        external_rules[external_key(compressed)] = tuple(compress_rule(r) for r in rules)
        for rule in rules:
            mappings.append(HostMapping(target, rule.kind, rule.value, compress_rule(rule)))
        logger.debug("hosts pattern %s expanded into %d mappings", pattern, len(rules))
    return mappings


def build_fake_dns(
    ip_range: str | None,
    patterns: Iterable[str],
    resolver,
    external_rules: dict[str, tuple[str, ...]],
    warnings: list[str] | None = None,
) -> FakeDnsConfig:
    """编译 fake DNS 规则。

    这是唯一允许部分失败的环节：无法解析的 pattern 记录 warning 后丢弃，其余照常输出。
    """

    ip_range = ip_range or DEFAULT_FAKE_IP_RANGE
    try:
        ipaddress.ip_network(ip_range, strict=False)
    except ValueError as exc:
        raise InvalidIPRuleError(f"无效的 fake IP 网段：{ip_range}", ip_range) from exc

    kept: list[str] = []
    for pattern in patterns:
        compressed = compress_pattern(pattern)
        try:
            parsed = parse_rule(pattern)
            if parsed.is_external:
                rules = resolver.resolve(parsed.filename, parsed.tag)
                external_rules.setdefault(
                    external_key(compressed), tuple(compress_rule(r) for r in rules)
                )
        except DNSRuleError as exc:
            message = f"fake 规则 `{pattern}` 无法解析，已跳过：{exc}"
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)
            continue
        kept.append(compressed)

    return FakeDnsConfig(ip_range=ip_range, patterns=tuple(dedupe_keep_order(kept)))


def build_dns_config(
    config: DnsConfig,
    resolver,
    cidr_builder: CidrBuilder = build_cidr_list,
    warnings: list[str] | None = None,
) -> ResolvedConfig:
    """编译完整 DNS 配置。

    除 fake 规则外，任何错误都会直接抛出，不返回部分构建的结果。
    warnings 非 None 时，可恢复的问题会追加到该列表，供调用方汇总输出。
    """

    client_ip: bytes | None = None
    if config.client_ip is not None:
        if not config.client_ip.is_ip():
            raise InvalidClientIPError(f"clientIp 不是 IP 地址：{config.client_ip}", str(config.client_ip))
        client_ip = config.client_ip.ip_bytes

    name_servers: list[NameServer] = []
    for idx, server in enumerate(config.servers, 1):
        try:
            name_servers.append(build_name_server(server, resolver, cidr_builder))
        except MissingAddressError as exc:
            label = f"servers #{idx:02d}"
            raise MissingAddressError(f"{label} 未配置地址。", label) from exc

    external_rules: dict[str, tuple[str, ...]] = {}
    static_hosts = build_host_mappings(config.hosts or {}, resolver, external_rules)

    fake_dns = None
    if config.use_fake is not None or config.fake_ip_range:
        fake_dns = build_fake_dns(
            config.fake_ip_range,
            config.use_fake or [],
            resolver,
            external_rules,
            warnings,
        )

    return ResolvedConfig(
        client_ip=client_ip,
        tag=config.tag,
        name_servers=tuple(name_servers),
        static_hosts=tuple(static_hosts),
        external_rules=external_rules,
        fake_dns=fake_dns,
    )
