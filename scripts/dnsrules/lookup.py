"""查询期对编译产物的索引与匹配。"""

from __future__ import annotations

from typing import Iterable

from .compress import external_key
from .matchers import MatcherGroup, new_matcher
from .models import KIND_BY_CODE, DomainKind, FakeDnsConfig, HostMapping, NameServer


def matcher_from_compressed(pattern: str, external_rules: dict[str, tuple[str, ...]]):
    """把压缩表示还原为匹配器。

    `e` 前缀按外部规则索引展开为 MatcherGroup，不会重新调用列表解析；
    `i` 前缀是 IP 规则，不参与域名匹配，返回 None。
    """

    if not pattern:
        raise ValueError("压缩表示为空")
    code, value = pattern[0], pattern[1:]
    if code == "i":
        return None
    if code == "e":
        key = external_key(pattern)
        if key not in external_rules:
            raise KeyError(f"外部规则索引中不存在：{key}")
        return MatcherGroup.of(matcher_from_compressed(item, external_rules) for item in external_rules[key])
    if code not in KIND_BY_CODE:
        raise ValueError(f"未知的压缩类别码 `{code}`：{pattern}")
    return new_matcher(KIND_BY_CODE[code], value)


class HostTable:
    """静态 hosts 查询表，按编译顺序返回第一条命中的映射。"""

    def __init__(self, static_hosts: Iterable[HostMapping]) -> None:
        # EXTERNAL 记录只是展开前的占位，真正参与匹配的是其后的展开条目。
        self._entries = [
            (new_matcher(m.kind, m.pattern), m) for m in static_hosts if m.kind is not DomainKind.EXTERNAL
        ]

    def lookup(self, domain: str) -> HostMapping | None:
        for matcher, mapping in self._entries:
            if matcher.match(domain):
                return mapping
        return None

    def __len__(self) -> int:
        return len(self._entries)


class NameServerTable:
    """按优先域名排列待查询的 name server。

    匹配器在构造时一次性编译，之后可被多个查询线程共享。
    """

    def __init__(self, name_servers: Iterable[NameServer]) -> None:
        self._entries = [
            (MatcherGroup.of(new_matcher(d.kind, d.value) for d in server.priority_domains), server)
            for server in name_servers
        ]

    def sort(self, domain: str) -> list[NameServer]:
        """优先域名命中的 server 按声明顺序排在前面，其余按声明顺序追加在后。"""

        preferred: list[NameServer] = []
        others: list[NameServer] = []
        for group, server in self._entries:
            if group.match(domain):
                preferred.append(server)
            else:
                others.append(server)
        return preferred + others

    def __len__(self) -> int:
        return len(self._entries)


class FakeDnsMatcher:
    """判断域名是否应返回 fake IP。"""

    def __init__(self, fake_dns: FakeDnsConfig, external_rules: dict[str, tuple[str, ...]]) -> None:
        self.ip_range = fake_dns.ip_range
        matchers = (matcher_from_compressed(p, external_rules) for p in fake_dns.patterns)
        self._group = MatcherGroup.of(m for m in matchers if m is not None)

    def match(self, domain: str) -> bool:
        return self._group.match(domain)
