"""查询期使用的字符串匹配策略。

所有匹配器构造后不可变，可被任意多个读线程并发调用。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from .errors import InvalidDomainRuleError
from .models import DomainKind


@dataclass(frozen=True)
class FullMatcher:
    value: str

    def match(self, candidate: str) -> bool:
        return candidate == self.value


@dataclass(frozen=True)
class SubstringMatcher:
    value: str

    def match(self, candidate: str) -> bool:
        return self.value in candidate


@dataclass(frozen=True)
class DomainMatcher:
    """子域名匹配：后缀相同且落在标签边界上。

    `example.com` 命中 `example.com`、`www.example.com`，不命中 `notexample.com`。
    """

    value: str

    def match(self, candidate: str) -> bool:
        if not candidate.endswith(self.value):
            return False
        if len(candidate) == len(self.value):
            return True
        return candidate[-len(self.value) - 1] == "."


@dataclass(frozen=True)
class RegexMatcher:
    pattern: re.Pattern

    @classmethod
    def compile(cls, expr: str) -> "RegexMatcher":
        try:
            return cls(re.compile(expr))
        except re.error as exc:
            raise InvalidDomainRuleError(f"无法编译的正则表达式：{expr}（{exc}）", expr) from exc

    def match(self, candidate: str) -> bool:
        # 非锚定：在任意位置找到即算命中。
        return self.pattern.search(candidate) is not None


@dataclass(frozen=True)
class NotMatcher:
    inner: object

    def match(self, candidate: str) -> bool:
        return not self.inner.match(candidate)


@dataclass(frozen=True)
class AndMatcher:
    left: object
    right: object

    def match(self, candidate: str) -> bool:
        return self.left.match(candidate) and self.right.match(candidate)


@dataclass(frozen=True)
class MatcherGroup:
    """按顺序求“任一命中”，用于外部列表展开后的整组规则。"""

    matchers: tuple = ()

    @classmethod
    def of(cls, matchers: Iterable) -> "MatcherGroup":
        return cls(tuple(matchers))

    def match(self, candidate: str) -> bool:
        return any(m.match(candidate) for m in self.matchers)

    def __len__(self) -> int:
        return len(self.matchers)


def new_matcher(kind: DomainKind, value: str):
    """按匹配方式构造原子匹配器。"""

    if kind is DomainKind.FULL:
        return FullMatcher(value)
    if kind is DomainKind.SUBDOMAIN:
        return DomainMatcher(value)
    if kind is DomainKind.KEYWORD:
        return SubstringMatcher(value)
    if kind is DomainKind.REGEX:
        return RegexMatcher.compile(value)
    raise InvalidDomainRuleError(f"{kind.value} 不是可直接匹配的规则类型：{value}", value)
