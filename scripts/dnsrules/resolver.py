"""外部域名列表的加载与按标签解析。

列表格式沿用 v2fly domain-list-community 的条目语法：

    [kind:]value [@attr ...]

kind 取 domain/full/keyword/regexp，缺省为 domain；`include:name` 引入同一文件中的另一个列表。
资源文件可以是 JSON 对象 `{"CN": ["domain:example.com @ads", ...]}`，
也可以是 domain-list-community `data/` 布局的目录（每个列表一个文件）。
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .constants import ASSET_LOCATION_ENV, DEFAULT_LIST_ENTRY_KIND, LIST_ENTRY_KINDS
from .errors import InvalidDomainRuleError, UnknownListOrTagError
from .models import DomainKind, DomainRule

logger = logging.getLogger(__name__)

_ENTRY_RE = re.compile(r"^(?:(\w+):)?([^\s#]+)((?:\s+@[^\s#]+)*)")

_ENTRY_KINDS = {
    "domain": DomainKind.SUBDOMAIN,
    "full": DomainKind.FULL,
    "keyword": DomainKind.KEYWORD,
    "regexp": DomainKind.REGEX,
}


@dataclass(frozen=True)
class ListEntry:
    kind: DomainKind
    value: str
    attrs: frozenset = frozenset()


@dataclass(frozen=True)
class ListInclude:
    """`include:` 行：引入另一个列表，可用 @attr 只引入带该属性的条目。"""

    code: str
    attrs: frozenset = frozenset()


def parse_list_entry(line: str) -> ListEntry | ListInclude | None:
    """解析列表中的一行。

    返回 ListEntry 或 ListInclude；空行与注释返回 None。
    """

    text = line.strip()
    if not text or text.startswith("#"):
        return None
    match = _ENTRY_RE.match(text)
    if match is None:
        raise InvalidDomainRuleError(f"无法解析的列表条目：{line}", line)
    kind_name = (match.group(1) or DEFAULT_LIST_ENTRY_KIND).lower()
    value = match.group(2)
    attrs = frozenset(item.lstrip("@").lower() for item in match.group(3).split())
    if kind_name == "include":
        return ListInclude(value.upper(), attrs)
    if kind_name not in LIST_ENTRY_KINDS:
        raise InvalidDomainRuleError(f"未知的列表条目类型 `{kind_name}`：{line}", line)
    return ListEntry(_ENTRY_KINDS[kind_name], value, attrs)


def expand_list(lists: dict[str, list[str]], code: str) -> list[ListEntry]:
    """展开单个列表及其 include。

    只处理从 code 可达的列表，文件中其它列表的错误不会影响本次解析。
    include 的目标不存在时报错；循环 include 时已在路径上的列表直接跳过。
    """

    expanded: dict[str, list[ListEntry]] = {}

    def walk(current: str, visiting: set[str]) -> list[ListEntry]:
        if current in expanded:
            return expanded[current]
        if current not in lists:
            raise UnknownListOrTagError(f"include 引用了不存在的列表：{current}", current)
        visiting.add(current)
        entries: list[ListEntry] = []
        for line in lists[current]:
            item = parse_list_entry(str(line))
            if item is None:
                continue
            if isinstance(item, ListInclude):
                if item.code in visiting:
                    continue
                entries.extend(e for e in walk(item.code, visiting) if item.attrs <= e.attrs)
                continue
            entries.append(item)
        visiting.discard(current)
        expanded[current] = entries
        return entries

    return walk(code.upper(), set())


def _upper_codes(raw: dict[str, list[str]]) -> dict[str, list[str]]:
    return {code.upper(): list(lines) for code, lines in raw.items()}


class MemoryListLoader:
    """内存中的列表集合：`{文件名: {列表名: [条目, ...]}}`。"""

    def __init__(self, files: dict[str, dict[str, Iterable[str]]]) -> None:
        self._files = {name: _upper_codes(lists) for name, lists in files.items()}

    def load(self, filename: str) -> dict[str, list[str]]:
        if filename not in self._files:
            raise UnknownListOrTagError(f"找不到外部列表文件：{filename}", filename)
        return {code: list(lines) for code, lines in self._files[filename].items()}


class AssetListLoader:
    """从资源目录读取列表文件。

    每次调用都重新读取文件，不做跨调用缓存，保证同一输入得到同一输出。
    """

    def __init__(self, asset_dir: str | Path | None = None) -> None:
        if asset_dir is None:
            asset_dir = os.environ.get(ASSET_LOCATION_ENV) or "."
        self.asset_dir = Path(asset_dir)

    def load(self, filename: str) -> dict[str, list[str]]:
        """返回 `列表名（大写） -> 原始行`，展开留给解析方按需进行。"""

        # 只允许资源目录下的直接文件名，避免引用跳出资源目录。
        if not filename or Path(filename).name != filename:
            raise UnknownListOrTagError(f"找不到外部列表文件：{filename}", filename)
        path = self.asset_dir / filename
        if path.is_dir():
            raw = self._read_directory(path)
        elif path.is_file():
            raw = self._read_json(path)
        else:
            raise UnknownListOrTagError(f"找不到外部列表文件：{path}", filename)
        return _upper_codes(raw)

    @staticmethod
    def _read_directory(path: Path) -> dict[str, list[str]]:
        raw: dict[str, list[str]] = {}
        for file_path in sorted(path.iterdir()):
            if not file_path.is_file() or file_path.name.startswith("."):
                continue
            raw[file_path.name] = file_path.read_text(encoding="utf-8").splitlines()
        return raw

    @staticmethod
    def _read_json(path: Path) -> dict[str, list[str]]:
        try:
            with path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise UnknownListOrTagError(f"外部列表文件不是合法的 JSON：{path}（{exc}）", path.name) from exc
        if not isinstance(data, dict) or not all(isinstance(v, list) for v in data.values()):
            raise UnknownListOrTagError(f"外部列表文件必须是“列表名 -> 条目数组”的对象：{path}", path.name)
        return data


class ExternalListResolver:
    """按 (文件名, 标签) 解析外部列表为有序的域名规则。

    标签格式为 `CODE[@attr...]`：CODE 选中列表（不区分大小写），
    每个 @attr 再筛出带该属性的条目。列表不存在、属性筛选为空都按错误处理，
    不会静默返回空规则集。
    """

    def __init__(self, loader) -> None:
        self.loader = loader

    def resolve(self, filename: str, tag: str) -> list[DomainRule]:
        code, *attr_parts = tag.split("@")
        code = code.strip().upper()
        attrs = {item.strip().lower() for item in attr_parts if item.strip()}
        if not code:
            raise UnknownListOrTagError(f"外部列表标签为空：{filename}:{tag}", f"{filename}:{tag}")

        lists = self.loader.load(filename)
        if code not in lists:
            raise UnknownListOrTagError(f"{filename} 中不存在列表 `{code}`", f"{filename}:{tag}")

        rules = [DomainRule(e.kind, e.value) for e in expand_list(lists, code) if attrs <= e.attrs]
        if not rules:
            raise UnknownListOrTagError(f"{filename}:{tag} 没有任何匹配条目", f"{filename}:{tag}")
        logger.debug("resolved %s:%s into %d rules", filename, tag, len(rules))
        return rules
