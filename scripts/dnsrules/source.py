"""DNS 配置源的加载、结构校验与转换。"""

from __future__ import annotations

import json
from pathlib import Path

from .address import Address
from .constants import DEFAULT_DNS_PORT
from .models import DnsConfig, NameServerConfig

KNOWN_KEYS = {"servers", "hosts", "clientIp", "tag", "fakeIpRange", "useFake"}
SERVER_KEYS = {"address", "port", "domains", "expectIps"}


def load_dns_config(path: Path) -> dict:
    """加载 DNS 配置 JSON。

    约束顶层必须是对象；结构异常直接抛错，避免后续静默生成不完整配置。
    """

    with path.open("r", encoding="utf-8") as fp:
        data = json.load(fp)
    if not isinstance(data, dict):
        raise ValueError("DNS 配置文件不是 JSON 对象")
    return data


def _check_address(value: object, label: str, errors: list[str]) -> None:
    if not isinstance(value, str):
        errors.append(f"{label} 必须是字符串，实际类型为 `{type(value).__name__}`。")
        return
    try:
        Address.parse(value)
    except ValueError:
        errors.append(f"{label} 不是合法的 IP 或域名：`{value}`。")


def _check_string_list(value: object, label: str, errors: list[str]) -> None:
    if value is None:
        return
    if not isinstance(value, list):
        errors.append(f"{label} 必须是数组或 null。")
        return
    for item in value:
        if not isinstance(item, str):
            errors.append(f"{label} 中存在非字符串条目：`{item!r}`。")


def validate_dns_config(data: dict) -> tuple[list[str], list[str]]:
    """校验配置结构，提前暴露高风险问题。

    只做结构校验，不改写输入；规则语义（方言、正则、外部列表）留给编译阶段报错。
    """

    errors: list[str] = []
    warnings: list[str] = []

    for key in sorted(set(data) - KNOWN_KEYS):
        warnings.append(f"未识别的配置项 `{key}`，已忽略。")

    servers = data.get("servers", [])
    if servers is None:
        servers = []
    if not isinstance(servers, list):
        errors.append("`servers` 必须是数组。")
        servers = []

    seen_servers: dict[tuple[str, int], int] = {}
    for idx, item in enumerate(servers, 1):
        label = f"servers #{idx:02d}"
        if isinstance(item, str):
            _check_address(item, f"{label} 的地址", errors)
            endpoint = (item, DEFAULT_DNS_PORT)
        elif isinstance(item, dict):
            for key in sorted(set(item) - SERVER_KEYS):
                warnings.append(f"{label} 存在未识别的字段 `{key}`，已忽略。")
            if item.get("address") is None:
                errors.append(f"{label} 未配置 `address`。")
            else:
                _check_address(item["address"], f"{label} 的 `address`", errors)
            port = item.get("port", DEFAULT_DNS_PORT)
            if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
                errors.append(f"{label} 的 `port` 必须是 0-65535 的整数。")
                port = DEFAULT_DNS_PORT
            _check_string_list(item.get("domains"), f"{label} 的 `domains`", errors)
            _check_string_list(item.get("expectIps"), f"{label} 的 `expectIps`", errors)
            endpoint = (str(item.get("address")), port)
        else:
            errors.append(f"{label} 必须是地址字符串或对象，实际类型为 `{type(item).__name__}`。")
            continue

        if endpoint in seen_servers:
            warnings.append(f"{label} 与 servers #{seen_servers[endpoint]:02d} 指向同一地址：`{endpoint[0]}`。")
        else:
            seen_servers[endpoint] = idx

    hosts = data.get("hosts")
    if hosts is not None:
        if not isinstance(hosts, dict):
            errors.append("`hosts` 必须是对象。")
        else:
            for pattern, target in hosts.items():
                if not pattern:
                    errors.append("`hosts` 中存在空的 pattern。")
                _check_address(target, f"hosts `{pattern}` 的目标", errors)

    if data.get("clientIp") is not None:
        _check_address(data["clientIp"], "`clientIp`", errors)

    if "tag" in data and not isinstance(data["tag"], str):
        errors.append("`tag` 必须是字符串。")
    if data.get("fakeIpRange") is not None and not isinstance(data["fakeIpRange"], str):
        errors.append("`fakeIpRange` 必须是字符串或 null。")
    _check_string_list(data.get("useFake"), "`useFake`", errors)

    return errors, warnings


def to_name_server_config(item: str | dict) -> NameServerConfig:
    if isinstance(item, str):
        return NameServerConfig(address=Address.parse(item))
    address = item.get("address")
    return NameServerConfig(
        address=Address.parse(address) if address is not None else None,
        port=item.get("port", DEFAULT_DNS_PORT),
        # `or []` 用于容错 null。
        domains=list(item.get("domains") or []),
        expect_ips=list(item.get("expectIps") or []),
    )


def to_dns_config(data: dict) -> DnsConfig:
    """把已校验的配置对象转换为 DnsConfig。"""

    client_ip = data.get("clientIp")
    return DnsConfig(
        servers=[to_name_server_config(item) for item in data.get("servers") or []],
        hosts={pattern: Address.parse(target) for pattern, target in (data.get("hosts") or {}).items()},
        client_ip=Address.parse(client_ip) if client_ip is not None else None,
        tag=data.get("tag", ""),
        fake_ip_range=data.get("fakeIpRange"),
        use_fake=list(data["useFake"]) if data.get("useFake") is not None else None,
    )
