"""编译产物到 JSON 友好结构的转换。"""

from __future__ import annotations

import ipaddress

from .cidr import GeoIPReference
from .models import HostMapping, NameServer, ResolvedConfig


def _ip_text(raw: bytes) -> str:
    return str(ipaddress.ip_address(raw))


def _expect_ip_text(item: object) -> str:
    if isinstance(item, GeoIPReference):
        return f"geoip:{item.code}"
    return str(item)


def name_server_to_dict(server: NameServer) -> dict:
    return {
        "address": str(server.address),
        "port": server.port,
        "network": server.network,
        "prioritizedDomain": [{"type": d.kind.value, "domain": d.value} for d in server.priority_domains],
        "expectIps": [_expect_ip_text(item) for item in server.expect_ips],
    }


def host_mapping_to_dict(mapping: HostMapping) -> dict:
    result: dict = {
        "type": mapping.kind.value,
        "pattern": mapping.pattern,
        "compressedPattern": mapping.compressed_pattern,
    }
    # 目标二选一：IP 输出 ip，域名输出 proxiedDomain。
    if mapping.target.is_ip():
        result["ip"] = [str(mapping.target)]
    else:
        result["proxiedDomain"] = mapping.target.domain
    return result


def config_to_dict(config: ResolvedConfig) -> dict:
    """把 ResolvedConfig 转为可直接 json.dumps 的字典。"""

    result: dict = {"tag": config.tag}
    if config.client_ip is not None:
        result["clientIp"] = _ip_text(config.client_ip)
    result["nameServer"] = [name_server_to_dict(s) for s in config.name_servers]
    result["staticHosts"] = [host_mapping_to_dict(m) for m in config.static_hosts]
    result["externalRules"] = {key: list(value) for key, value in sorted(config.external_rules.items())}
    if config.fake_dns is not None:
        result["fakeDns"] = {
            "ipRange": config.fake_dns.ip_range,
            "patterns": list(config.fake_dns.patterns),
        }
    return result
