"""地址值对象：IP 与域名二选一。"""

from __future__ import annotations

import ipaddress
import re

# 只做最基本的字符集约束，具体合法性交给 DNS 运行时。
_DOMAIN_RE = re.compile(r"^[A-Za-z0-9_*](?:[A-Za-z0-9_.*-]*[A-Za-z0-9_*])?\.?$")


class Address:
    """hosts 映射目标、name server、clientIp 共用的地址。

    与 v2ray 配置一致：能解析为 IPv4/IPv6 的按 IP 处理，否则视为域名。
    """

    __slots__ = ("_ip", "_domain")

    def __init__(
        self,
        ip: ipaddress.IPv4Address | ipaddress.IPv6Address | None = None,
        domain: str = "",
    ) -> None:
        if (ip is None) == (not domain):
            raise ValueError("Address 必须且只能设置 IP 或域名之一。")
        self._ip = ip
        self._domain = domain

    @classmethod
    def parse(cls, value: str) -> "Address":
        text = str(value).strip()
        # 兼容 `[::1]` 这种带方括号的 IPv6 写法。
        if text.startswith("[") and text.endswith("]"):
            text = text[1:-1]
        try:
            return cls(ip=ipaddress.ip_address(text))
        except ValueError:
            pass
        if not _DOMAIN_RE.match(text):
            raise ValueError(f"既不是 IP 也不是合法域名：{value!r}")
        return cls(domain=text)

    def is_ip(self) -> bool:
        return self._ip is not None

    @property
    def ip(self) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
        return self._ip

    @property
    def ip_bytes(self) -> bytes:
        """4 或 16 字节的原始地址；域名地址调用时报错。"""

        if self._ip is None:
            raise ValueError(f"{self._domain} 不是 IP 地址")
        return self._ip.packed

    @property
    def domain(self) -> str:
        return self._domain

    def __str__(self) -> str:
        return str(self._ip) if self._ip is not None else self._domain

    def __repr__(self) -> str:
        return f"Address({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._ip == other._ip and self._domain == other._domain

    def __hash__(self) -> int:
        return hash((self._ip, self._domain))
