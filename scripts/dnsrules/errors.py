"""规则编译过程中的异常类型。"""

from __future__ import annotations


class DNSRuleError(ValueError):
    """所有构建期错误的基类。

    `value` 保存触发错误的原始字面量，便于排障时直接定位到配置中的那一行。
    """

    def __init__(self, message: str, value: object = None) -> None:
        super().__init__(message)
        self.value = value


class MissingAddressError(DNSRuleError):
    """name server 未配置地址。"""


class InvalidDomainRuleError(DNSRuleError):
    """域名规则无法解析，或 regexp 无法编译。"""


class InvalidIPRuleError(DNSRuleError):
    """expectIps 列表中存在无法解析的 IP/CIDR。"""


class InvalidExternalReferenceError(DNSRuleError):
    """`ext:` 参数不是 `文件名:标签` 格式。"""


class UnknownListOrTagError(DNSRuleError):
    """外部列表文件或其中的标签不存在。"""


class InvalidClientIPError(DNSRuleError):
    """clientIp 不是 IP 地址。"""
