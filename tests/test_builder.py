"""DNS 配置编译测试。"""

from __future__ import annotations

import ipaddress
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SCRIPTS_DIR = ROOT / "scripts"
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

from dnsrules.address import Address  # noqa: E402
from dnsrules.builder import build_dns_config, build_name_server  # noqa: E402
from dnsrules.cidr import GeoIPReference  # noqa: E402
from dnsrules.errors import (  # noqa: E402
    InvalidClientIPError,
    InvalidDomainRuleError,
    InvalidExternalReferenceError,
    InvalidIPRuleError,
    MissingAddressError,
    UnknownListOrTagError,
)
from dnsrules.models import DnsConfig, DomainKind, NameServerConfig, PriorityDomain  # noqa: E402
from dnsrules.resolver import ExternalListResolver, MemoryListLoader  # noqa: E402

ADDR1 = Address.parse("10.0.0.1")
ADDR2 = Address.parse("::1")


def make_resolver() -> ExternalListResolver:
    return ExternalListResolver(
        MemoryListLoader(
            {
                "geosite.dat": {
                    "CN": ["baidu.com", "full:www.qq.com"],
                    "GOOGLE": ["google.com", "keyword:googleapis"],
                },
                "custom.dat": {"ADS": ["regexp:^ad\\.", "full:ads.example.com"]},
            }
        )
    )


class NameServerTests(unittest.TestCase):
    def test_priority_domains_in_declaration_order(self) -> None:
        server = build_name_server(
            NameServerConfig(
                address=Address.parse("8.8.8.8"),
                domains=["full:z.com", "geosite:google", "a.com"],
                expect_ips=["1.2.3.0/24", "geoip:cn", "9.9.9.9"],
            ),
            make_resolver(),
        )
        self.assertEqual(server.port, 53)
        self.assertEqual(server.network, "udp")
        self.assertEqual(
            server.priority_domains,
            (
                PriorityDomain(DomainKind.FULL, "z.com"),
                PriorityDomain(DomainKind.SUBDOMAIN, "google.com"),
                PriorityDomain(DomainKind.KEYWORD, "googleapis"),
                PriorityDomain(DomainKind.FULL, "a.com"),
            ),
        )
        self.assertEqual(
            server.expect_ips,
            (
                ipaddress.ip_network("1.2.3.0/24"),
                GeoIPReference("CN"),
                ipaddress.ip_network("9.9.9.9/32"),
            ),
        )

    def test_missing_address(self) -> None:
        with self.assertRaises(MissingAddressError):
            build_name_server(NameServerConfig(address=None, domains=["a.com"]), make_resolver())

    def test_invalid_domain_carries_literal(self) -> None:
        with self.assertRaises(InvalidDomainRuleError) as ctx:
            build_name_server(
                NameServerConfig(address=ADDR1, domains=["a.com", "regexp:[oops"]),
                make_resolver(),
            )
        self.assertEqual(ctx.exception.value, "regexp:[oops")

    def test_list_error_carries_domain_literal(self) -> None:
        with self.assertRaises(UnknownListOrTagError) as ctx:
            build_name_server(NameServerConfig(address=ADDR1, domains=["geosite:nowhere"]), make_resolver())
        self.assertEqual(ctx.exception.value, "geosite:nowhere")
        self.assertIsInstance(ctx.exception.__cause__, UnknownListOrTagError)

    def test_invalid_expect_ips(self) -> None:
        with self.assertRaises(InvalidIPRuleError) as ctx:
            build_name_server(NameServerConfig(address=ADDR1, expect_ips=["1.2.3.0/24", "nope"]), make_resolver())
        self.assertEqual(ctx.exception.value, ["1.2.3.0/24", "nope"])

    def test_custom_cidr_builder(self) -> None:
        calls: list[list[str]] = []

        def builder(entries: list[str]) -> tuple:
            calls.append(entries)
            return ("table",)

        server = build_name_server(NameServerConfig(address=ADDR1, expect_ips=["geoip:us"]), make_resolver(), builder)
        self.assertEqual(calls, [["geoip:us"]])
        self.assertEqual(server.expect_ips, ("table",))


class DnsConfigTests(unittest.TestCase):
    def test_sorted_direct_host_mappings(self) -> None:
        config = build_dns_config(
            DnsConfig(hosts={"full:b.com": ADDR2, "domain:a.com": ADDR1}),
            make_resolver(),
        )
        self.assertEqual(len(config.static_hosts), 2)
        first, second = config.static_hosts
        self.assertEqual((first.kind, first.pattern, first.target), (DomainKind.SUBDOMAIN, "a.com", ADDR1))
        self.assertEqual(first.compressed_pattern, "da.com")
        self.assertEqual((second.kind, second.pattern, second.target), (DomainKind.FULL, "b.com", ADDR2))
        self.assertEqual(second.compressed_pattern, "fb.com")
        self.assertEqual(config.external_rules, {})
        self.assertIsNone(config.fake_dns)

    def test_unprefixed_host_is_full_match(self) -> None:
        config = build_dns_config(DnsConfig(hosts={"example.com": Address.parse("proxy.local")}), make_resolver())
        (mapping,) = config.static_hosts
        self.assertEqual((mapping.kind, mapping.pattern), (DomainKind.FULL, "example.com"))
        self.assertFalse(mapping.target.is_ip())
        self.assertEqual(mapping.target.domain, "proxy.local")

    def test_external_host_expands(self) -> None:
        config = build_dns_config(DnsConfig(hosts={"geosite:cn": ADDR1, "ext:custom.dat:ads": ADDR2}), make_resolver())
        kinds = [(m.kind, m.pattern, m.compressed_pattern) for m in config.static_hosts]
        self.assertEqual(
            kinds,
            [
                (DomainKind.EXTERNAL, "custom.dat:ads", "ecustom.dat:ads"),
                (DomainKind.REGEX, "^ad\\.", "r^ad\\."),
                (DomainKind.FULL, "ads.example.com", "fads.example.com"),
                (DomainKind.EXTERNAL, "geosite.dat:CN", "egeosite.dat:CN"),
                (DomainKind.SUBDOMAIN, "baidu.com", "dbaidu.com"),
                (DomainKind.FULL, "www.qq.com", "fwww.qq.com"),
            ],
        )
        self.assertTrue(all(m.target == ADDR2 for m in config.static_hosts[:3]))
        self.assertTrue(all(m.target == ADDR1 for m in config.static_hosts[3:]))
        self.assertEqual(
            config.external_rules,
            {
                "geosite.dat:CN": ("dbaidu.com", "fwww.qq.com"),
                "custom.dat:ads": ("r^ad\\.", "fads.example.com"),
            },
        )

    def test_repeated_builds_are_identical(self) -> None:
        source = DnsConfig(
            hosts={"geosite:cn": ADDR1, "z.com": ADDR2, "keyword:k": ADDR1},
            use_fake=["geosite:google", "domain:f.com"],
        )
        first = build_dns_config(source, make_resolver())
        for _ in range(3):
            self.assertEqual(build_dns_config(source, make_resolver()), first)

    def test_malformed_ext_aborts(self) -> None:
        with self.assertRaises(InvalidExternalReferenceError) as ctx:
            build_dns_config(DnsConfig(hosts={"a.com": ADDR1, "ext:onlyonepart": ADDR1}), make_resolver())
        self.assertEqual(ctx.exception.value, "ext:onlyonepart")

    def test_unknown_host_list_aborts(self) -> None:
        with self.assertRaises(UnknownListOrTagError):
            build_dns_config(DnsConfig(hosts={"geosite:nowhere": ADDR1}), make_resolver())

    def test_bad_list_entry_carries_host_literal(self) -> None:
        resolver = ExternalListResolver(MemoryListLoader({"c.dat": {"X": ["a.com", "regexp:(bad"]}}))
        with self.assertRaises(InvalidDomainRuleError) as ctx:
            build_dns_config(DnsConfig(hosts={"ext:c.dat:x": ADDR1}), resolver)
        self.assertEqual(ctx.exception.value, "ext:c.dat:x")
        self.assertEqual(ctx.exception.__cause__.value, "(bad")

    def test_unknown_host_list_carries_literal(self) -> None:
        with self.assertRaises(UnknownListOrTagError) as ctx:
            build_dns_config(DnsConfig(hosts={"geosite:nowhere": ADDR1}), make_resolver())
        self.assertEqual(ctx.exception.value, "geosite:nowhere")

    def test_geoip_host_is_rejected(self) -> None:
        with self.assertRaises(InvalidDomainRuleError):
            build_dns_config(DnsConfig(hosts={"geoip:cn": ADDR1}), make_resolver())

    def test_client_ip(self) -> None:
        config = build_dns_config(DnsConfig(client_ip=Address.parse("1.2.3.4"), tag="dns"), make_resolver())
        self.assertEqual(config.client_ip, bytes([1, 2, 3, 4]))
        self.assertEqual(config.tag, "dns")
        with self.assertRaises(InvalidClientIPError):
            build_dns_config(DnsConfig(client_ip=Address.parse("example.com")), make_resolver())

    def test_server_failure_aborts_whole_build(self) -> None:
        with self.assertRaises(MissingAddressError) as ctx:
            build_dns_config(
                DnsConfig(servers=[NameServerConfig(address=ADDR1), NameServerConfig(address=None)]),
                make_resolver(),
            )
        self.assertEqual(ctx.exception.value, "servers #02")
        self.assertIn("servers #02", str(ctx.exception))

    def test_fake_rules_skip_unresolvable(self) -> None:
        warnings: list[str] = []
        config = build_dns_config(
            DnsConfig(use_fake=["geosite:google", "geosite:unknown", "ext:bad", "domain:f.com", "domain:f.com"]),
            make_resolver(),
            warnings=warnings,
        )
        self.assertEqual(config.fake_dns.ip_range, "224.0.0.0/8")
        self.assertEqual(config.fake_dns.patterns, ("egeosite.dat:GOOGLE", "df.com"))
        self.assertEqual(config.external_rules, {"geosite.dat:GOOGLE": ("dgoogle.com", "kgoogleapis")})
        self.assertEqual(len(warnings), 2)
        self.assertTrue(any("geosite:unknown" in item for item in warnings))

    def test_fake_range_override_and_validation(self) -> None:
        config = build_dns_config(DnsConfig(fake_ip_range="198.18.0.0/15", use_fake=[]), make_resolver())
        self.assertEqual(config.fake_dns.ip_range, "198.18.0.0/15")
        self.assertEqual(config.fake_dns.patterns, ())
        with self.assertRaises(InvalidIPRuleError):
            build_dns_config(DnsConfig(fake_ip_range="not-a-range", use_fake=[]), make_resolver())


if __name__ == "__main__":
    unittest.main()
