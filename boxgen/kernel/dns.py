from __future__ import annotations

from boxgen.core.config import GEOSITE_CN, GEOSITE_NOT_CN
from boxgen.db.profiles import Profile
from boxgen.kernel.types import (
    DnsRule,
    DnsSection,
    DnsServer,
    FakeIpSettings,
    LogicalRule,
    RuleSetRule,
)

REMOTE_DNS = "remote-dns"
LOCAL_DNS = "local-dns"
RESOLVER_DNS = "resolver-dns"
REMOTE_RESOLVER_DNS = "remote-resolver-dns"
FAKEIP_DNS = "fakeip-dns"
BLOCK_DNS = "block"


def generate_dns_servers(profile: Profile) -> list[DnsServer]:
    """Upstream servers. Remote ones go through the first proxy group."""
    dns = profile.dns_config
    remote_detour = profile.default_proxy_tag
    direct_detour = "direct"

    servers = [
        DnsServer(
            tag=REMOTE_DNS,
            address=dns.remote_dns,
            address_resolver=REMOTE_RESOLVER_DNS,
            detour=remote_detour,
        ),
        DnsServer(
            tag=LOCAL_DNS,
            address=dns.local_dns,
            address_resolver=RESOLVER_DNS,
            detour=direct_detour,
        ),
        DnsServer(tag=RESOLVER_DNS, address=dns.resolver_dns, detour=direct_detour),
        DnsServer(tag=REMOTE_RESOLVER_DNS, address=dns.remote_resolver_dns, detour=remote_detour),
    ]
    if dns.fakeip:
        servers.append(DnsServer(tag=FAKEIP_DNS, address="fakeip"))
    servers.append(DnsServer(tag=BLOCK_DNS, address="rcode://success"))
    return servers


def generate_dns_rules(profile: Profile) -> list[DnsRule | LogicalRule | RuleSetRule]:
    """DNS routing: kernel lookups local, domestic local, the rest remote."""
    dns = profile.dns_config
    rules: list[DnsRule | LogicalRule | RuleSetRule] = [
        DnsRule(outbound="any", server=LOCAL_DNS, disable_cache=True),
    ]
    if dns.fakeip:
        rules.append(
            LogicalRule(
                mode="and",
                rules=[
                    DnsRule(domain_suffix=list(dns.fake_ip_filter), invert=True),
                    DnsRule(query_type=["A", "AAAA"]),
                ],
                server=FAKEIP_DNS,
            )
        )
    rules.append(
        LogicalRule(
            mode="and",
            rules=[
                RuleSetRule(rule_set=GEOSITE_NOT_CN, invert=True),
                RuleSetRule(rule_set=GEOSITE_CN),
            ],
            server=LOCAL_DNS,
        )
    )
    rules.append(RuleSetRule(rule_set=GEOSITE_NOT_CN, server=REMOTE_DNS))
    return rules


def generate_dns(profile: Profile) -> DnsSection:
    """Complete DNS section of the kernel configuration."""
    dns = profile.dns_config
    return DnsSection(
        servers=generate_dns_servers(profile),
        rules=generate_dns_rules(profile),
        fakeip=FakeIpSettings(
            enabled=dns.fakeip,
            inet4_range=dns.fake_ip_range_v4,
            inet6_range=dns.fake_ip_range_v6,
        ),
        final=dns.final_dns,
        strategy=dns.strategy,
    )
