"""
Typed entries of the sing-box configuration document.

Every section entry is a dataclass with a fixed ``type`` where the kernel
discriminates on it. Optional fields left as ``None`` are omitted from the
serialized document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from boxgen.db.config import ConfigBase

LISTEN_INBOUND_TYPES = ("mixed", "http", "socks")
BUILT_IN_OUTBOUND_TYPES = ("direct", "dns", "block")


# Inbounds


@dataclass
class ListenInbound(ConfigBase):
    """TCP listener: mixed, http or socks."""

    type: str
    listen: str
    listen_port: int
    tcp_multi_path: bool = False
    sniff: bool = True

    def __post_init__(self) -> None:
        if self.type not in LISTEN_INBOUND_TYPES:
            raise ValueError(f"Unknown listener type: {self.type}")


@dataclass
class TunInbound(ConfigBase):
    """Virtual network interface."""

    type: str = field(default="tun", init=False)
    interface_name: str
    mtu: int
    auto_route: bool
    strict_route: bool
    endpoint_independent_nat: bool
    stack: str
    inet4_address: str = "172.19.0.1/30"
    inet6_address: str = "fdfe:dcba:9876::1/126"
    sniff: bool = True
    sniff_override_destination: bool = False


Inbound = Union[ListenInbound, TunInbound]


# Outbounds


@dataclass
class SelectorOutbound(ConfigBase):
    """Manually selected group."""

    type: str = field(default="selector", init=False)
    tag: str
    outbounds: list[str]


@dataclass
class UrlTestOutbound(ConfigBase):
    """Latency-tested group."""

    type: str = field(default="urltest", init=False)
    tag: str
    outbounds: list[str]
    url: str
    interval: str
    tolerance: int


@dataclass
class BuiltInOutbound(ConfigBase):
    """Kernel-provided outbound (direct, dns, block)."""

    type: str
    tag: str

    def __post_init__(self) -> None:
        if self.type not in BUILT_IN_OUTBOUND_TYPES:
            raise ValueError(f"Unknown built-in outbound: {self.type}")


# Subscription proxies are passed through untouched
Outbound = Union[SelectorOutbound, UrlTestOutbound, BuiltInOutbound, dict]


# Rules


@dataclass
class MatchRule(ConfigBase):
    """User rule: values of one match field sent to an outbound."""

    key: str
    values: list[str]
    outbound: str

    def to_dict(self, exclude_defaults: bool = False, exclude_none: bool = True) -> dict[str, Any]:
        return {self.key: list(self.values), "outbound": self.outbound}


@dataclass
class RuleSetRule(ConfigBase):
    """Match by rule set tag(s)."""

    rule_set: str | list[str]
    invert: bool | None = None
    outbound: str | None = None
    server: str | None = None


@dataclass
class RouteRule(ConfigBase):
    """Headless route rule over fixed match fields."""

    protocol: str | None = None
    network: str | None = None
    port: int | None = None
    ip_is_private: bool | None = None
    outbound: str | None = None


@dataclass
class DnsRule(ConfigBase):
    """Headless DNS rule over fixed match fields."""

    outbound: str | None = None
    domain_suffix: list[str] | None = None
    query_type: list[str] | None = None
    invert: bool | None = None
    server: str | None = None
    disable_cache: bool | None = None


@dataclass
class LogicalRule(ConfigBase):
    """Combination of sub-rules."""

    type: str = field(default="logical", init=False)
    mode: str
    rules: list[Any]
    outbound: str | None = None
    server: str | None = None

    def __post_init__(self) -> None:
        if self.mode not in ("and", "or"):
            raise ValueError(f"Unknown logical mode: {self.mode}")


RuleClause = Union[MatchRule, RuleSetRule]


# Rule sets


@dataclass
class RemoteRuleSet(ConfigBase):
    """Rule set downloaded by the kernel."""

    type: str = field(default="remote", init=False)
    tag: str
    url: str
    format: str = "binary"
    download_detour: str = "direct"


@dataclass
class LocalRuleSet(ConfigBase):
    """Rule set read from disk by the kernel."""

    type: str = field(default="local", init=False)
    tag: str
    format: str
    path: str


# Sections


@dataclass
class DnsServer(ConfigBase):
    tag: str
    address: str
    address_resolver: str | None = None
    detour: str | None = None


@dataclass
class FakeIpSettings(ConfigBase):
    enabled: bool
    inet4_range: str
    inet6_range: str


@dataclass
class DnsSection(ConfigBase):
    servers: list[DnsServer]
    rules: list[Any]
    fakeip: FakeIpSettings | None = None
    final: str | None = None
    strategy: str | None = None


@dataclass
class RouteSection(ConfigBase):
    rule_set: list[Any]
    rules: list[Any]
    final: str | None = None
    auto_detect_interface: bool | None = None
    default_interface: str | None = None


@dataclass
class LogSection(ConfigBase):
    level: str
    timestamp: bool = True


@dataclass
class ClashApi(ConfigBase):
    external_controller: str
    external_ui: str
    secret: str
    external_ui_download_url: str


@dataclass
class CacheFile(ConfigBase):
    enabled: bool
    store_fakeip: bool


@dataclass
class Experimental(ConfigBase):
    clash_api: ClashApi
    cache_file: CacheFile


@dataclass
class KernelConfig(ConfigBase):
    """Complete kernel configuration document."""

    log: LogSection
    experimental: Experimental
    inbounds: list[Any]
    outbounds: list[Any]
    route: RouteSection
    dns: DnsSection | None = None
