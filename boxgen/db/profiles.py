from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any

import yaml

from boxgen.core.config import PROFILES_FILE_PATH, SAVE_DEBOUNCE_DELAY
from boxgen.db.config import (
    AUTO_INTERFACE,
    BUILT_IN_PROXY_TYPE,
    ConfigBase,
    DnsStrategy,
    FinalDns,
    ProxyGroupType,
    ProxyMode,
    RuleType,
    TunStack,
    alias,
)
from boxgen.db.debounce import DebouncedWriter
from boxgen.storage.blob import BlobNotFoundError, BlobStore

logger = logging.getLogger("boxgen.db.profiles")


def generate_id() -> str:
    """Opaque identifier for profiles, groups and rules."""
    return uuid.uuid4().hex[:16]


@dataclass
class GeneralConfig(ConfigBase):
    """Mode, main listener and logging."""

    mode: str = ProxyMode.RULE
    mixed_port: int = field(default=20122, metadata=alias("mixed-port"))
    allow_lan: bool = field(default=False, metadata=alias("allow-lan"))
    log_level: str = field(default="info", metadata=alias("log-level"))
    interface_name: str = field(default=AUTO_INTERFACE, metadata=alias("interface-name"))


@dataclass
class CacheProfile(ConfigBase):
    """Kernel cache file switches."""

    store_cache: bool = field(default=True, metadata=alias("store-cache"))
    store_fake_ip: bool = field(default=True, metadata=alias("store-fake-ip"))


@dataclass
class AdvancedConfig(ConfigBase):
    """Extra listeners, control API and LAN access."""

    port: int = 0
    socks_port: int = field(default=0, metadata=alias("socks-port"))
    secret: str = ""
    external_controller: str = field(default="127.0.0.1:20123", metadata=alias("external-controller"))
    external_ui: str = field(default="ui", metadata=alias("external-ui"))
    external_ui_url: str = field(
        default="https://github.com/MetaCubeX/metacubexd/archive/refs/heads/gh-pages.zip",
        metadata=alias("external-ui-url"),
    )
    tcp_concurrent: bool = field(default=False, metadata=alias("tcp-concurrent"))
    profile: CacheProfile = field(default_factory=CacheProfile)
    lan_allowed_ips: list[str] = field(
        default_factory=lambda: ["0.0.0.0/0", "::/0"],
        metadata=alias("lan-allowed-ips"),
    )
    lan_disallowed_ips: list[str] = field(default_factory=list, metadata=alias("lan-disallowed-ips"))


@dataclass
class TunConfig(ConfigBase):
    """Virtual interface settings."""

    enable: bool = False
    stack: str = TunStack.SYSTEM
    auto_route: bool = field(default=True, metadata=alias("auto-route"))
    interface_name: str = ""
    mtu: int = 9000
    strict_route: bool = field(default=True, metadata=alias("strict-route"))
    endpoint_independent_nat: bool = field(default=False, metadata=alias("endpoint-independent-nat"))


@dataclass
class DnsConfig(ConfigBase):
    """DNS settings."""

    enable: bool = True
    fakeip: bool = False
    strategy: str = DnsStrategy.PREFER_IPV4
    local_dns: str = field(default="https://223.5.5.5/dns-query", metadata=alias("local-dns"))
    remote_dns: str = field(default="tls://8.8.8.8", metadata=alias("remote-dns"))
    resolver_dns: str = field(default="223.5.5.5", metadata=alias("resolver-dns"))
    remote_resolver_dns: str = field(default="8.8.8.8", metadata=alias("remote-resolver-dns"))
    final_dns: str = field(default=FinalDns.REMOTE, metadata=alias("final-dns"))
    fake_ip_range_v4: str = field(default="198.18.0.1/16", metadata=alias("fake-ip-range-v4"))
    fake_ip_range_v6: str = field(default="fc00::/18", metadata=alias("fake-ip-range-v6"))
    fake_ip_filter: list[str] = field(
        default_factory=lambda: [".lan", ".local", ".localdomain", ".msftconnecttest.com"],
        metadata=alias("fake-ip-filter"),
    )


@dataclass
class GroupProxy(ConfigBase):
    """Member of a proxy group: a built-in outbound or a subscription entry."""

    id: str = ""
    type: str = ""
    tag: str = ""


@dataclass
class ProxyGroup(ConfigBase):
    """Named, ordered collection of outbounds."""

    id: str = field(default_factory=generate_id)
    tag: str = ""
    type: str = ProxyGroupType.SELECT
    use: list[str] = field(default_factory=list)
    proxies: list[GroupProxy] = field(default_factory=list)
    url: str = "https://www.gstatic.com/generate_204"
    interval: int = 300
    tolerance: int = 150


@dataclass
class Rule(ConfigBase):
    """Routing rule: payload of the given kind sent to a proxy tag."""

    id: str = field(default_factory=generate_id)
    type: str = ""
    payload: str = ""
    proxy: str = ""


@dataclass
class Profile(ConfigBase):
    """Complete, user-editable configuration unit."""

    id: str = field(default_factory=generate_id)
    name: str = ""
    general_config: GeneralConfig = field(default_factory=GeneralConfig, metadata=alias("generalConfig"))
    advanced_config: AdvancedConfig = field(default_factory=AdvancedConfig, metadata=alias("advancedConfig"))
    tun_config: TunConfig = field(default_factory=TunConfig, metadata=alias("tunConfig"))
    dns_config: DnsConfig = field(default_factory=DnsConfig, metadata=alias("dnsConfig"))
    proxy_groups_config: list[ProxyGroup] = field(
        default_factory=list, metadata=alias("proxyGroupsConfig")
    )
    rules_config: list[Rule] = field(default_factory=list, metadata=alias("rulesConfig"))

    @property
    def default_proxy_tag(self) -> str:
        """Tag of the first proxy group, used for DNS and global routing."""
        if self.proxy_groups_config:
            return self.proxy_groups_config[0].tag
        return "direct"


def new_profile(name: str) -> Profile:
    """Create a profile with default settings and a single proxy group."""
    return Profile(
        name=name,
        proxy_groups_config=[
            ProxyGroup(
                tag="Proxy",
                type=ProxyGroupType.SELECT,
                proxies=[GroupProxy(id="direct", type=BUILT_IN_PROXY_TYPE, tag="direct")],
            )
        ],
        rules_config=[Rule(type=RuleType.FINAL, proxy="Proxy")],
    )


class ProfileStore:
    """
    In-memory profile collection with write-through persistence.

    Every mutation waits for the write that covers it. Mutations sharing
    a write form a batch. The collection is snapshotted when a batch
    opens, and if its write fails the snapshot is restored before any
    caller of the batch sees the error.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        path: str = PROFILES_FILE_PATH,
        delay: float = SAVE_DEBOUNCE_DELAY,
    ):
        self._blob_store = blob_store
        self._path = path
        self._profiles: list[Profile] = []
        self._batch_base: list[Profile] | None = None
        self._lock = threading.RLock()
        self._writer = DebouncedWriter(self._write, delay=delay, lock=self._lock)

    @property
    def profiles(self) -> list[Profile]:
        """Snapshot of all profiles, in stored order."""
        with self._lock:
            return list(self._profiles)

    def get(self, profile_id: str) -> Profile | None:
        """Get profile by ID."""
        with self._lock:
            return next((p for p in self._profiles if p.id == profile_id), None)

    def _index(self, profile_id: str) -> int:
        return next((i for i, p in enumerate(self._profiles) if p.id == profile_id), -1)

    def _open_batch(self) -> None:
        if self._batch_base is None:
            self._batch_base = list(self._profiles)

    def add(self, profile: Profile) -> None:
        """Append profile and persist."""
        with self._lock:
            if self._index(profile.id) != -1:
                raise ValueError(f"Profile with ID {profile.id} already exists")
            self._open_batch()
            self._profiles.append(profile)
            future = self._writer.request()
        future.result()

    def edit(self, profile_id: str, profile: Profile) -> bool:
        """Replace profile by ID and persist. Returns False if ID is unknown."""
        with self._lock:
            idx = self._index(profile_id)
            if idx == -1:
                return False
            self._open_batch()
            self._profiles[idx] = profile
            future = self._writer.request()
        future.result()
        return True

    def delete(self, profile_id: str) -> bool:
        """Remove profile by ID and persist. Returns False if ID is unknown."""
        with self._lock:
            idx = self._index(profile_id)
            if idx == -1:
                return False
            self._open_batch()
            del self._profiles[idx]
            future = self._writer.request()
        future.result()
        return True

    def dump(self) -> str:
        """Serialize the collection as YAML."""
        with self._lock:
            data = [p.to_dict() for p in self._profiles]
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)

    def _write(self) -> None:
        # Runs under self._lock, held by the writer for the whole batch
        base, self._batch_base = self._batch_base, None
        try:
            self._blob_store.write(self._path, self.dump().encode("utf-8"))
        except Exception:
            if base is not None:
                self._profiles = base
                logger.warning("Profiles restored to %d entries after failed save", len(base))
            raise
        logger.debug("Profiles saved to %s", self._path)

    def save(self) -> None:
        """Persist immediately, bypassing the debounce window."""
        with self._lock:
            future = self._writer.request()
            self._writer.flush()
        future.result()

    def load(self) -> bool:
        """Load profiles. A missing file leaves the store empty."""
        try:
            raw = self._blob_store.read(self._path)
        except BlobNotFoundError:
            logger.info("No profiles at %s, starting empty", self._path)
            with self._lock:
                self._profiles = []
            return True
        except OSError as e:
            logger.error("Error reading profiles: %s", e)
            return False

        try:
            data: Any = yaml.safe_load(raw) or []
        except yaml.YAMLError as e:
            logger.error("Error parsing profiles: %s", e)
            return False

        if not isinstance(data, list):
            logger.error("Profiles file %s is not a list", self._path)
            return False

        with self._lock:
            self._profiles = [Profile.from_dict(item) for item in data if isinstance(item, dict)]
        logger.info("Loaded %d profile(s)", len(self._profiles))
        return True
