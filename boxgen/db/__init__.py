from boxgen.db.config import (
    ConfigBase,
    DnsStrategy,
    FinalDns,
    ProxyGroupType,
    ProxyMode,
    RuleType,
    TunStack,
)
from boxgen.db.debounce import DebouncedWriter
from boxgen.db.profiles import (
    AdvancedConfig,
    DnsConfig,
    GeneralConfig,
    GroupProxy,
    Profile,
    ProfileStore,
    ProxyGroup,
    Rule,
    TunConfig,
    new_profile,
)
from boxgen.db.registries import Ruleset, RulesetRegistry, Subscription, SubscriptionRegistry

__all__ = [
    "AdvancedConfig",
    "ConfigBase",
    "DebouncedWriter",
    "DnsConfig",
    "DnsStrategy",
    "FinalDns",
    "GeneralConfig",
    "GroupProxy",
    "Profile",
    "ProfileStore",
    "ProxyGroup",
    "ProxyGroupType",
    "ProxyMode",
    "Rule",
    "RuleType",
    "Ruleset",
    "RulesetRegistry",
    "Subscription",
    "SubscriptionRegistry",
    "TunConfig",
    "TunStack",
    "new_profile",
]
