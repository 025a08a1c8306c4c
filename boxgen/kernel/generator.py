from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from boxgen.core.config import KERNEL_CONFIG_FILE_PATH
from boxgen.db.profiles import Profile
from boxgen.db.registries import Ruleset, Subscription
from boxgen.kernel.dns import generate_dns
from boxgen.kernel.inbounds import generate_inbounds
from boxgen.kernel.proxies import generate_outbounds, resolve_proxies
from boxgen.kernel.route import generate_route
from boxgen.kernel.types import (
    BuiltInOutbound,
    CacheFile,
    ClashApi,
    Experimental,
    KernelConfig,
    LogSection,
)
from boxgen.storage.blob import BlobStore

logger = logging.getLogger("boxgen.kernel.generator")


@dataclass(frozen=True)
class GenerationContext:
    """Read-only inputs of a generation run besides the profile itself."""

    blob_store: BlobStore
    subscriptions: Mapping[str, Subscription] = field(default_factory=lambda: MappingProxyType({}))
    rulesets: Mapping[str, Ruleset] = field(default_factory=lambda: MappingProxyType({}))


def build_config(profile: Profile, context: GenerationContext) -> KernelConfig:
    """Assemble the typed kernel configuration for a profile."""
    profile = profile.copy()
    advanced = profile.advanced_config

    resolved = resolve_proxies(profile.proxy_groups_config, context.subscriptions, context.blob_store)
    outbounds = generate_outbounds(profile.proxy_groups_config, resolved)
    outbounds.extend(
        [
            BuiltInOutbound(type="direct", tag="direct"),
            BuiltInOutbound(type="dns", tag="dns-out"),
            BuiltInOutbound(type="block", tag="block"),
        ]
    )

    config = KernelConfig(
        log=LogSection(level=profile.general_config.log_level),
        experimental=Experimental(
            clash_api=ClashApi(
                external_controller=advanced.external_controller,
                external_ui=advanced.external_ui,
                secret=advanced.secret,
                external_ui_download_url=advanced.external_ui_url,
            ),
            cache_file=CacheFile(
                enabled=advanced.profile.store_cache,
                store_fakeip=advanced.profile.store_fake_ip,
            ),
        ),
        inbounds=generate_inbounds(profile),
        outbounds=outbounds,
        route=generate_route(profile, context.rulesets),
    )

    if profile.dns_config.enable:
        config.dns = generate_dns(profile)

    return config


def generate_config(profile: Profile, context: GenerationContext) -> dict[str, Any]:
    """Kernel configuration document for a profile."""
    config = build_config(profile, context).to_dict()
    logger.info(
        "Generated config for profile %s: %d inbound(s), %d outbound(s)",
        profile.name or profile.id,
        len(config["inbounds"]),
        len(config["outbounds"]),
    )
    return config


def generate_config_file(
    profile: Profile,
    context: GenerationContext,
    path: str = KERNEL_CONFIG_FILE_PATH,
) -> dict[str, Any]:
    """Generate the configuration and write it where the kernel reads it."""
    config = generate_config(profile, context)
    text = json.dumps(config, indent=2, ensure_ascii=False)
    context.blob_store.write(path, text.encode("utf-8"))
    logger.info("Kernel config written to %s", path)
    return config
