from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from boxgen.core.config import BUILT_IN_RULE_SETS, GEOIP_CN, GEOSITE_CN, GEOSITE_NOT_CN
from boxgen.db.config import AUTO_INTERFACE, ProxyMode, RuleType
from boxgen.db.profiles import Profile
from boxgen.db.registries import Ruleset
from boxgen.kernel.rules import compile_rule, generate_rule_sets
from boxgen.kernel.types import (
    LogicalRule,
    RemoteRuleSet,
    RouteRule,
    RouteSection,
    RuleSetRule,
)

logger = logging.getLogger("boxgen.kernel.route")


def built_in_rule_sets() -> list[RemoteRuleSet]:
    """Remote rule sets used by mode rules and DNS routing."""
    return [RemoteRuleSet(tag=tag, url=url) for tag, url in BUILT_IN_RULE_SETS.items()]


def generate_route(profile: Profile, rulesets: Mapping[str, Ruleset]) -> RouteSection:
    """
    Build the route section.

    Args:
        profile: Source profile
        rulesets: Ruleset snapshot used to resolve ``rule_set`` rules

    Returns:
        Route section with mode-dependent rules and final outbound
    """
    proxy_tag = profile.default_proxy_tag
    mode = profile.general_config.mode

    rules: list[Any] = [
        LogicalRule(
            mode="or",
            rules=[RouteRule(protocol="dns"), RouteRule(port=53)],
            outbound="dns-out",
        ),
        RouteRule(network="udp", port=443, outbound="block"),
    ]
    route = RouteSection(
        rule_set=[*built_in_rule_sets(), *generate_rule_sets(profile.rules_config, rulesets)],
        rules=rules,
    )

    if mode == ProxyMode.RULE:
        rules.extend(
            [
                RouteRule(ip_is_private=True, outbound="direct"),
                LogicalRule(
                    mode="and",
                    rules=[
                        RuleSetRule(rule_set=GEOSITE_NOT_CN, invert=True),
                        RuleSetRule(rule_set=[GEOIP_CN, GEOSITE_CN]),
                    ],
                    outbound="direct",
                ),
                RuleSetRule(rule_set=GEOSITE_NOT_CN, outbound=proxy_tag),
            ]
        )
        for rule in profile.rules_config:
            if rule.type == RuleType.FINAL:
                continue
            clause = compile_rule(rule, rulesets)
            if clause is not None:
                rules.append(clause)

        final_rule = next((r for r in profile.rules_config if r.type == RuleType.FINAL), None)
        if final_rule is not None:
            route.final = final_rule.proxy
    elif mode == ProxyMode.GLOBAL:
        route.final = proxy_tag
    else:
        route.final = "direct"

    logger.debug("Route for mode %s: %d rules, final %s", mode, len(rules), route.final)

    interface_name = profile.general_config.interface_name
    if interface_name == AUTO_INTERFACE:
        route.auto_detect_interface = True
    else:
        route.default_interface = interface_name
    return route
