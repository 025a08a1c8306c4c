from boxgen.kernel.dns import generate_dns
from boxgen.kernel.generator import (
    GenerationContext,
    build_config,
    generate_config,
    generate_config_file,
)
from boxgen.kernel.inbounds import generate_inbounds
from boxgen.kernel.proxies import (
    ProxyResolver,
    ResolvedProxies,
    generate_outbounds,
    resolve_proxies,
)
from boxgen.kernel.route import generate_route
from boxgen.kernel.rules import add_to_ruleset, compile_rule, generate_rule_sets

__all__ = [
    "GenerationContext",
    "ProxyResolver",
    "ResolvedProxies",
    "add_to_ruleset",
    "build_config",
    "compile_rule",
    "generate_config",
    "generate_config_file",
    "generate_dns",
    "generate_inbounds",
    "generate_outbounds",
    "generate_route",
    "generate_rule_sets",
    "resolve_proxies",
]
