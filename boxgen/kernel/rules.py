from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

import yaml

from boxgen.core.config import RULESETS_DIR
from boxgen.db.config import RuleType
from boxgen.db.profiles import Rule
from boxgen.db.registries import Ruleset
from boxgen.kernel.types import LocalRuleSet, MatchRule, RuleClause, RuleSetRule
from boxgen.storage.blob import BlobStore

logger = logging.getLogger("boxgen.kernel.rules")

# Rulesets the user can append single entries to
EDITABLE_RULESETS = ("direct", "reject", "proxy")


def split_payload(payload: str) -> list[str]:
    """Split comma-separated payload into trimmed, non-empty values."""
    return [part.strip() for part in payload.split(",") if part.strip()]


def compile_rule(rule: Rule, rulesets: Mapping[str, Ruleset]) -> RuleClause | None:
    """
    Translate one routing rule into a kernel rule clause.

    Returns None for a ``rule_set`` rule whose ruleset is unknown.
    """
    if rule.type == RuleType.RULE_SET:
        ruleset = rulesets.get(rule.payload)
        if ruleset is None:
            logger.debug("Ruleset %s not found, rule %s skipped", rule.payload, rule.id)
            return None
        return RuleSetRule(rule_set=ruleset.tag, outbound=rule.proxy)

    return MatchRule(key=rule.type, values=split_payload(rule.payload), outbound=rule.proxy)


def kernel_ruleset_path(path: str) -> str:
    """Path of a ruleset as seen from the kernel working directory."""
    return path.replace("data/", "../", 1)


def generate_rule_sets(rules: Iterable[Rule], rulesets: Mapping[str, Ruleset]) -> list[LocalRuleSet]:
    """Local rule-set entries for every known ruleset the rules reference."""
    result: list[LocalRuleSet] = []
    seen: set[str] = set()
    for rule in rules:
        if rule.type != RuleType.RULE_SET:
            continue
        ruleset = rulesets.get(rule.payload)
        if ruleset is None or ruleset.tag in seen:
            continue
        seen.add(ruleset.tag)
        result.append(
            LocalRuleSet(
                tag=ruleset.tag,
                format=ruleset.format,
                path=kernel_ruleset_path(ruleset.path),
            )
        )
    return result


def add_to_ruleset(blob_store: BlobStore, name: str, payload: str) -> list[str]:
    """
    Prepend an entry to one of the editable rulesets.

    Args:
        blob_store: Storage holding the ruleset files
        name: direct, reject or proxy
        payload: Entry to add

    Returns:
        Resulting payload list
    """
    if name not in EDITABLE_RULESETS:
        raise ValueError(f"Unknown ruleset: {name}")

    path = f"{RULESETS_DIR}/{name}.yaml"
    try:
        content = yaml.safe_load(blob_store.read(path)) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.debug("Starting %s from scratch: %s", path, e)
        content = {}

    existing = content.get("payload") if isinstance(content, dict) else None
    entries = [payload, *(existing or [])]
    unique = list(dict.fromkeys(entries))

    blob_store.write(
        path,
        yaml.safe_dump({"payload": unique}, sort_keys=False, allow_unicode=True).encode("utf-8"),
    )
    logger.info("Added %s to ruleset %s", payload, name)
    return unique
