from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from boxgen.db.config import BUILT_IN_PROXY_TYPE, ProxyGroupType
from boxgen.db.profiles import ProxyGroup
from boxgen.db.registries import Subscription
from boxgen.kernel.types import Outbound, SelectorOutbound, UrlTestOutbound
from boxgen.storage.blob import BlobStore

logger = logging.getLogger("boxgen.kernel.proxies")


@dataclass
class ResolvedProxies:
    """Outcome of resolving the proxy groups of a profile."""

    proxies: list[dict[str, Any]] = field(default_factory=list)
    group_outbounds: dict[str, list[str]] = field(default_factory=dict)


class ProxyResolver:
    """
    Collect subscription proxies referenced by proxy groups.

    Subscriptions are read one at a time, in the order groups reference
    them. A subscription that cannot be read contributes nothing.
    """

    def __init__(self, subscriptions: Mapping[str, Subscription], blob_store: BlobStore):
        self._subscriptions = subscriptions
        self._blob_store = blob_store
        self._loaded: dict[str, list[dict[str, Any]]] = {}
        self._included: dict[str, dict[str, Any]] = {}
        self._failed: set[str] = set()

    def _load(self, sub_id: str) -> list[dict[str, Any]] | None:
        """Read proxy list of a subscription once. None if unavailable."""
        if sub_id in self._loaded:
            return self._loaded[sub_id]
        if sub_id in self._failed:
            return None
        self._failed.add(sub_id)

        sub = self._subscriptions.get(sub_id)
        if sub is None:
            logger.warning("Subscription %s not found", sub_id)
            return None

        try:
            data = json.loads(self._blob_store.read(sub.path))
        except (OSError, ValueError) as e:
            logger.warning("Error reading subscription %s (%s): %s", sub.name or sub_id, sub.path, e)
            return None

        if not isinstance(data, list):
            logger.warning("Subscription %s is not a list of proxies", sub_id)
            return None

        self._failed.discard(sub_id)
        proxies = [p for p in data if isinstance(p, dict) and "tag" in p]
        self._loaded[sub_id] = proxies
        logger.debug("Subscription %s: %d proxies", sub_id, len(proxies))
        return proxies

    def _include(self, proxy: dict[str, Any]) -> None:
        tag = proxy["tag"]
        if tag in self._included:
            logger.debug("Duplicate proxy tag %s skipped", tag)
            return
        self._included[tag] = proxy

    def resolve(self, groups: Sequence[ProxyGroup]) -> ResolvedProxies:
        """Resolve proxies and per-group outbound tags."""
        uses: list[str] = []
        for group in groups:
            for sub_id in group.use:
                if sub_id not in uses:
                    uses.append(sub_id)

        for sub_id in uses:
            for proxy in self._load(sub_id) or []:
                self._include(proxy)

        for group in groups:
            for member in group.proxies:
                if member.type == BUILT_IN_PROXY_TYPE or member.tag in self._included:
                    continue
                source = self._load(member.type)
                if source is None:
                    continue
                proxy = next((p for p in source if p["tag"] == member.tag), None)
                if proxy is None:
                    logger.debug("Proxy %s not found in subscription %s", member.tag, member.type)
                    continue
                self._include(proxy)

        result = ResolvedProxies(proxies=list(self._included.values()))
        for group in groups:
            result.group_outbounds[group.id] = self._group_outbounds(group)
        return result

    def _group_outbounds(self, group: ProxyGroup) -> list[str]:
        tags: list[str] = []
        for member in group.proxies:
            if member.type == BUILT_IN_PROXY_TYPE or member.tag in self._included:
                tags.append(member.tag)
        for sub_id in group.use:
            tags.extend(proxy["tag"] for proxy in self._loaded.get(sub_id, []))
        return list(dict.fromkeys(tags))


def resolve_proxies(
    groups: Sequence[ProxyGroup],
    subscriptions: Mapping[str, Subscription],
    blob_store: BlobStore,
) -> ResolvedProxies:
    """Resolve proxy groups against subscriptions (helper function)."""
    return ProxyResolver(subscriptions, blob_store).resolve(groups)


def generate_outbounds(groups: Sequence[ProxyGroup], resolved: ResolvedProxies) -> list[Outbound]:
    """Group outbounds followed by every resolved proxy."""
    outbounds: list[Outbound] = []
    for group in groups:
        members = resolved.group_outbounds.get(group.id, [])
        if group.type == ProxyGroupType.SELECT:
            outbounds.append(SelectorOutbound(tag=group.tag, outbounds=members))
        elif group.type == ProxyGroupType.URLTEST:
            outbounds.append(
                UrlTestOutbound(
                    tag=group.tag,
                    outbounds=members,
                    url=group.url,
                    interval=f"{group.interval}s",
                    tolerance=group.tolerance,
                )
            )
        else:
            logger.warning("Unknown proxy group type %s for %s, skipped", group.type, group.tag)
    outbounds.extend(resolved.proxies)
    return outbounds
