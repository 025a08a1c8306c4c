from __future__ import annotations

import json
import logging
import time
from typing import Any

import requests

from boxgen.core.config import DEFAULT_USER_AGENT, SUBSCRIPTION_TIMEOUT
from boxgen.db.registries import Subscription, SubscriptionRegistry
from boxgen.storage.blob import BlobStore

logger = logging.getLogger("boxgen.sub.updater")

# Outbound types that are not proxies
NON_PROXY_TYPES = frozenset({"selector", "urltest", "direct", "block", "dns"})


def extract_proxies(content: str) -> list[dict[str, Any]]:
    """
    Extract proxy outbounds from subscription content.

    Accepts a JSON array of outbounds or a sing-box document with an
    ``outbounds`` key.
    """
    data = json.loads(content)
    if isinstance(data, dict):
        data = data.get("outbounds", [])
    if not isinstance(data, list):
        raise ValueError("Subscription content is not a list of outbounds")

    return [
        item
        for item in data
        if isinstance(item, dict) and item.get("tag") and item.get("type") not in NON_PROXY_TYPES
    ]


class SubscriptionUpdater:
    """Subscription update manager."""

    def __init__(self, registry: SubscriptionRegistry, blob_store: BlobStore):
        self._registry = registry
        self._blob_store = blob_store

    def fetch(self, sub: Subscription) -> str:
        """Fetch subscription content."""
        headers = {"User-Agent": sub.user_agent or DEFAULT_USER_AGENT}
        response = requests.get(sub.url, headers=headers, timeout=SUBSCRIPTION_TIMEOUT)
        response.raise_for_status()
        return response.text

    def update(self, sub_id: str) -> list[dict[str, Any]]:
        """
        Update subscription.

        Downloads the subscription, stores its proxies at the
        subscription path and records the update time.

        Args:
            sub_id: Subscription ID

        Returns:
            List of stored proxies
        """
        sub = self._registry.get(sub_id)
        if sub is None:
            raise KeyError(f"Subscription {sub_id} not found")
        if not sub.url:
            raise ValueError(f"Subscription {sub.name or sub_id} has no URL")

        proxies = extract_proxies(self.fetch(sub))
        text = json.dumps(proxies, indent=2, ensure_ascii=False)
        self._blob_store.write(sub.path, text.encode("utf-8"))

        sub.update_time = time.strftime("%Y-%m-%d %H:%M:%S")
        self._registry.save()
        logger.info("Subscription %s updated: %d proxies", sub.name or sub_id, len(proxies))
        return proxies


def update_subscription(
    sub_id: str,
    registry: SubscriptionRegistry,
    blob_store: BlobStore,
) -> list[dict[str, Any]]:
    """
    Update subscription (helper function).

    Args:
        sub_id: Subscription ID
        registry: Subscription registry
        blob_store: Storage for the proxy list

    Returns:
        List of stored proxies
    """
    updater = SubscriptionUpdater(registry, blob_store)
    return updater.update(sub_id)
