from boxgen.sub.updater import SubscriptionUpdater, extract_proxies, update_subscription

__all__ = [
    "SubscriptionUpdater",
    "extract_proxies",
    "update_subscription",
]
