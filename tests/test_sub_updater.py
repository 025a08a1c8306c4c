import json
from unittest import mock

import pytest
import requests

from boxgen.core.config import DEFAULT_USER_AGENT
from boxgen.db.registries import Subscription, SubscriptionRegistry
from boxgen.sub.updater import SubscriptionUpdater, extract_proxies, update_subscription

CONTENT = {
    "outbounds": [
        {"type": "selector", "tag": "select", "outbounds": ["a"]},
        {"type": "vless", "tag": "a", "server": "1.1.1.1"},
        {"type": "direct", "tag": "direct"},
        {"type": "trojan", "server": "no-tag"},
        {"type": "trojan", "tag": "b", "server": "2.2.2.2"},
    ]
}


@pytest.fixture
def registry(blob_store):
    reg = SubscriptionRegistry(blob_store)
    reg.add(Subscription(id="s1", name="One", url="https://example.com/sub", path="data/subscribes/s1.json"))
    reg.add(Subscription(id="s2", name="Local", path="data/subscribes/s2.json"))
    return reg


def fake_response(text):
    response = mock.Mock()
    response.text = text
    response.raise_for_status.return_value = None
    return response


def test_extract_proxies_from_document():
    assert [p["tag"] for p in extract_proxies(json.dumps(CONTENT))] == ["a", "b"]


def test_extract_proxies_from_list():
    assert extract_proxies('[{"type": "vmess", "tag": "x"}]') == [{"type": "vmess", "tag": "x"}]


def test_extract_proxies_rejects_scalar():
    with pytest.raises(ValueError):
        extract_proxies('"text"')


def test_update_stores_proxies(registry, blob_store):
    with mock.patch(
        "boxgen.sub.updater.requests.get", return_value=fake_response(json.dumps(CONTENT))
    ) as get:
        proxies = SubscriptionUpdater(registry, blob_store).update("s1")

    get.assert_called_once_with(
        "https://example.com/sub",
        headers={"User-Agent": DEFAULT_USER_AGENT},
        timeout=30,
    )
    assert [p["tag"] for p in proxies] == ["a", "b"]
    assert blob_store.get_json("data/subscribes/s1.json") == proxies
    assert registry.get("s1").update_time != ""
    assert "data/subscribes.yaml" in blob_store.writes


def test_update_uses_custom_user_agent(registry, blob_store):
    registry.get("s1").user_agent = "clash-meta"

    with mock.patch("boxgen.sub.updater.requests.get", return_value=fake_response("[]")) as get:
        update_subscription("s1", registry, blob_store)

    assert get.call_args.kwargs["headers"] == {"User-Agent": "clash-meta"}


def test_update_unknown_subscription(registry, blob_store):
    with pytest.raises(KeyError):
        SubscriptionUpdater(registry, blob_store).update("missing")


def test_update_without_url(registry, blob_store):
    with pytest.raises(ValueError):
        SubscriptionUpdater(registry, blob_store).update("s2")


def test_http_error_leaves_files_untouched(registry, blob_store):
    response = fake_response("")
    response.raise_for_status.side_effect = requests.HTTPError("404")

    with mock.patch("boxgen.sub.updater.requests.get", return_value=response):
        with pytest.raises(requests.HTTPError):
            SubscriptionUpdater(registry, blob_store).update("s1")

    assert blob_store.writes == []
    assert registry.get("s1").update_time == ""
