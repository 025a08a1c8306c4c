import json

import pytest

from boxgen.db.profiles import GroupProxy, Profile, ProxyGroup, Rule
from boxgen.db.registries import Ruleset, Subscription
from boxgen.storage.blob import BlobNotFoundError, BlobStoreError


class MemoryBlobStore:
    """Blob store keeping everything in a dict."""

    def __init__(self, files=None):
        self.files = dict(files or {})
        self.reads = []
        self.writes = []
        self.fail_writes = False

    def read(self, path):
        self.reads.append(path)
        if path not in self.files:
            raise BlobNotFoundError(f"Blob not found: {path}")
        return self.files[path]

    def write(self, path, data):
        if self.fail_writes:
            raise BlobStoreError("disk full")
        self.writes.append(path)
        self.files[path] = data

    def put_json(self, path, obj):
        self.files[path] = json.dumps(obj).encode("utf-8")

    def get_json(self, path):
        return json.loads(self.files[path])


@pytest.fixture
def blob_store():
    return MemoryBlobStore()


@pytest.fixture
def subscriptions():
    return {
        "sub-a": Subscription(id="sub-a", name="A", path="data/subscribes/a.json"),
        "sub-b": Subscription(id="sub-b", name="B", path="data/subscribes/b.json"),
    }


@pytest.fixture
def rulesets():
    return {
        "rs-ads": Ruleset(id="rs-ads", tag="ads", format="source", path="data/rulesets/ads.json"),
    }


@pytest.fixture
def profile():
    return Profile(
        id="p1",
        name="Test",
        proxy_groups_config=[
            ProxyGroup(
                id="g1",
                tag="Proxy",
                use=["sub-a"],
                proxies=[GroupProxy(id="direct", type="built-in", tag="direct")],
            ),
        ],
        rules_config=[
            Rule(id="r1", type="domain", payload="a.com, b.com", proxy="Proxy"),
            Rule(id="r2", type="final", payload="", proxy="direct"),
        ],
    )
