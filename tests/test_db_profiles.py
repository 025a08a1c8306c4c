import threading
import time

import pytest
import yaml

from boxgen.db.config import BUILT_IN_PROXY_TYPE
from boxgen.db.profiles import Profile, ProfileStore, ProxyGroup, new_profile
from boxgen.storage.blob import BlobStoreError

PATH = "data/profiles.yaml"


def make_store(blob_store):
    return ProfileStore(blob_store, PATH, delay=0.01)


def test_profile_yaml_keys_match_persisted_format(profile):
    data = profile.to_dict()

    assert set(data) == {
        "id",
        "name",
        "generalConfig",
        "advancedConfig",
        "tunConfig",
        "dnsConfig",
        "proxyGroupsConfig",
        "rulesConfig",
    }
    assert data["generalConfig"]["mixed-port"] == 20122
    assert data["proxyGroupsConfig"][0]["proxies"][0] == {"id": "direct", "type": "built-in", "tag": "direct"}


def test_profile_from_yaml():
    text = """
- id: abc
  name: Home
  generalConfig:
    mode: global
    mixed-port: 7890
    allow-lan: true
  proxyGroupsConfig:
    - id: g1
      tag: Auto
      type: urltest
      use: [s1]
      proxies: []
      url: https://example.com
      interval: 60
      tolerance: 50
"""
    profile = Profile.from_dict(yaml.safe_load(text)[0])

    assert profile.id == "abc"
    assert profile.general_config.mode == "global"
    assert profile.general_config.mixed_port == 7890
    assert profile.general_config.allow_lan is True
    assert profile.general_config.log_level == "info"
    assert profile.proxy_groups_config[0].tag == "Auto"
    assert profile.default_proxy_tag == "Auto"


def test_default_proxy_tag_without_groups():
    assert Profile().default_proxy_tag == "direct"


def test_new_profile_has_group_and_final_rule():
    profile = new_profile("Office")
    assert profile.name == "Office"
    assert profile.default_proxy_tag == "Proxy"
    assert profile.rules_config[0].type == "final"
    assert profile.proxy_groups_config[0].proxies[0].type == BUILT_IN_PROXY_TYPE
    assert new_profile("x").id != new_profile("y").id


def test_add_get_edit_delete(blob_store, profile):
    store = make_store(blob_store)

    store.add(profile)
    assert store.get("p1") is profile
    assert yaml.safe_load(blob_store.files[PATH])[0]["id"] == "p1"

    edited = profile.copy()
    edited.name = "Edited"
    assert store.edit("p1", edited) is True
    assert store.get("p1").name == "Edited"

    assert store.delete("p1") is True
    assert store.get("p1") is None
    assert yaml.safe_load(blob_store.files[PATH]) == []


def test_edit_and_delete_unknown_id(blob_store):
    store = make_store(blob_store)

    assert store.edit("missing", Profile()) is False
    assert store.delete("missing") is False
    assert blob_store.writes == []


def test_add_duplicate_id_rejected(blob_store, profile):
    store = make_store(blob_store)
    store.add(profile)

    with pytest.raises(ValueError):
        store.add(Profile(id="p1"))
    assert len(store.profiles) == 1


def test_add_rolls_back_on_write_failure(blob_store, profile):
    store = make_store(blob_store)
    store.add(Profile(id="first"))
    before = len(store.profiles)

    blob_store.fail_writes = True
    with pytest.raises(BlobStoreError):
        store.add(profile)

    assert len(store.profiles) == before
    assert store.get("p1") is None


def test_edit_rolls_back_on_write_failure(blob_store, profile):
    store = make_store(blob_store)
    store.add(profile)

    blob_store.fail_writes = True
    with pytest.raises(BlobStoreError):
        store.edit("p1", Profile(id="p1", name="Changed"))

    assert store.get("p1") is profile


def test_delete_rolls_back_to_same_position(blob_store):
    store = make_store(blob_store)
    for pid in ("a", "b", "c"):
        store.add(Profile(id=pid))

    blob_store.fail_writes = True
    with pytest.raises(BlobStoreError):
        store.delete("b")

    assert [p.id for p in store.profiles] == ["a", "b", "c"]


def test_concurrent_failed_adds_all_rolled_back(blob_store):
    store = ProfileStore(blob_store, PATH, delay=0.2)
    blob_store.fail_writes = True
    errors = []

    def add(pid):
        try:
            store.add(Profile(id=pid))
        except BlobStoreError as e:
            errors.append(e)

    threads = [threading.Thread(target=add, args=(f"p{i}",)) for i in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(errors) == 3
    assert store.profiles == []


def test_load_missing_file_is_empty(blob_store):
    store = make_store(blob_store)
    assert store.load() is True
    assert store.profiles == []


def test_load_invalid_yaml(blob_store):
    blob_store.files[PATH] = b"key: [unclosed"
    store = make_store(blob_store)
    assert store.load() is False


def test_load_not_a_list(blob_store):
    blob_store.files[PATH] = b"name: value\n"
    store = make_store(blob_store)
    assert store.load() is False


def test_save_and_load_roundtrip(blob_store, profile):
    store = make_store(blob_store)
    store.add(profile)
    store.add(Profile(id="p2", proxy_groups_config=[ProxyGroup(id="g", tag="G")]))

    other = make_store(blob_store)
    assert other.load() is True
    assert [p.id for p in other.profiles] == ["p1", "p2"]
    assert other.get("p1") == profile
    assert other.get("p2").default_proxy_tag == "G"


def run_staggered(*actions, gap=0.05):
    """Run actions in threads started gap seconds apart, collect their errors."""
    errors = []

    def wrap(action):
        try:
            action()
        except BlobStoreError as e:
            errors.append(e)

    threads = []
    for action in actions:
        thread = threading.Thread(target=wrap, args=(action,))
        thread.start()
        threads.append(thread)
        time.sleep(gap)
    for thread in threads:
        thread.join()
    return errors


def test_failed_batch_undoes_add_then_edit_of_same_profile(blob_store):
    store = ProfileStore(blob_store, PATH, delay=0.3)
    blob_store.fail_writes = True

    errors = run_staggered(
        lambda: store.add(Profile(id="p", name="added")),
        lambda: store.edit("p", Profile(id="p", name="edited")),
    )

    assert len(errors) == 2
    assert store.profiles == []


def test_failed_batch_undoes_two_edits_of_same_profile(blob_store):
    store = ProfileStore(blob_store, PATH, delay=0.3)
    store.add(Profile(id="p", name="orig"))
    blob_store.fail_writes = True

    errors = run_staggered(
        lambda: store.edit("p", Profile(id="p", name="e1")),
        lambda: store.edit("p", Profile(id="p", name="e2")),
    )

    assert len(errors) == 2
    assert store.get("p").name == "orig"


def test_successful_batch_keeps_last_edit(blob_store):
    store = ProfileStore(blob_store, PATH, delay=0.3)
    store.add(Profile(id="p", name="orig"))

    errors = run_staggered(
        lambda: store.edit("p", Profile(id="p", name="e1")),
        lambda: store.edit("p", Profile(id="p", name="e2")),
    )

    assert errors == []
    assert store.get("p").name == "e2"
    assert yaml.safe_load(blob_store.files[PATH])[0]["name"] == "e2"


def test_save_writes_immediately(blob_store, profile):
    blob_store.files[PATH] = yaml.safe_dump([profile.to_dict()]).encode()
    store = ProfileStore(blob_store, PATH, delay=60)
    assert store.load() is True
    del blob_store.files[PATH]

    store.save()

    assert blob_store.writes == [PATH]
    assert yaml.safe_load(blob_store.files[PATH])[0]["id"] == "p1"


def test_save_failure_keeps_profiles(blob_store, profile):
    store = make_store(blob_store)
    store.add(profile)
    blob_store.fail_writes = True

    with pytest.raises(BlobStoreError):
        store.save()

    assert store.profiles == [profile]
