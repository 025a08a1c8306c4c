import json
from types import MappingProxyType

import pytest

from boxgen.core.context import AppContext, get_context, init_context, reset_context
from boxgen.db.profiles import new_profile
from boxgen.db.registries import Subscription


@pytest.fixture(autouse=True)
def clean_context():
    reset_context()
    yield
    reset_context()


def test_stores_are_lazy_and_cached(tmp_path):
    context = AppContext(base_dir=tmp_path)

    assert context._profiles is None
    assert context.profiles is context.profiles
    assert context.subscriptions is context.subscriptions
    assert context.rulesets is context.rulesets
    assert context.blob_store.root == tmp_path


def test_stores_load_from_base_dir(tmp_path):
    data = tmp_path / "data"
    data.mkdir()
    (data / "subscribes.yaml").write_text("- id: s1\n  name: One\n  path: data/subscribes/s1.json\n")

    context = AppContext(base_dir=tmp_path)

    assert context.subscriptions.get("s1").name == "One"
    assert context.profiles.profiles == []


def test_generation_context_uses_snapshots(tmp_path):
    context = AppContext(base_dir=tmp_path)
    context.subscriptions.add(Subscription(id="s1", path="data/subscribes/s1.json"))

    generation = context.generation_context()
    context.subscriptions.remove("s1")

    assert isinstance(generation.subscriptions, MappingProxyType)
    assert "s1" in generation.subscriptions
    assert generation.blob_store is context.blob_store


def test_generate_config_file(tmp_path):
    context = AppContext(base_dir=tmp_path)
    profile = new_profile("Home")
    context.profiles.add(profile)

    config = context.generate_config_file(profile.id)

    written = json.loads((tmp_path / "data" / "sing-box" / "config.json").read_text(encoding="utf-8"))
    assert written == config
    assert (tmp_path / "data" / "profiles.yaml").exists()


def test_generate_config_file_unknown_profile(tmp_path):
    with pytest.raises(KeyError):
        AppContext(base_dir=tmp_path).generate_config_file("missing")


def test_global_context(tmp_path):
    context = init_context(base_dir=tmp_path)
    assert get_context() is context

    reset_context()
    assert get_context() is not context
