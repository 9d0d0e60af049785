import json

from src.app.autoplay.preferences import (
    FAILURE_ACTION_KEY,
    PreferenceStore,
    load_failure_policy,
    save_failure_policy,
)


def test_default_policy_is_stop(tmp_path):
    assert load_failure_policy(PreferenceStore(tmp_path / "prefs.json")) == "stop"


def test_policy_survives_a_new_store(tmp_path):
    path = tmp_path / "nested" / "prefs.json"
    save_failure_policy(PreferenceStore(path), "retry")

    assert load_failure_policy(PreferenceStore(path)) == "retry"
    assert json.loads(path.read_text())[FAILURE_ACTION_KEY] == "retry"


def test_corrupt_file_falls_back_to_default(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("{not json")
    assert load_failure_policy(PreferenceStore(path)) == "stop"


def test_other_keys_are_preserved(tmp_path):
    path = tmp_path / "prefs.json"
    store = PreferenceStore(path)
    store.set("theme", "dark")
    save_failure_policy(store, "retry")
    assert store.get("theme") == "dark"
