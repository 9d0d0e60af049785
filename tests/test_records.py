import json
from datetime import datetime, timezone

import pytest

from src.app.autoplay.errors import ConfigInvalid
from src.app.autoplay.records import (
    ActionRecord,
    load_branch_targets,
    load_card_rules,
    load_recording,
    read_config_text,
    save_recording,
)
from src.app.browser_automation.descriptors import ByContainerAndLabel, BySelectorFallback, ByStableId

RECORDING = [
    {"type": "titled_block_button", "titleHint": "Go to market", "buttonText": "Go",
     "debug_element_html": "<button>Go</button>"},
    {"type": "storylet_exit_button", "buttonText": "Onwards"},
    {"type": "branch_button", "branchId": "777", "buttonText": "Go", "titleHint": "ignored"},
    {"type": "id_button", "id": "save"},
    {"type": "selector_button", "selector": "button.deck", "buttonText": "Draw"},
]


def test_recording_maps_every_tag_to_a_descriptor():
    records = load_recording(json.dumps(RECORDING))
    assert [type(r.target) for r in records] == [
        ByContainerAndLabel, ByContainerAndLabel, ByStableId, ByStableId, BySelectorFallback,
    ]
    assert records[0].target.title_hint == "Go to market"
    assert records[0].debug_html == "<button>Go</button>"
    assert records[1].target.container == ".buttons--storylet-exit-options"
    assert records[2].target.attribute == "data-branch-id"
    assert records[3].target.identifier == "save"


def test_recording_of_non_objects_is_rejected():
    with pytest.raises(ConfigInvalid):
        load_recording("[1,2,3]")


def test_recording_must_be_an_array():
    with pytest.raises(ConfigInvalid):
        load_recording('{"type": "id_button", "id": "x"}')


def test_recorded_action_needs_type_and_text_or_id():
    with pytest.raises(ConfigInvalid):
        load_recording('[{"type": "titled_block_button", "titleHint": "Somewhere"}]')
    with pytest.raises(ConfigInvalid):
        load_recording('[{"buttonText": "Go"}]')


def test_unknown_descriptor_tag_is_rejected():
    with pytest.raises(ConfigInvalid):
        load_recording('[{"type": "xpath_button", "buttonText": "Go"}]')


def test_titled_block_without_title_is_rejected():
    with pytest.raises(ConfigInvalid):
        load_recording('[{"type": "titled_block_button", "buttonText": "Go"}]')


def test_malformed_json_is_config_invalid():
    with pytest.raises(ConfigInvalid):
        load_recording("[{")


def test_non_numeric_delay_is_config_invalid():
    with pytest.raises(ConfigInvalid):
        load_recording('[{"type": "id_button", "id": "x", "delayMs": "soon"}]')


def test_save_writes_timestamped_file_that_loads_back(tmp_path):
    records = load_recording(json.dumps(RECORDING))
    now = datetime(2024, 5, 1, 12, 30, 5, tzinfo=timezone.utc)

    path = save_recording(records, tmp_path / "out", now=now)

    assert path.name == "fl_actions_2024-05-01T12-30-05.json"
    assert load_recording(path.read_text(encoding="utf-8")) == records
    assert path.read_text(encoding="utf-8").startswith("[\n  {")


def test_save_refuses_empty_recording(tmp_path):
    with pytest.raises(ValueError):
        save_recording([], tmp_path)


def test_empty_card_config_is_accepted():
    assert load_card_rules("{}") == {}


def test_card_config_must_be_an_object():
    with pytest.raises(ConfigInvalid):
        load_card_rules("[]")


def test_card_rules_parse_play_and_discard():
    rules = load_card_rules(json.dumps({
        "1001": {
            "action": "Play",
            "outfit": "Shadowy",
            "branch": {"type": "titled_block_button", "titleHint": "A Trade", "buttonText": "Go"},
            "exitButtonText": "Onwards",
            "description": "Trade card",
        },
        "1002": {"action": "discard", "description": "Junk"},
    }))
    assert rules["1001"].action == "play"
    assert rules["1001"].branch == ByContainerAndLabel(button_text="Go", title_hint="A Trade")
    assert rules["1001"].outfit == "Shadowy"
    assert rules["1001"].exit_button_text == "Onwards"
    assert rules["1002"].action == "discard"
    assert rules["1002"].branch is None


def test_play_rule_needs_a_branch():
    with pytest.raises(ConfigInvalid):
        load_card_rules('{"1": {"action": "play", "description": "x"}}')


def test_card_rule_action_must_be_known():
    with pytest.raises(ConfigInvalid):
        load_card_rules('{"1": {"action": "keep", "description": "x"}}')


def test_branch_targets():
    targets = load_branch_targets('[{"title": "Haul water", "priority": 80}, {"title": "Sneak"}]')
    assert [(t.title, t.priority) for t in targets] == [("Haul water", 80), ("Sneak", 0)]
    with pytest.raises(ConfigInvalid):
        load_branch_targets('[{"priority": 1}]')


def test_unreadable_config_file(tmp_path):
    with pytest.raises(ConfigInvalid):
        read_config_text(tmp_path / "missing.json")


def test_label_prefers_description():
    record = ActionRecord(target=ByStableId("save", "Save"), description="Save the game")
    assert record.label == "Save the game"
    assert ActionRecord(target=ByStableId("save")).label == "save"
