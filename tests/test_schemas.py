import math

import pytest

from schemas.rooms import ClientRecord, CooldownEntry, UpdateRequest, coerce_group_order, coerce_non_negative_int


@pytest.mark.parametrize("value, expected", [
    (3, 3),
    (3.0, 3),
    (0, 0),
    (-1, 0),
    (2.5, 0),
    ("4", 0),
    (True, 0),
    (None, 0),
    (math.inf, 0),
])
def test_non_negative_int_coercion(value, expected):
    assert coerce_non_negative_int(value) == expected


def test_entry_fields_are_coerced_not_rejected():
    entry = CooldownEntry.from_raw({"label": None, "ready": 1, "left": "soon", "skillid": "x"})

    assert entry.label == ""
    assert entry.ready is True
    assert entry.remaining_seconds is None
    assert entry.skill_id == 0


def test_entry_keeps_valid_values():
    entry = CooldownEntry.from_raw({"label": "Signet", "ready": False, "left": 4.25, "skillid": 9001})

    assert entry.model_dump(by_alias=True) == {"label": "Signet", "ready": False, "left": 4.25, "skillid": 9001}


def test_entry_label_is_stringified():
    assert CooldownEntry.from_raw({"label": 42}).label == "42"


def test_bool_is_not_a_number_on_the_wire():
    entry = CooldownEntry.from_raw({"left": True, "skillid": False})

    assert entry.remaining_seconds is None
    assert entry.skill_id == 0


def test_float_skill_id_is_truncated():
    assert CooldownEntry.from_raw({"skillid": 12.0}).skill_id == 12


@pytest.mark.parametrize("raw", [None, 7, "entry", ["label"]])
def test_non_object_entry_becomes_defaults(raw):
    assert CooldownEntry.from_raw(raw) == CooldownEntry()


def test_missing_entry_fields_default():
    assert CooldownEntry.from_raw({}).model_dump(by_alias=True) == {"label": "", "ready": False, "left": None, "skillid": 0}


def test_client_record_coerces_optional_fields():
    record = ClientRecord(display_name="Bob", profession_id="warrior", plugin_version=0.9,
                          subgroup_index=-2, entries=[{"label": "a"}, None], last_updated_at=1)

    assert record.profession_id == 0
    assert record.plugin_version is None
    assert record.subgroup_index == 0
    assert [e.label for e in record.entries] == ["a", ""]


@pytest.mark.parametrize("room, expected", [(None, "bags"), ("", "bags"), (5, "bags"), ("raid", "raid")])
def test_update_request_room_default(room, expected):
    assert UpdateRequest.model_validate({"room": room}).room == expected


def test_update_request_reads_wire_names():
    payload = UpdateRequest.model_validate({
        "clientId": "c1", "pluginVer": "0.90", "prof": 4, "subgroup": 2,
        "entries": [], "groupOrder": {"4": ["c1"]}, "unexpected": True,
    })

    assert payload.client_id == "c1"
    assert payload.plugin_ver == "0.90"
    assert payload.group_order == {"4": ["c1"]}
    assert payload.room == "bags"


def test_group_order_is_copied():
    source = {"1": ["a"]}
    stored = coerce_group_order(source)
    source["1"].append("b")

    assert stored == {"1": ["a"]}


@pytest.mark.parametrize("label, expected", [
    (True, "true"),
    (False, ""),
    (0, ""),
    (1.0, "1"),
    (1.5, "1.5"),
    ([1, "a", None], "1,a,"),
    ([], ""),
    ({}, "[object Object]"),
    ("Signet", "Signet"),
])
def test_label_matches_plugin_string_conversion(label, expected):
    assert CooldownEntry.from_raw({"label": label}).label == expected


@pytest.mark.parametrize("ready, expected", [
    ([], True),
    ({}, True),
    ("0", True),
    ("", False),
    (0, False),
    (0.0, False),
    (None, False),
    (2, True),
])
def test_ready_uses_plugin_truthiness(ready, expected):
    assert CooldownEntry.from_raw({"ready": ready}).ready is expected


def test_group_order_nested_past_limit_is_ignored():
    deep = "c1"
    for _ in range(10):
        deep = [deep]

    assert coerce_group_order({"1": deep}) is None
    assert coerce_group_order({"1": ["a", "b"], "7": []}) == {"1": ["a", "b"], "7": []}
