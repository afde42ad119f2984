import json

import pytest

from rackhd_machine.errors import ConfigError
from rackhd_machine.store import MachineState, MachineStore


def test_save_and_load(tmp_path):
    store = MachineStore(tmp_path)
    state = MachineState(machine_name="m1", node_id="n1", ip_address="10.0.0.2", endpoint="rackhd:8080")

    path = store.save(state)

    assert path == tmp_path / "m1" / "machine.json"
    assert store.exists("m1")
    assert store.load("m1") == state


def test_load_ignores_unknown_keys(tmp_path):
    store = MachineStore(tmp_path)
    p = store.path_for("m1")
    p.parent.mkdir(parents=True)
    p.write_text(json.dumps({"machine_name": "m1", "node_id": "n1", "future_field": 1}))
    assert store.load("m1").node_id == "n1"


def test_load_missing(tmp_path):
    with pytest.raises(ConfigError):
        MachineStore(tmp_path).load("ghost")


def test_load_corrupt(tmp_path):
    store = MachineStore(tmp_path)
    p = store.path_for("m1")
    p.parent.mkdir(parents=True)
    p.write_text("{not json")
    with pytest.raises(ConfigError):
        store.load("m1")


def test_delete(tmp_path):
    store = MachineStore(tmp_path)
    store.save(MachineState(machine_name="m1"))
    store.delete("m1")
    assert not store.exists("m1")
    # deleting twice is harmless
    store.delete("m1")
