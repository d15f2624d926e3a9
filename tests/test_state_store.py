from __future__ import annotations

import pytest

from bootc_provision.state_store import (
    ensure_defaults,
    forget_resource,
    held_resources,
    is_step_completed,
    load_state,
    mark_step_completed,
    record_resource,
    save_state,
)


@pytest.mark.parametrize("name", ["state.json", "state.yaml"])
def test_save_and_load(tmp_path, name) -> None:
    path = tmp_path / "nested" / name
    state = ensure_defaults({})
    mark_step_completed(state, "00_preflight")
    save_state(str(path), state)

    loaded = load_state(str(path))
    assert is_step_completed(loaded, "00_preflight")
    assert not is_step_completed(loaded, "10_prepare_workdir")


def test_missing_state_is_empty(tmp_path) -> None:
    assert load_state(str(tmp_path / "none.json")) == {}


def test_non_mapping_state_rejected(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_state(str(path))


def test_resources_tracked_once() -> None:
    state = ensure_defaults({})
    record_resource(state, "mounts", "/var/tmp/bootc/mnt")
    record_resource(state, "mounts", "/var/tmp/bootc/mnt")
    record_resource(state, "loop_devices", "/dev/loop0")

    assert held_resources(state, "mounts") == ["/var/tmp/bootc/mnt"]
    forget_resource(state, "mounts", "/var/tmp/bootc/mnt")
    forget_resource(state, "mounts", "/never/held")
    assert held_resources(state, "mounts") == []
    assert held_resources(state, "loop_devices") == ["/dev/loop0"]


def test_mark_completed_is_idempotent() -> None:
    state = {}
    mark_step_completed(state, "x")
    mark_step_completed(state, "x")
    assert state["execution"]["completed_steps"] == ["x"]
