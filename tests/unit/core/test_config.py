# tests/unit/core/test_config.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest

from statewise.core.config import MachineConfig, transitions_from_rows
from statewise.core.errors import ValidationError
from statewise.core.state_machine import StateMachine
from statewise.core.transitions import Transition


def test_from_mapping_builds_validated_config():
    rows = transitions_from_rows([("draft", "create", "assembly"), ("assembly", "ship", "shipping")])
    config = MachineConfig.from_mapping({"initial": "draft", "transitions": rows, "id": "order"})
    assert config.initial == "draft"
    assert config.id == "order"
    assert [t.to for t in config.transitions] == ["assembly", "shipping"]


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ValidationError, match="Unknown state machine parameters: colour, size"):
        MachineConfig.from_mapping({"initial": "a", "transitions": [], "size": 1, "colour": "red"})


def test_initial_state_required():
    with pytest.raises(ValidationError, match="initial state"):
        MachineConfig(transitions=[]).validate()


def test_none_is_a_valid_initial_state():
    MachineConfig(initial=None, transitions=[]).validate()


@pytest.mark.parametrize("transitions", [None, "abc", {"a": "b"}])
def test_transitions_must_be_a_list(transitions):
    with pytest.raises(ValidationError):
        MachineConfig(initial="a", transitions=transitions).validate()


def test_transition_entries_checked():
    with pytest.raises(ValidationError, match="Expected a Transition, got dict"):
        MachineConfig(initial="a", transitions=[{"from": "a"}]).validate()


def test_states_must_be_callable():
    with pytest.raises(ValidationError):
        MachineConfig(initial="a", transitions=[], states={"a": {}}).validate()


def test_inject_must_be_a_mapping():
    with pytest.raises(ValidationError):
        MachineConfig(initial="a", transitions=[], inject=["db"]).validate()


@pytest.mark.asyncio
async def test_from_config_builds_machine():
    config = MachineConfig(
        initial="draft",
        transitions=[Transition("draft", "create", "assembly")],
        id="order",
        data=lambda: {"items": []},
        inject={"region": "eu-west"},
    )
    machine = StateMachine.from_config(config)
    assert machine.id == "order"
    assert machine.current_state == "draft"
    assert await machine.transition("create") == "assembly"
    assert machine.context.data == {"items": []}
    assert machine.context["region"] == "eu-west"


def test_as_kwargs_round_trips_fields():
    config = MachineConfig(initial="a", transitions=[], id="m")
    kwargs = config.as_kwargs()
    assert kwargs["initial"] == "a"
    assert kwargs["id"] == "m"
    assert set(kwargs) == {"initial", "transitions", "id", "data", "subscribers", "states", "inject"}
