# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest

from statewise import StateMachine, Transition


def pytest_configure(config):
    """Register custom marks."""
    config.addinivalue_line("markers", "stress: mark test as a stress test")


class Recorder:
    """Collects calls from hooks, guards and subscribers in order."""

    def __init__(self):
        self.calls = []

    def hook(self, label, result=None):
        def _hook(context, *args):
            self.calls.append((label, args))
            return result

        return _hook

    def subscriber(self, label):
        def _subscriber(machine, event, state):
            self.calls.append((label, event, state, machine.current_state))

        return _subscriber

    @property
    def labels(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def recorder():
    """A fresh call recorder."""
    return Recorder()


@pytest.fixture
def order_transitions():
    """The order lifecycle table used across tests."""
    return [
        Transition("draft", "create", "assembly"),
        Transition("assembly", "assemble", "warehouse"),
        Transition(["assembly", "warehouse"], "ship", "shipping"),
        Transition("shipping", "deliver", "delivered"),
    ]


@pytest.fixture
def order_machine(order_transitions):
    """An order machine starting in 'draft'."""
    return StateMachine("draft", order_transitions, id="order")


@pytest.fixture
def traffic_light_factory():
    """Returns a factory building the traffic light with a nested pedestrian machine."""

    def _factory(**kwargs):
        return StateMachine(
            "green",
            [
                Transition("green", "next", "yellow"),
                Transition("yellow", "next", "red"),
                Transition("red", "next", "green"),
            ],
            id="traffic-light",
            states=lambda: {
                "red": {
                    "initial": "dontWalk",
                    "transitions": [
                        Transition("dontWalk", "walk", "walk"),
                        Transition("walk", "stop", "dontWalk"),
                    ],
                }
            },
            **kwargs,
        )

    return _factory
