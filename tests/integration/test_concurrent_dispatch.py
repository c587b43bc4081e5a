# tests/integration/test_concurrent_dispatch.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import asyncio

import pytest

from statewise import ALL, GuardFailed, StateMachine, Transition


@pytest.mark.asyncio
async def test_queued_dispatches_run_in_request_order():
    trace = []

    async def slow_enter(context, label):
        trace.append(f"enter {label}")
        await asyncio.sleep(0.01)
        trace.append(f"done {label}")

    machine = StateMachine(
        "idle",
        [
            Transition("idle", "start", "running", on_enter=slow_enter),
            Transition("running", "pause", "paused", on_enter=slow_enter),
            Transition("paused", "resume", "running", on_enter=slow_enter),
        ],
    )
    results = await asyncio.gather(
        machine.transition("start", "a"),
        machine.transition("pause", "b"),
        machine.transition("resume", "c"),
    )
    assert results == ["running", "paused", "running"]
    assert trace == ["enter a", "done a", "enter b", "done b", "enter c", "done c"]


@pytest.mark.asyncio
async def test_later_dispatch_sees_earlier_hook_results():
    async def load(context):
        await asyncio.sleep(0.01)
        context.data["loaded"] = True

    def is_loaded(context):
        return context.data.get("loaded", False)

    machine = StateMachine(
        "empty",
        [
            Transition("empty", "load", "full", on_exit=load),
            Transition("full", "use", "used", guard=is_loaded),
        ],
        data=dict,
    )
    first, second = await asyncio.gather(machine.transition("load"), machine.transition("use"))
    assert (first, second) == ("full", "used")


@pytest.mark.asyncio
async def test_failure_does_not_block_queue():
    machine = StateMachine(
        "a",
        [
            Transition("a", "go", "b", guard=lambda context: False),
            Transition("a", "skip", "c"),
        ],
    )
    results = await asyncio.gather(machine.transition("go"), machine.transition("skip"), return_exceptions=True)
    assert isinstance(results[0], GuardFailed)
    assert results[1] == "c"
    assert machine.pending == 0


@pytest.mark.asyncio
async def test_concurrent_first_use_initializes_once():
    calls = []

    async def data():
        calls.append("data")
        await asyncio.sleep(0.01)
        return {"n": 0}

    def bump(context):
        context.data["n"] += 1

    machine = StateMachine("s", [Transition("s", "tick", "s", on_enter=bump)], data=data)
    await asyncio.gather(*(machine.transition("tick") for _ in range(5)))
    assert calls == ["data"]
    assert machine.context.data == {"n": 5}


@pytest.mark.asyncio
async def test_nested_dispatch_through_parent(traffic_light_factory):
    light = traffic_light_factory()
    results = await asyncio.gather(
        light.transition("next"),
        light.transition("next"),
        light.transition("walk"),
        light.transition("stop"),
        light.transition("next"),
    )
    assert results == ["yellow", "red", "walk", "dontWalk", "green"]
    assert light.active_child is None


@pytest.mark.stress
@pytest.mark.asyncio
async def test_many_machines_in_parallel():
    machines = [
        StateMachine("off", [Transition("off", "toggle", "on"), Transition("on", "toggle", "off")], id=f"switch-{i}")
        for i in range(50)
    ]

    async def flip(machine, times):
        for _ in range(times):
            await machine.transition("toggle")
        return machine.current_state

    states = await asyncio.gather(*(flip(m, i) for i, m in enumerate(machines)))
    assert states == ["on" if i % 2 else "off" for i in range(50)]


# -----------------------------------------------------------------------------
# CANCELLATION
# -----------------------------------------------------------------------------


def crossing_light(calls, subscriber=None, on_enter=None):
    return StateMachine(
        "green",
        [
            Transition("green", "next", "red", on_exit=lambda context: calls.append("exit")),
            Transition("red", "next", "green", on_enter=on_enter),
        ],
        subscribers={ALL: [subscriber]} if subscriber else None,
        states=lambda: {
            "red": {
                "initial": "dontWalk",
                "transitions": [Transition("dontWalk", "walk", "walk")],
            }
        },
    )


@pytest.mark.asyncio
async def test_cancel_after_commit_finishes_dispatch():
    calls = []
    started = asyncio.Event()

    async def slow_subscriber(machine, event, state):
        if state != "red":
            return
        calls.append("sub")
        started.set()
        await asyncio.sleep(0.01)
        calls.append("sub done")

    light = crossing_light(calls, subscriber=slow_subscriber)
    first = asyncio.ensure_future(light.transition("next"))
    await started.wait()
    queued = asyncio.ensure_future(light.transition("walk"))
    await asyncio.sleep(0)
    first.cancel()

    with pytest.raises(asyncio.CancelledError):
        await first
    assert calls == ["sub", "sub done", "exit"]
    assert light.current_state == "red"
    assert light.active_child is light.child("red")

    # The queued dispatch ran after the tail, against the activated child
    assert await queued == "walk"
    assert light.is_state("walk")
    assert light.pending == 0


@pytest.mark.asyncio
async def test_cancel_before_commit_leaves_state_and_child():
    started = asyncio.Event()

    async def slow_enter(context):
        started.set()
        await asyncio.sleep(10)

    light = crossing_light([], on_enter=slow_enter)
    await light.transition("next")
    await light.transition("walk")

    task = asyncio.ensure_future(light.transition("next"))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert light.current_state == "red"
    assert light.active_child is light.child("red")
    assert light.is_state("walk")


@pytest.mark.asyncio
async def test_cancelled_queued_dispatch_never_runs():
    trace = []
    release = asyncio.Event()

    async def hold(context):
        await release.wait()

    machine = StateMachine(
        "a",
        [
            Transition("a", "go", "b", on_enter=hold),
            Transition("b", "go", "c", on_enter=lambda context: trace.append("b->c")),
        ],
    )
    first = asyncio.ensure_future(machine.transition("go"))
    await asyncio.sleep(0)
    second = asyncio.ensure_future(machine.transition("go"))
    await asyncio.sleep(0)
    assert machine.pending == 1

    second.cancel()
    release.set()
    assert await first == "b"
    with pytest.raises(asyncio.CancelledError):
        await second
    assert trace == []
    assert machine.current_state == "b"
    assert machine.pending == 0
