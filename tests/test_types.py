from dataclasses import dataclass
from typing import NamedTuple

import pytest

from burberry.types import (
    ActionSubmitter,
    Collector,
    CollectorFilterMap,
    CollectorMap,
    Executor,
    ExecutorMap,
    Strategy,
    map_collector,
    map_executor,
    submit_action,
)


@dataclass(frozen=True)
class EchoBlock:
    number: int


@dataclass(frozen=True)
class EchoTx:
    tx_hash: str


class Pair(NamedTuple):
    value: str


@dataclass
class TwoFields:
    a: int
    b: int


class ListCollector(Collector):
    name = "ListCollector"

    def __init__(self, items):
        self.items = list(items)

    async def get_event_stream(self):
        return self._gen()

    async def _gen(self):
        for item in self.items:
            yield item


class UnnamedCollector(Collector):
    async def get_event_stream(self):
        return self._gen()

    async def _gen(self):
        for item in ():
            yield item


class RecordingExecutor(Executor):
    name = "Recording"

    def __init__(self):
        self.actions = []

    async def execute(self, action):
        self.actions.append(action)


class UnnamedExecutor(Executor):
    async def execute(self, action):
        return None


class RecordingSubmitter(ActionSubmitter):
    def __init__(self):
        self.actions = []

    def submit(self, action):
        self.actions.append(action)


class NoopStrategy(Strategy):
    async def process_event(self, event, submitter):
        submitter.submit(event)


async def collect(stream):
    return [item async for item in stream]


@pytest.mark.asyncio
async def test_collector_map_transforms_events():
    mapped = CollectorMap(ListCollector([1, 2, 3]), EchoBlock)
    result = await collect(await mapped.get_event_stream())
    assert result == [EchoBlock(1), EchoBlock(2), EchoBlock(3)]


def test_collector_map_delegates_name():
    assert CollectorMap(ListCollector([]), EchoBlock).name == "ListCollector"


@pytest.mark.asyncio
async def test_collector_filter_map_drops_none():
    filtered = CollectorFilterMap(
        ListCollector(["a", "skip", "b"]), lambda v: None if v == "skip" else ("kept", v)
    )
    result = await collect(await filtered.get_event_stream())
    assert result == [("kept", "a"), ("kept", "b")]
    assert filtered.name == "ListCollector"


@pytest.mark.asyncio
async def test_executor_map_skips_none_and_passes_values():
    inner = RecordingExecutor()
    mapped = ExecutorMap(inner, lambda a: None if a == "skip" else ("seen", a))
    await mapped.execute("skip")
    await mapped.execute("x")
    assert inner.actions == [("seen", "x")]
    assert mapped.name == "Recording"


@pytest.mark.asyncio
async def test_map_executor_unwraps_matching_variant():
    inner = RecordingExecutor()
    mapped = map_executor(inner, EchoBlock)
    await mapped.execute(EchoBlock(7))
    await mapped.execute(EchoTx("0xabc"))
    assert inner.actions == [7]


@pytest.mark.asyncio
async def test_map_executor_supports_named_tuple():
    inner = RecordingExecutor()
    mapped = map_executor(inner, Pair)
    await mapped.execute(Pair("hello"))
    await mapped.execute(EchoBlock(1))
    assert inner.actions == ["hello"]


def test_map_executor_rejects_multi_field_variant():
    with pytest.raises(TypeError):
        map_executor(RecordingExecutor(), TwoFields)


def test_map_executor_rejects_non_class():
    with pytest.raises(TypeError):
        map_executor(RecordingExecutor(), lambda x: x)


@pytest.mark.asyncio
async def test_map_collector_wraps_in_variant():
    mapped = map_collector(ListCollector(["h1", "h2"]), EchoTx)
    result = await collect(await mapped.get_event_stream())
    assert result == [EchoTx("h1"), EchoTx("h2")]


def test_submit_action_wraps_value():
    submitter = RecordingSubmitter()
    submit_action(submitter, EchoBlock, 42)
    assert submitter.actions == [EchoBlock(42)]


@pytest.mark.asyncio
async def test_default_sync_state_submits_nothing():
    submitter = RecordingSubmitter()
    strategy = NoopStrategy()
    result = await Strategy.sync_state(strategy, submitter)
    assert result is None
    assert submitter.actions == []


def test_default_names_are_unnamed():
    collector_map = CollectorMap(UnnamedCollector(), EchoBlock)
    executor_map = ExecutorMap(UnnamedExecutor(), lambda a: a)
    assert collector_map.name == "Unnamed"
    assert executor_map.name == "Unnamed"
    assert NoopStrategy().name == "Unnamed"