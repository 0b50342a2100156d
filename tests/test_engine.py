import asyncio
import logging
from dataclasses import dataclass

import pytest

from burberry.engine import Engine, EngineError
from burberry.types import Collector, Executor, Strategy, map_collector, map_executor


class ListCollector(Collector):
    name = "ListCollector"

    def __init__(self, items):
        self.items = list(items)

    async def get_event_stream(self):
        return self._gen()

    async def _gen(self):
        for item in self.items:
            yield item


class BrokenCollector(Collector):
    async def get_event_stream(self):
        raise RuntimeError("cannot subscribe")


class TaggingStrategy(Strategy):
    def __init__(self):
        self.seen = []

    async def process_event(self, event, submitter):
        self.seen.append(event)
        submitter.submit(("act", event))


class SyncingStrategy(TaggingStrategy):
    async def sync_state(self, submitter):
        submitter.submit(("synced", None))


class FailingSyncStrategy(TaggingStrategy):
    async def sync_state(self, submitter):
        raise ValueError("state unavailable")


class RecordingExecutor(Executor):
    def __init__(self):
        self.actions = []

    async def execute(self, action):
        self.actions.append(action)


class FlakyExecutor(RecordingExecutor):
    async def execute(self, action):
        if action == ("act", "bad"):
            raise RuntimeError("boom")
        self.actions.append(action)


@dataclass(frozen=True)
class BlockEvent:
    number: int


@dataclass(frozen=True)
class TxEvent:
    tx_hash: str


@dataclass(frozen=True)
class EchoBlock:
    number: int


@dataclass(frozen=True)
class EchoTx:
    tx_hash: str


class EchoStrategy(Strategy):
    async def process_event(self, event, submitter):
        if isinstance(event, BlockEvent):
            submitter.submit(EchoBlock(event.number))
        else:
            submitter.submit(EchoTx(event.tx_hash))


def build(collector, strategy, executor, **kwargs):
    engine = Engine(**kwargs)
    engine.add_collector(collector)
    engine.add_strategy(strategy)
    engine.add_executor(executor)
    return engine


def test_counts():
    engine = Engine()
    engine.add_strategy(TaggingStrategy())
    engine.add_executor(RecordingExecutor())
    engine.add_executor(RecordingExecutor())
    assert engine.strategy_count() == 1
    assert engine.executor_count() == 2


def test_default_capacities():
    engine = Engine()
    assert engine.event_channel_capacity == 512
    assert engine.action_channel_capacity == 512


@pytest.mark.asyncio
async def test_run_requires_executors():
    engine = Engine()
    engine.add_collector(ListCollector([]))
    engine.add_strategy(TaggingStrategy())
    with pytest.raises(EngineError, match="no executors"):
        await engine.run()


@pytest.mark.asyncio
async def test_run_requires_collectors():
    engine = Engine()
    engine.add_executor(RecordingExecutor())
    engine.add_strategy(TaggingStrategy())
    with pytest.raises(EngineError, match="no collectors"):
        await engine.run()


@pytest.mark.asyncio
async def test_run_requires_strategies():
    engine = Engine()
    engine.add_executor(RecordingExecutor())
    engine.add_collector(ListCollector([]))
    with pytest.raises(EngineError, match="no strategies"):
        await engine.run()


@pytest.mark.asyncio
async def test_events_flow_to_executor():
    executor = RecordingExecutor()
    strategy = TaggingStrategy()
    engine = build(ListCollector(["e1", "e2", "e3"]), strategy, executor)
    await asyncio.wait_for(engine.run_and_join(), 2)
    assert strategy.seen == ["e1", "e2", "e3"]
    assert executor.actions == [("act", "e1"), ("act", "e2"), ("act", "e3")]


@pytest.mark.asyncio
async def test_sync_state_actions_reach_executor():
    executor = RecordingExecutor()
    engine = build(ListCollector(["e1"]), SyncingStrategy(), executor)
    await asyncio.wait_for(engine.run_and_join(), 2)
    assert executor.actions == [("synced", None), ("act", "e1")]


@pytest.mark.asyncio
async def test_sync_state_failure_raises():
    engine = build(ListCollector(["e1"]), FailingSyncStrategy(), RecordingExecutor())
    with pytest.raises(EngineError, match="fail to sync state") as info:
        await engine.run()
    assert isinstance(info.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_executor_errors_are_logged_and_skipped(caplog):
    caplog.set_level(logging.ERROR, logger="burberry.engine")
    executor = FlakyExecutor()
    engine = build(ListCollector(["ok", "bad", "fine"]), TaggingStrategy(), executor)
    await asyncio.wait_for(engine.run_and_join(), 2)
    assert executor.actions == [("act", "ok"), ("act", "fine")]
    assert any("error executing action" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_collector_failure_is_logged(caplog):
    caplog.set_level(logging.ERROR, logger="burberry.engine")
    executor = RecordingExecutor()
    engine = build(BrokenCollector(), TaggingStrategy(), executor)
    await asyncio.wait_for(engine.run_and_join(), 2)
    assert executor.actions == []
    assert any("task terminated unexpectedly" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_lagging_strategy_skips_events(caplog):
    caplog.set_level(logging.WARNING, logger="burberry.engine")
    executor = RecordingExecutor()
    engine = build(
        ListCollector(["e1", "e2", "e3"]),
        TaggingStrategy(),
        executor,
        event_channel_capacity=1,
    )
    await asyncio.wait_for(engine.run_and_join(), 2)
    assert executor.actions == [("act", "e3")]
    assert any("lagged by 2" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_mapped_collectors_and_executors():
    block_executor = RecordingExecutor()
    tx_executor = RecordingExecutor()
    engine = Engine()
    engine.add_collector(map_collector(ListCollector([10, 11]), BlockEvent))
    engine.add_collector(map_collector(ListCollector(["0xaa"]), TxEvent))
    engine.add_strategy(EchoStrategy())
    engine.add_executor(map_executor(block_executor, EchoBlock))
    engine.add_executor(map_executor(tx_executor, EchoTx))
    await asyncio.wait_for(engine.run_and_join(), 2)
    assert block_executor.actions == [10, 11]
    assert tx_executor.actions == ["0xaa"]