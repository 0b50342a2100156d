"""The engine that wires collectors, strategies and executors together."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Generic, TypeVar

from burberry.action_submitter import ActionChannelSubmitter
from burberry.channel import Broadcast, BroadcastReceiver, ChannelClosed, Lagged
from burberry.types import Collector, Executor, Strategy

logger = logging.getLogger(__name__)

E = TypeVar("E")
A = TypeVar("A")


class EngineError(Exception):
    """The engine could not be started."""


class _Countdown:
    """Closes a channel once every task feeding it has finished."""

    def __init__(self, count: int, channel: Broadcast[Any]) -> None:
        self._count = count
        self._channel = channel

    def finish(self) -> None:
        self._count -= 1
        if self._count == 0:
            self._channel.close()


async def _run_executor(executor: Executor[Any], receiver: BroadcastReceiver[Any]) -> None:
    logger.debug("starting executor... name=%s", executor.name)
    while True:
        try:
            action = await receiver.recv()
        except Lagged as exc:
            logger.warning("name=%s action channel lagged by %d", executor.name, exc.count)
            continue
        except ChannelClosed:
            logger.error("name=%s action channel closed!", executor.name)
            break
        try:
            await executor.execute(action)
        except Exception as exc:
            logger.error("name=%s error executing action: %s", executor.name, exc)


async def _run_strategy(
    strategy: Strategy[Any, Any],
    receiver: BroadcastReceiver[Any],
    submitter: ActionChannelSubmitter[Any],
    countdown: _Countdown,
) -> None:
    try:
        logger.debug("starting strategy... name=%s", strategy.name)
        while True:
            try:
                event = await receiver.recv()
            except Lagged as exc:
                logger.warning("name=%s event channel lagged by %d", strategy.name, exc.count)
                continue
            except ChannelClosed:
                logger.error("name=%s event channel closed!", strategy.name)
                break
            await strategy.process_event(event, submitter)
    finally:
        countdown.finish()


async def _run_collector(
    collector: Collector[Any], sender: Broadcast[Any], countdown: _Countdown
) -> None:
    try:
        logger.debug("starting collector... name=%s", collector.name)
        stream = await collector.get_event_stream()
        async for event in stream:
            try:
                sender.send(event)
            except ChannelClosed as exc:
                logger.error("name=%s error sending event: %s", collector.name, exc)
        logger.error("name=%s event stream ended!", collector.name)
    finally:
        countdown.finish()


class Engine(Generic[E, A]):
    """Runs collectors, strategies and executors as concurrent tasks."""

    def __init__(
        self, event_channel_capacity: int = 512, action_channel_capacity: int = 512
    ) -> None:
        self._collectors: list[Collector[E]] = []
        self._strategies: list[Strategy[E, A]] = []
        self._executors: list[Executor[A]] = []
        self.event_channel_capacity = event_channel_capacity
        self.action_channel_capacity = action_channel_capacity

    def strategy_count(self) -> int:
        return len(self._strategies)

    def executor_count(self) -> int:
        return len(self._executors)

    def add_collector(self, collector: Collector[E]) -> None:
        self._collectors.append(collector)

    def add_strategy(self, strategy: Strategy[E, A]) -> None:
        self._strategies.append(strategy)

    def add_executor(self, executor: Executor[A]) -> None:
        self._executors.append(executor)

    async def run(self) -> list[asyncio.Task[None]]:
        """Start every component and return the running tasks."""
        event_channel: Broadcast[E] = Broadcast(self.event_channel_capacity)
        action_channel: Broadcast[A] = Broadcast(self.action_channel_capacity)

        if not self._executors:
            raise EngineError("no executors")
        if not self._collectors:
            raise EngineError("no collectors")
        if not self._strategies:
            raise EngineError("no strategies")

        strategies_left = _Countdown(len(self._strategies), action_channel)
        collectors_left = _Countdown(len(self._collectors), event_channel)
        tasks: list[asyncio.Task[None]] = []

        for executor in self._executors:
            receiver = action_channel.subscribe()
            tasks.append(asyncio.create_task(_run_executor(executor, receiver)))

        for strategy in self._strategies:
            event_receiver = event_channel.subscribe()
            submitter = ActionChannelSubmitter(action_channel)
            try:
                await strategy.sync_state(submitter)
            except Exception as exc:
                for task in tasks:
                    task.cancel()
                raise EngineError("fail to sync state") from exc
            tasks.append(
                asyncio.create_task(
                    _run_strategy(strategy, event_receiver, submitter, strategies_left)
                )
            )

        for collector in self._collectors:
            tasks.append(
                asyncio.create_task(_run_collector(collector, event_channel, collectors_left))
            )

        return tasks

    async def run_and_join(self) -> None:
        """Start the engine and wait until every task has finished."""
        pending = set(await self.run())
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    if task.cancelled():
                        logger.error("task terminated unexpectedly: cancelled")
                        continue
                    exc = task.exception()
                    if exc is not None:
                        logger.error("task terminated unexpectedly: %s", exc, exc_info=exc)
        finally:
            for task in pending:
                task.cancel()