"""Core abstractions: collectors, strategies, executors and action submitters."""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from typing import Any, Generic, Optional, TypeVar

E = TypeVar("E")
E2 = TypeVar("E2")
A = TypeVar("A")
A2 = TypeVar("A2")

_log = logging.getLogger(__name__)


class Collector(ABC, Generic[E]):
    """A source of events, exposed as an asynchronous stream."""

    name: str = "Unnamed"

    @abstractmethod
    async def get_event_stream(self) -> AsyncIterator[E]:
        """Return an asynchronous iterator of events."""


class ActionSubmitter(ABC, Generic[A]):
    """Something that accepts actions produced by a strategy."""

    @abstractmethod
    def submit(self, action: A) -> None:
        """Hand an action over for execution."""


class Strategy(ABC, Generic[E, A]):
    """Turns events into actions."""

    name: str = "Unnamed"

    async def sync_state(self, submitter: ActionSubmitter[A]) -> None:
        """Prepare the strategy before events arrive; by default there is nothing to sync."""
        _log.debug("strategy %s has no state to sync", self.name)

    @abstractmethod
    async def process_event(self, event: E, submitter: ActionSubmitter[A]) -> None:
        """Handle one event, submitting any resulting actions."""


class Executor(ABC, Generic[A]):
    """Carries out actions."""

    name: str = "Unnamed"

    @abstractmethod
    async def execute(self, action: A) -> None:
        """Carry out one action; raise on failure."""


async def _mapped(stream: AsyncIterator[Any], f: Callable[[Any], Any]) -> AsyncIterator[Any]:
    async for item in stream:
        yield f(item)


async def _filter_mapped(
    stream: AsyncIterator[Any], f: Callable[[Any], Any]
) -> AsyncIterator[Any]:
    async for item in stream:
        mapped = f(item)
        if mapped is not None:
            yield mapped


class CollectorMap(Collector[E2]):
    """A collector whose events are transformed by a function."""

    def __init__(self, collector: Collector[Any], f: Callable[[Any], E2]) -> None:
        self._inner = collector
        self._f = f

    @property
    def name(self) -> str:  # type: ignore[override]
        return self._inner.name

    async def get_event_stream(self) -> AsyncIterator[E2]:
        stream = await self._inner.get_event_stream()
        return _mapped(stream, self._f)


class CollectorFilterMap(Collector[E2]):
    """A collector whose events are transformed, dropping those mapped to None."""

    def __init__(self, collector: Collector[Any], f: Callable[[Any], Optional[E2]]) -> None:
        self._inner = collector
        self._f = f

    @property
    def name(self) -> str:  # type: ignore[override]
        return self._inner.name

    async def get_event_stream(self) -> AsyncIterator[E2]:
        stream = await self._inner.get_event_stream()
        return _filter_mapped(stream, self._f)


class ExecutorMap(Executor[A]):
    """An executor that converts actions before passing them on; None skips them."""

    def __init__(self, executor: Executor[Any], f: Callable[[A], Optional[Any]]) -> None:
        self._inner = executor
        self._f = f

    @property
    def name(self) -> str:  # type: ignore[override]
        return self._inner.name

    async def execute(self, action: A) -> None:
        converted = self._f(action)
        if converted is None:
            return
        await self._inner.execute(converted)


def _payload_getter(variant: type) -> Callable[[Any], Any]:
    if not isinstance(variant, type):
        raise TypeError(f"variant must be a class, got {variant!r}")
    if dataclasses.is_dataclass(variant):
        fields = dataclasses.fields(variant)
        if len(fields) != 1:
            raise TypeError(f"variant {variant.__name__} must have exactly one field")
        field_name = fields[0].name
        return lambda action: getattr(action, field_name)
    if issubclass(variant, tuple) and len(getattr(variant, "_fields", ())) == 1:
        return lambda action: action[0]
    raise TypeError(
        f"variant {variant.__name__} must be a dataclass or named tuple with one field"
    )


def map_executor(executor: Executor[Any], variant: type) -> ExecutorMap[Any]:
    """Wrap an executor so it only receives the payload of actions of ``variant``."""
    payload = _payload_getter(variant)

    def extract(action: Any) -> Any:
        return payload(action) if isinstance(action, variant) else None

    return ExecutorMap(executor, extract)


def map_collector(collector: Collector[Any], variant: Callable[[Any], E2]) -> CollectorMap[E2]:
    """Wrap every event of a collector in ``variant``."""
    return CollectorMap(collector, variant)


def submit_action(submitter: ActionSubmitter[Any], variant: Callable[[Any], Any], action: Any) -> None:
    """Submit ``variant(action)`` through ``submitter``."""
    submitter.submit(variant(action))