"""Collectors that read blocks and logs from an Ethereum JSON-RPC provider."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from datetime import timedelta
from typing import Any, Optional, Union

from burberry.types import Collector

logger = logging.getLogger(__name__)

Interval = Union[float, timedelta]


def _seconds(interval: Interval) -> float:
    seconds = interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
    if seconds < 0:
        raise ValueError("interval must not be negative")
    return seconds


class Provider(ABC):
    """The node operations the collectors and executors rely on.

    Headers carry ``number`` and ``hash``; full blocks carry ``header``.
    Filters are JSON-RPC log filter mappings.
    """

    @abstractmethod
    async def subscribe_blocks(self) -> AsyncIterator[Any]:
        """Subscribe to new block headers."""

    @abstractmethod
    async def subscribe_logs(self, filter: Mapping[str, Any]) -> AsyncIterator[Any]:
        """Subscribe to logs matching ``filter``."""

    @abstractmethod
    async def subscribe_pending_transactions(self) -> AsyncIterator[Any]:
        """Subscribe to hashes of pending transactions."""

    @abstractmethod
    async def get_block_by_number(self, number: int, full: bool) -> Optional[Any]:
        """Fetch a block by number, or None if the node does not have it yet."""

    @abstractmethod
    async def get_latest_block(self, full: bool) -> Optional[Any]:
        """Fetch the latest block, or None if there is none."""

    @abstractmethod
    async def get_logs(self, filter: Mapping[str, Any]) -> list[Any]:
        """Fetch the logs matching ``filter``."""

    @abstractmethod
    async def get_transaction_by_hash(self, tx_hash: Any) -> Optional[Any]:
        """Fetch a transaction, or None if it is unknown."""

    @abstractmethod
    async def send_raw_transaction(self, raw: bytes) -> Any:
        """Broadcast a signed transaction and return its hash."""


def _at_block_hash(filter: Mapping[str, Any], block_hash: Any) -> dict[str, Any]:
    restricted = {k: v for k, v in filter.items() if k not in ("fromBlock", "toBlock")}
    restricted["blockHash"] = block_hash
    return restricted


class BlockCollector(Collector[Any]):
    """Emits every new block header."""

    name = "BlockCollector"

    def __init__(self, provider: Provider) -> None:
        self._provider = provider

    async def get_event_stream(self) -> AsyncIterator[Any]:
        return await self._provider.subscribe_blocks()


class FullBlockCollector(Collector[Any]):
    """Emits the full block for every new header, retrying while the node lacks it."""

    name = "FullBlockCollector"

    def __init__(self, provider: Provider, retry_interval: Interval = 0.05) -> None:
        self._provider = provider
        self.retry_interval = _seconds(retry_interval)

    async def get_event_stream(self) -> AsyncIterator[Any]:
        headers = await self._provider.subscribe_blocks()
        return self._full_blocks(headers)

    async def _full_blocks(self, headers: AsyncIterator[Any]) -> AsyncIterator[Any]:
        attempts = 0
        async for header in headers:
            number = header.number
            while True:
                try:
                    block = await self._provider.get_block_by_number(number, full=True)
                except Exception as err:
                    logger.error("block=%s fail to get full block: %s", number, err)
                    break
                if block is not None:
                    yield block
                    break
                if attempts % 5 == 0:
                    logger.warning("block=%s block not found yet", number)
                else:
                    logger.error("block=%s block not found yet", number)
                attempts += 1
                await asyncio.sleep(self.retry_interval)


class LogCollector(Collector[Any]):
    """Emits every log matching a filter."""

    name = "LogCollector"

    def __init__(self, provider: Provider, filter: Mapping[str, Any]) -> None:
        self._provider = provider
        self.filter = filter

    async def get_event_stream(self) -> AsyncIterator[Any]:
        return await self._provider.subscribe_logs(self.filter)


class LogsInBlockCollector(Collector[tuple[Any, list[Any]]]):
    """Emits each new header together with the logs in that block matching a filter."""

    name = "LogsInBlockCollector"

    def __init__(self, provider: Provider, filter: Mapping[str, Any]) -> None:
        self._provider = provider
        self.filter = filter

    async def get_event_stream(self) -> AsyncIterator[tuple[Any, list[Any]]]:
        headers = await self._provider.subscribe_blocks()
        return self._with_logs(headers)

    async def _block_logs(self, block_hash: Any) -> Optional[list[Any]]:
        try:
            return await self._provider.get_logs(_at_block_hash(self.filter, block_hash))
        except Exception as err:
            logger.error("block_hash=%r fail to get logs: %s", block_hash, err)
            return None

    async def _with_logs(
        self, headers: AsyncIterator[Any]
    ) -> AsyncIterator[tuple[Any, list[Any]]]:
        async for header in headers:
            logs = await self._block_logs(header.hash)
            if logs is None:
                continue
            yield header, logs


class PollFullBlockCollector(Collector[Any]):
    """Polls the latest full block and emits it whenever its number goes up."""

    name = "PollFullBlockCollector"

    def __init__(self, provider: Provider, interval: Interval) -> None:
        self._provider = provider
        self.interval = _seconds(interval)
        self._current_block = 0

    async def get_event_stream(self) -> AsyncIterator[Any]:
        return self._poll()

    async def _poll(self) -> AsyncIterator[Any]:
        while True:
            try:
                block = await self._provider.get_latest_block(full=True)
            except Exception as err:
                logger.error("fail to get latest block: %s", err)
                block = None
            else:
                if block is None:
                    logger.error("latest block not found")
            if block is not None:
                number = block.header.number
                previous = self._current_block
                self._current_block = max(previous, number)
                if previous < number:
                    yield block
            await asyncio.sleep(self.interval)