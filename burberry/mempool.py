"""A collector of full pending transactions from the mempool."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator
from typing import Any, Optional

from burberry.collectors import Provider
from burberry.types import Collector

logger = logging.getLogger(__name__)

_DONE = object()


def _format_hash(tx_hash: Any) -> str:
    if isinstance(tx_hash, (bytes, bytearray)):
        return "0x" + bytes(tx_hash).hex()
    return str(tx_hash)


class GetTransactionError(Exception):
    """A transaction could not be fetched by its hash."""

    def __init__(self, message: str, tx_hash: Any) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class TransactionNotFound(GetTransactionError):
    """The node returned no transaction for the hash."""

    def __init__(self, tx_hash: Any) -> None:
        super().__init__(f"Transaction `{_format_hash(tx_hash)}` not found", tx_hash)


class TransactionProviderError(GetTransactionError):
    """The provider failed while fetching the transaction."""

    def __init__(self, tx_hash: Any, error: BaseException) -> None:
        super().__init__(f"Failed to get transaction `{_format_hash(tx_hash)}`: {error}", tx_hash)
        self.error = error


async def _next_or_done(stream: AsyncIterator[Any]) -> Any:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return _DONE


class TransactionStream:
    """Turns a stream of transaction hashes into transactions, fetching concurrently.

    At most ``max_concurrent`` fetches run at once; further hashes wait in a
    queue. Transactions come out in the order their fetches complete. A failed
    fetch raises :class:`GetTransactionError` from ``__anext__``; iteration can
    continue afterwards.
    """

    def __init__(self, provider: Provider, stream: AsyncIterator[Any], max_concurrent: int) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._provider = provider
        self._stream = stream
        self.max_concurrent = max_concurrent
        self._pending: set[asyncio.Task[Any]] = set()
        self._buffered: deque[Any] = deque()
        self._stream_done = False
        self._next_hash: Optional[asyncio.Task[Any]] = None

    def __aiter__(self) -> TransactionStream:
        return self

    async def __anext__(self) -> Any:
        while True:
            while len(self._pending) < self.max_concurrent and self._buffered:
                self._push(self._buffered.popleft())

            finished = next((task for task in self._pending if task.done()), None)
            if finished is not None:
                self._pending.discard(finished)
                return finished.result()

            if self._stream_done and not self._pending and not self._buffered:
                raise StopAsyncIteration

            waitables: set[asyncio.Task[Any]] = set(self._pending)
            if not self._stream_done:
                if self._next_hash is None:
                    self._next_hash = asyncio.create_task(_next_or_done(self._stream))
                waitables.add(self._next_hash)

            await asyncio.wait(waitables, return_when=asyncio.FIRST_COMPLETED)

            if self._next_hash is not None and self._next_hash.done():
                task, self._next_hash = self._next_hash, None
                tx_hash = task.result()
                if tx_hash is _DONE:
                    self._stream_done = True
                elif len(self._pending) < self.max_concurrent:
                    self._push(tx_hash)
                else:
                    self._buffered.append(tx_hash)

    def _push(self, tx_hash: Any) -> None:
        self._pending.add(asyncio.create_task(self._fetch(tx_hash)))

    async def _fetch(self, tx_hash: Any) -> Any:
        try:
            tx = await self._provider.get_transaction_by_hash(tx_hash)
        except Exception as err:
            raise TransactionProviderError(tx_hash, err) from err
        if tx is None:
            raise TransactionNotFound(tx_hash)
        return tx

    def _cancel(self) -> None:
        for task in self._pending:
            task.cancel()
        self._pending.clear()
        if self._next_hash is not None:
            self._next_hash.cancel()
            self._next_hash = None


class MempoolCollector(Collector[Any]):
    """Emits full pending transactions; those that cannot be fetched are dropped."""

    name = "MempoolCollector"

    def __init__(self, provider: Provider, max_concurrent: int = 256) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._provider = provider
        self.max_concurrent = max_concurrent

    async def get_event_stream(self) -> AsyncIterator[Any]:
        try:
            hashes = await self._provider.subscribe_pending_transactions()
        except Exception as err:
            raise RuntimeError("fail to subscribe to pending transaction stream") from err
        return self._transactions(TransactionStream(self._provider, hashes, self.max_concurrent))

    @staticmethod
    async def _transactions(stream: TransactionStream) -> AsyncIterator[Any]:
        try:
            while True:
                try:
                    tx = await stream.__anext__()
                except StopAsyncIteration:
                    return
                except GetTransactionError as err:
                    logger.debug("dropping transaction: %s", err)
                    continue
                yield tx
        finally:
            stream._cancel()