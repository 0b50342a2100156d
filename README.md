# burberry

burberry is a small asyncio framework for building event-driven bots. A bot
has three kinds of parts, and an `Engine` (`burberry.engine`) connects them:

- **Collectors** (`burberry.types.Collector`) produce an asynchronous stream
  of events.
- **Strategies** (`burberry.types.Strategy`) receive every event and submit
  actions.
- **Executors** (`burberry.types.Executor`) receive every action and carry it
  out.

Events go to every strategy, and actions go to every executor. Both travel
over a bounded broadcast channel, `burberry.channel.Broadcast`. The channel
keeps at most its capacity of items, which is 512 by default for both
channels in an engine. When a receiver falls behind, it loses the oldest
items. The engine logs a warning and the receiver carries on from the oldest
item still kept.

## Installation

```
pip install burberry
```

## A minimal bot

```python
import asyncio

from burberry.engine import Engine
from burberry.interval import IntervalCollector
from burberry.types import Executor, Strategy


class Tick(Strategy):
    async def process_event(self, event, submitter):
        submitter.submit(f"tick at {event}")


class Echo(Executor):
    async def execute(self, action):
        print("action:", action)


async def main():
    engine = Engine()
    engine.add_collector(IntervalCollector(1.0))
    engine.add_strategy(Tick())
    engine.add_executor(Echo())
    await engine.run_and_join()


asyncio.run(main())
```

The capacities of the two channels can be set with
`Engine(event_channel_capacity=..., action_channel_capacity=...)`.

`Engine.run()` starts every part as an asyncio task and returns the list of
tasks without waiting for them. Before any strategy task starts, the engine
awaits that strategy's `sync_state(submitter)`. If this fails, the engine
cancels the tasks it has already started and raises `EngineError`.
`Engine.run()` also raises `EngineError` when the engine has no executors, no
collectors or no strategies.

`Engine.run_and_join()` waits until every task has finished, and it logs any
task that ends with an exception. The channels close once their producers are
done:

- The event channel closes after every collector stream has ended.
- The action channel closes after every strategy has stopped.

When a strategy or an executor sees its channel close, it stops.

Failures inside a running part are logged and the part keeps running. This
covers an exception raised by an executor, and an event that could not be
delivered because nobody was listening.

## Mixing event and action kinds

One engine can serve collectors and executors that work with different item
types. Give each kind of event or action a wrapper class, then adapt the
parts with these functions from `burberry.types`:

- `map_collector(collector, variant)` calls `variant(item)` on every item the
  collector yields.
- `map_executor(executor, variant)` passes on only the actions that are
  instances of `variant`. Before an action reaches the executor, it is
  unwrapped to its single field. `variant` must be a dataclass or a named
  tuple with exactly one field. Anything else raises `TypeError`.
- `submit_action(submitter, variant, action)` submits `variant(action)`.

For other mappings, pass a function of your own to one of these classes:

- `CollectorMap`
- `CollectorFilterMap`
- `ExecutorMap`
- `ActionSubmitterMap` (`burberry.action_submitter`)

With the filtering classes, the function returns `None` to drop an item.

## Built-in parts

### Collectors

- `IntervalCollector` (`burberry.interval`) sleeps for the interval and then
  yields `time.monotonic()`, forever. The interval is given in seconds or as
  a `timedelta`.
- `burberry.collectors` reads from a chain node. You supply the node by
  implementing the abstract `Provider` class. It has these collectors:
  - `BlockCollector` yields new block headers.
  - `FullBlockCollector` yields the full block for each new header. When the
    node does not have the block yet, it retries every `retry_interval`,
    which is 0.05 s by default.
  - `LogCollector` yields logs that match a JSON-RPC filter mapping.
  - `LogsInBlockCollector` yields `(header, logs)` for each new block, with
    the filter restricted to that block's hash.
  - `PollFullBlockCollector` polls the latest full block and yields it
    whenever the block number goes up.
- `MempoolCollector` (`burberry.mempool`) turns pending transaction hashes
  into full transactions:
  - It fetches up to `max_concurrent` transactions at a time, 256 by default.
  - It drops transactions that are not found or that cannot be fetched.
  - The underlying `TransactionStream` raises `TransactionNotFound` or
    `TransactionProviderError` in those cases. Both derive from
    `GetTransactionError`.

### Executors and submitters

- `Dummy` (`burberry.dummy`) accepts every action and ignores it.
- `RawTransactionSender` (`burberry.raw_transaction`) sends signed raw
  transactions, given as bytes or a hex string, with `eth_sendRawTransaction`.
  - It works with any provider that has `send_raw_transaction`. `HttpProvider`
    is a minimal JSON-RPC client over HTTP.
  - `RawTransactionSender.new_http(url)` builds a sender for an endpoint.
  - `with_flashbots()`, `with_bsc_bloxroute()`, `with_48club()`,
    `with_polygon_bloxroute()` and `with_arbitrum_sequencer()` point at
    well-known relays.
  - When sending fails, it logs the failure with the transaction's keccak-256
    hash.
- `TelegramMessageDispatcher` (`burberry.telegram`) posts a `Message` to the
  Telegram Bot API.
  - `parse_mode` defaults to `MarkdownV2`. `escape()` makes text safe for it.
  - Delivery failures are logged. If `error_report_bot_token` is set, the
    failure is also reported to `error_report_chat_id`.
- `TelegramSubmitter` sends each message immediately and blocks until the
  message is sent, with no engine involved. If it is given a `bot_token` and
  a `chat_id`, and optionally a `thread_id`, it redirects every message to
  that chat:

```python
from burberry.telegram import Message, TelegramSubmitter

submitter = TelegramSubmitter(bot_token="token", chat_id="12345")
submitter.submit(Message(text="hello"))
```

- `ActionPrinter` (`burberry.action_submitter`) logs every action submitted
  to it. This is useful when you test a strategy on its own.
- `ActionChannelSubmitter` is the submitter the engine gives to strategies.
  It sends actions into the action channel.

## What the package does not do

- It does not connect to a chain node over WebSocket and has no built-in
  subscriptions. You provide those by implementing `Provider`. The only node
  client included is `HttpProvider`, and it covers sending raw transactions
  only.
- It does not build or sign transactions. `RawTransactionSender` accepts
  transactions that are already signed.
- It has no command-line program. A bot is a Python script that you write
  around `Engine`.

## Running the tests

```
pip install "burberry[test]"
pytest
```