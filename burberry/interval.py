"""A collector that emits the current monotonic time at a fixed interval."""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from datetime import timedelta
from typing import Union

from burberry.types import Collector


class IntervalCollector(Collector[float]):
    """Emits ``time.monotonic()`` after every ``interval`` of sleep, forever."""

    name = "IntervalCollector"

    def __init__(self, interval: Union[float, timedelta]) -> None:
        seconds = interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
        if seconds < 0:
            raise ValueError("interval must not be negative")
        self.interval = seconds

    async def get_event_stream(self) -> AsyncIterator[float]:
        return self._ticks()

    async def _ticks(self) -> AsyncIterator[float]:
        while True:
            await asyncio.sleep(self.interval)
            yield time.monotonic()