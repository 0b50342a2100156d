"""An executor that discards every action."""

from __future__ import annotations

from typing import Any

from burberry.types import Executor


class Dummy(Executor[Any]):
    """Accepts any action and does nothing with it."""

    name = "Dummy"

    async def execute(self, action: Any) -> None:
        del action