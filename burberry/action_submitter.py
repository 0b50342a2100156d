"""Action submitters: over a channel, mapped, and logging."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Optional, TypeVar

from burberry.channel import Broadcast, ChannelClosed
from burberry.types import ActionSubmitter

logger = logging.getLogger(__name__)

A = TypeVar("A")


class ActionChannelSubmitter(ActionSubmitter[A]):
    """Submits actions into a broadcast channel, logging failures."""

    def __init__(self, sender: Broadcast[A]) -> None:
        self._sender = sender

    def submit(self, action: A) -> None:
        try:
            self._sender.send(action)
        except ChannelClosed as exc:
            logger.error("error submitting action: %r (%s)", action, exc)


class ActionSubmitterMap(ActionSubmitter[A]):
    """Converts actions before submitting them; actions mapped to None are dropped."""

    def __init__(self, submitter: ActionSubmitter[Any], f: Callable[[A], Optional[Any]]) -> None:
        self._submitter = submitter
        self._f = f

    def submit(self, action: A) -> None:
        converted = self._f(action)
        if converted is None:
            return
        self._submitter.submit(converted)


class ActionPrinter(ActionSubmitter[A]):
    """Logs each action instead of executing it."""

    def submit(self, action: A) -> None:
        logger.info("action: %r", action)