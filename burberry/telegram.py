"""Sending messages to Telegram chats, as an executor and as an action submitter."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import threading
from typing import Any, Optional

import httpx

from burberry.types import ActionSubmitter, Executor

logger = logging.getLogger(__name__)

_ESCAPED_CHARACTERS = frozenset("\\*_[]~`>#-|{}.!+()=")


def escape(raw: str) -> str:
    """Escape the characters that are special in Telegram's MarkdownV2."""
    return "".join(f"\\{c}" if c in _ESCAPED_CHARACTERS else c for c in raw)


@dataclasses.dataclass(frozen=True)
class Message:
    """A Telegram message together with where to send it."""

    bot_token: str = ""
    chat_id: str = ""
    thread_id: Optional[str] = None
    text: str = ""
    disable_notification: Optional[bool] = None
    protect_content: Optional[bool] = None
    disable_link_preview: Optional[bool] = None
    parse_mode: Optional[str] = None


class _SendError(Exception):
    """Telegram did not accept a request."""


def _url(bot_token: str) -> str:
    return f"https://api.telegram.org/bot{bot_token}/sendMessage"


class TelegramMessageDispatcher(Executor[Message]):
    """Posts messages to the Telegram bot API, optionally reporting failures to another chat."""

    name = "TelegramMessageDispatcher"

    def __init__(
        self,
        error_report_bot_token: Optional[str] = None,
        error_report_chat_id: Optional[str] = None,
        error_report_thread_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.error_report_bot_token = error_report_bot_token
        self.error_report_chat_id = error_report_chat_id
        self.error_report_thread_id = error_report_thread_id
        self._client = client

    async def send_message(self, message: Message) -> None:
        """Send a message; failures are logged and reported, never raised."""
        data: dict[str, Any] = {
            "chat_id": message.chat_id,
            "text": message.text,
            "parse_mode": message.parse_mode if message.parse_mode is not None else "MarkdownV2",
        }
        if message.thread_id is not None:
            data["message_thread_id"] = message.thread_id
        if message.disable_notification is not None:
            data["disable_notification"] = message.disable_notification
        if message.protect_content is not None:
            data["protect_content"] = message.protect_content
        if message.disable_link_preview is not None:
            data["link_preview_options"] = {"is_disabled": message.disable_link_preview}

        logger.debug("sending message to telegram: %r", data)
        try:
            await self._post(_url(message.bot_token), data)
        except _SendError as err:
            logger.error("fail to send message to telegram: %s", err)
            await self.report_error(message, str(err))

    async def report_error(self, original_message: Message, error_message: str) -> None:
        """Tell the error-report chat that a message could not be sent."""
        if self.error_report_bot_token is None:
            logger.warning("telegram message fails to send but error reporting is disabled")
            return

        data: dict[str, Any] = {
            "chat_id": self.error_report_chat_id,
            "link_preview_options": {"is_disabled": True},
        }
        if self.error_report_thread_id is not None:
            data["message_thread_id"] = self.error_report_thread_id
        quoted = json.dumps(original_message.text, ensure_ascii=False)
        data["text"] = (
            f"❌ Fail to send message\n\nOriginal message: {quoted}\nError: {error_message}"
        )

        try:
            await self._post(_url(self.error_report_bot_token), data)
        except _SendError as err:
            logger.error("fail to send error report to telegram: %s", err)

    async def execute(self, action: Message) -> None:
        logger.debug("received message: %r", action)
        await self.send_message(action)

    async def _post(self, url: str, data: dict[str, Any]) -> None:
        if self._client is not None:
            await self._post_with(self._client, url, data)
            return
        async with httpx.AsyncClient() as client:
            await self._post_with(client, url, data)

    @staticmethod
    async def _post_with(client: httpx.AsyncClient, url: str, data: dict[str, Any]) -> None:
        try:
            response = await client.post(url, json=data)
        except httpx.HTTPError as err:
            raise _SendError(f"failed to send message: {err}") from err

        if response.status_code != httpx.codes.OK:
            try:
                body = response.text
            except Exception:
                body = "fail to read body"
            raise _SendError(
                f"response status: {response.status_code} {response.reason_phrase}, body: {body}"
            )

        try:
            value = response.json()
        except ValueError as err:
            raise _SendError(f"failed to parse response: {err}") from err
        logger.debug("response: %s", value)


class TelegramSubmitter(ActionSubmitter[Message]):
    """Sends each submitted message right away, blocking until it is done.

    With ``bot_token`` and ``chat_id`` given, every message is redirected to
    that chat (and ``thread_id``), keeping its text and options.
    """

    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_id: Optional[str] = None,
        thread_id: Optional[str] = None,
        dispatcher: Optional[TelegramMessageDispatcher] = None,
    ) -> None:
        if (bot_token is None) != (chat_id is None):
            raise ValueError("bot_token and chat_id must be given together")
        if bot_token is None and thread_id is not None:
            raise ValueError("thread_id needs bot_token and chat_id")
        self._redirect = None if bot_token is None else (bot_token, chat_id, thread_id)
        self._dispatcher = dispatcher if dispatcher is not None else TelegramMessageDispatcher()

    def submit(self, action: Message) -> None:
        if self._redirect is not None:
            bot_token, chat_id, thread_id = self._redirect
            action = dataclasses.replace(
                action, bot_token=bot_token, chat_id=chat_id, thread_id=thread_id
            )

        errors: list[BaseException] = []

        def send() -> None:
            try:
                asyncio.run(self._dispatcher.send_message(action))
            except BaseException as exc:
                errors.append(exc)

        worker = threading.Thread(target=send)
        worker.start()
        worker.join()
        if errors:
            raise errors[0]