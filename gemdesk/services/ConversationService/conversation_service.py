from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
import uuid
from collections.abc import Callable
from typing import Literal

from gemdesk.components.audio.audio_output_interface import UnsupportedCapabilityError
from gemdesk.entities.message import ImageAttachment, MessagePayload, PlaybackState
from gemdesk.repositories.chat_repository.chat_repository_interface import (
    ChatRepositoryInterface,
)
from gemdesk.services.AttachmentService.attachment_service_interface import (
    AttachmentServiceInterface,
)
from gemdesk.services.ChatService.chat_service import WELCOME_MESSAGE_ID
from gemdesk.services.ChatService.chat_service_interface import (
    ChatServiceError,
    ChatServiceInterface,
)
from gemdesk.services.ConversationService.conversation_service_interface import (
    ConversationServiceInterface,
)
from gemdesk.services.PlaybackService.playback_service import PlaybackError
from gemdesk.services.PlaybackService.playback_service_interface import (
    PlaybackOutcome,
    PlaybackServiceInterface,
)
from gemdesk.services.SettingsService.settings_service_interface import (
    SettingsServiceInterface,
)
from gemdesk.utils.audio import AudioDecodeError

QUOTE_PREVIEW_CHARS = 200

WELCOME_TEXT = (
    "Hello! I'm your Gemini Assistant. I can help you with text, analyze images "
    "you paste or upload, and I can even read my responses aloud."
)
EMPTY_REPLY_TEXT = "I couldn't generate a text response."
ERROR_REPLY_HINT = (
    "Please check your internet connection and ensure your API key is set "
    "correctly in your environment variables."
)


class MessageNotReadyError(Exception):
    """Raised when a send is attempted with nothing to send or images still processing."""


def format_quote(quoted: MessagePayload, text: str) -> str:
    quote = quoted["content"]
    ellipsis = "..." if len(quote) > QUOTE_PREVIEW_CHARS else ""
    return (
        f'[Replying to]: "{quote[:QUOTE_PREVIEW_CHARS]}{ellipsis}"\n\n'
        f"[My Message]: {text}"
    )


class ConversationService(ConversationServiceInterface):
    def __init__(
        self,
        chat_service: ChatServiceInterface,
        attachment_service: AttachmentServiceInterface,
        playback_service: PlaybackServiceInterface,
        settings_service: SettingsServiceInterface,
        chat_repository: ChatRepositoryInterface,
        logger: logging.Logger,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.chat_service = chat_service
        self.attachment_service = attachment_service
        self.playback_service = playback_service
        self.settings_service = settings_service
        self.chat_repository = chat_repository
        self.logger = logger
        self.clock = clock
        self._messages: list[MessagePayload] = []
        self._quoted: MessagePayload | None = None
        self._background: set[asyncio.Task] = set()

    @property
    def messages(self) -> list[MessagePayload]:
        return list(self._messages)

    @property
    def quoted_message(self) -> MessagePayload | None:
        return self._quoted

    async def start(self) -> None:
        if not await self.load_history():
            await self.new_chat()

    async def new_chat(self) -> None:
        self._messages = [
            {
                "id": WELCOME_MESSAGE_ID,
                "role": "model",
                "content": WELCOME_TEXT,
                "attachments": [],
                "timestamp": self.clock(),
            }
        ]
        self._quoted = None
        await self.chat_service.initialize()
        self._save()
        self.logger.info("Started a new chat")

    async def load_history(self) -> bool:
        try:
            saved = self.chat_repository.load_history()
        except (sqlite3.Error, ValueError, KeyError) as exc:
            self.logger.warning("Could not load chat history: %s", exc)
            return False

        if not saved:
            return False

        self._messages = saved
        self._quoted = None
        await self.chat_service.initialize(saved)
        self.logger.info("Restored %d messages from history", len(saved))
        return True

    async def clear_history(self) -> None:
        self.playback_service.stop()
        self.chat_repository.clear_history()
        await self.new_chat()

    def set_quote(self, message_id: str) -> MessagePayload:
        message = self._find(message_id)
        self._quoted = message
        return message

    def clear_quote(self) -> None:
        self._quoted = None

    def search(self, query: str) -> list[MessagePayload]:
        needle = query.strip().lower()
        if not needle:
            return self.messages
        return [msg for msg in self._messages if needle in msg["content"].lower()]

    async def send_message(self, text: str) -> MessagePayload:
        if self.attachment_service.is_processing:
            raise MessageNotReadyError("Images are still processing")
        if not text.strip() and not self.attachment_service.attachments:
            raise MessageNotReadyError("Type a message or attach an image first")

        final_text = text
        if self._quoted is not None:
            final_text = format_quote(self._quoted, text)
            self._quoted = None

        attachments = self.attachment_service.take_attachments()
        self._append("user", final_text, attachments)

        try:
            reply = await self.chat_service.send_message(final_text, attachments)
            bot_message = self._append("model", reply or EMPTY_REPLY_TEXT)
        except ChatServiceError as exc:
            bot_message = self._append("model", f"Error: {exc}.\n\n{ERROR_REPLY_HINT}")

        if self.settings_service.is_auto_speak():
            self._spawn(self._auto_speak(bot_message))

        return bot_message

    async def speak(self, message_id: str) -> PlaybackOutcome:
        message = self._find(message_id)
        return await self.playback_service.speak(message["id"], message["content"])

    def stop_speaking(self) -> None:
        self.playback_service.stop()

    def playback_state(self, message_id: str) -> PlaybackState:
        return self.playback_service.state_for(message_id)

    async def aclose(self) -> None:
        self.attachment_service.cancel_all()
        for task in list(self._background):
            task.cancel()
        await self.playback_service.aclose()

    async def _auto_speak(self, message: MessagePayload) -> None:
        try:
            await self.playback_service.speak(message["id"], message["content"])
        except (PlaybackError, AudioDecodeError, UnsupportedCapabilityError) as exc:
            self.logger.warning("Auto-speak failed: %s", exc)

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _find(self, message_id: str) -> MessagePayload:
        for message in self._messages:
            if message["id"] == message_id:
                return message
        raise KeyError(f"Unknown message {message_id}")

    def _append(
        self,
        role: Literal["user", "model"],
        content: str,
        attachments: list[ImageAttachment] | None = None,
    ) -> MessagePayload:
        message: MessagePayload = {
            "id": uuid.uuid4().hex,
            "role": role,
            "content": content,
            "attachments": attachments or [],
            "timestamp": self.clock(),
        }
        self._messages.append(message)
        self._save()
        return message

    def _save(self) -> None:
        try:
            self.chat_repository.save_history(self._messages)
        except sqlite3.Error as exc:
            self.logger.warning("Could not save chat history: %s", exc)
