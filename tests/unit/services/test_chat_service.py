"""
Unit tests for ChatService with the ADK runner and session service mocked.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gemdesk.services.ChatService.chat_service import (
    AGENT_NAME,
    DEFAULT_SYSTEM_PROMPT,
    WELCOME_MESSAGE_ID,
    ChatService,
)
from gemdesk.services.ChatService.chat_service_interface import ChatServiceError

MODULE = "gemdesk.services.ChatService.chat_service"


def _final_event(text: str) -> MagicMock:
    event = MagicMock()
    event.is_final_response.return_value = True
    part = MagicMock()
    part.text = text
    event.content.parts = [part]
    return event


def _runner_yielding(*events):
    async def run_async(**kwargs):
        for event in events:
            yield event

    return run_async


@pytest.fixture
def chat_service(logger: logging.Logger):
    with patch(f"{MODULE}.Agent") as MockAgent, patch(
        f"{MODULE}.Runner"
    ) as MockRunner, patch(f"{MODULE}.InMemorySessionService") as MockSessionService:
        session_service = MockSessionService.return_value
        session = MagicMock()
        session.id = "session-1"
        session_service.create_session = AsyncMock(return_value=session)
        session_service.append_event = AsyncMock()

        service = ChatService(model_name="gemini-test", logger=logger)
        service._mock_agent_cls = MockAgent
        service._mock_runner_cls = MockRunner
        yield service


@pytest.mark.unit
class TestChatServiceInitialization:
    def test_uses_default_system_prompt(self, chat_service: ChatService) -> None:
        assert chat_service.system_prompt == DEFAULT_SYSTEM_PROMPT
        kwargs = chat_service._mock_agent_cls.call_args.kwargs
        assert kwargs["name"] == AGENT_NAME
        assert kwargs["model"] == "gemini-test"
        assert kwargs["instruction"] == DEFAULT_SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_initialize_primes_history_without_welcome(
        self, chat_service: ChatService
    ) -> None:
        history = [
            {"id": WELCOME_MESSAGE_ID, "role": "model", "content": "Hi", "attachments": [], "timestamp": 0.0},
            {"id": "u1", "role": "user", "content": "Question", "attachments": [], "timestamp": 1.0},
            {"id": "m1", "role": "model", "content": "Answer", "attachments": [], "timestamp": 2.0},
        ]

        await chat_service.initialize(history)

        session_service = chat_service.session_service
        assert session_service.append_event.await_count == 2
        first = session_service.append_event.await_args_list[0].kwargs["event"]
        second = session_service.append_event.await_args_list[1].kwargs["event"]
        assert first.author == "user"
        assert first.content.role == "user"
        assert second.author == AGENT_NAME
        assert second.content.role == "model"
        assert chat_service.session.id == "session-1"

    @pytest.mark.asyncio
    async def test_initialize_includes_images(self, chat_service: ChatService) -> None:
        history = [
            {
                "id": "u1",
                "role": "user",
                "content": "",
                "attachments": [{"base64": "aGVsbG8=", "mime_type": "image/png"}],
                "timestamp": 1.0,
            }
        ]

        await chat_service.initialize(history)

        event = chat_service.session_service.append_event.await_args.kwargs["event"]
        (part,) = event.content.parts
        assert part.inline_data.data == b"hello"
        assert part.inline_data.mime_type == "image/png"


@pytest.mark.unit
class TestChatServiceSendMessage:
    @pytest.mark.asyncio
    async def test_collects_final_response(self, chat_service: ChatService) -> None:
        chat_service.runner.run_async = _runner_yielding(
            _final_event("Hello "), _final_event("world")
        )

        reply = await chat_service.send_message("Hi")

        assert reply == "Hello world"
        chat_service.session_service.create_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sends_images_before_text(self, chat_service: ChatService) -> None:
        captured = {}

        async def run_async(**kwargs):
            captured.update(kwargs)
            yield _final_event("A cat")

        chat_service.runner.run_async = run_async

        await chat_service.send_message(
            "What is this?", [{"base64": "aGVsbG8=", "mime_type": "image/jpeg"}]
        )

        parts = captured["new_message"].parts
        assert parts[0].inline_data.mime_type == "image/jpeg"
        assert parts[1].text == "What is this?"
        assert captured["session_id"] == "session-1"

    @pytest.mark.asyncio
    async def test_ignores_non_final_events(self, chat_service: ChatService) -> None:
        partial = _final_event("thinking")
        partial.is_final_response.return_value = False
        chat_service.runner.run_async = _runner_yielding(partial, _final_event("Done"))

        assert await chat_service.send_message("Hi") == "Done"

    @pytest.mark.asyncio
    async def test_empty_message_is_rejected(self, chat_service: ChatService) -> None:
        with pytest.raises(ChatServiceError):
            await chat_service.send_message("")

    @pytest.mark.asyncio
    async def test_runner_failure_is_wrapped(self, chat_service: ChatService) -> None:
        async def run_async(**kwargs):
            raise RuntimeError("network down")
            yield

        chat_service.runner.run_async = run_async

        with pytest.raises(ChatServiceError, match="network down"):
            await chat_service.send_message("Hi")

    @pytest.mark.asyncio
    async def test_timeout(self, chat_service: ChatService) -> None:
        async def run_async(**kwargs):
            await asyncio.sleep(1)
            yield _final_event("late")

        chat_service.runner.run_async = run_async
        chat_service.timeout_seconds = 0.01

        with pytest.raises(ChatServiceError, match="too long"):
            await chat_service.send_message("Hi")

    @pytest.mark.asyncio
    async def test_empty_reply_returns_empty_string(
        self, chat_service: ChatService
    ) -> None:
        chat_service.runner.run_async = _runner_yielding()
        assert await chat_service.send_message("Hi") == ""
