"""
Chat collaborator built on the Google Agent Development Kit (ADK).

One ADK session holds the running conversation; ``initialize`` replaces it
with a fresh session primed from saved history.
"""

from __future__ import annotations

import asyncio
import logging
import uuid

from google.adk.agents import Agent
from google.adk.events import Event
from google.adk.runners import Runner
from google.adk.sessions import InMemorySessionService, Session
from google.genai import types
from langfuse import observe

from gemdesk.entities.message import ImageAttachment, MessagePayload
from gemdesk.services.ChatService.chat_service_interface import (
    ChatServiceError,
    ChatServiceInterface,
)
from gemdesk.utils.encoding import decode_base64

ADK_APP_NAME = "gemdesk"
AGENT_NAME = "gemdesk_agent"
WELCOME_MESSAGE_ID = "welcome"

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful desktop assistant. You can see images and remember our "
    "conversation. You are concise and professional."
)


class ChatService(ChatServiceInterface):
    def __init__(
        self,
        model_name: str,
        logger: logging.Logger,
        system_prompt: str | None = None,
        timeout_seconds: int = 300,
        user_id: str = "local",
    ) -> None:
        """
        Args:
            model_name: Gemini model used for replies
            logger: Logger instance
            system_prompt: Instruction for the agent, a built-in default when empty
            timeout_seconds: Upper bound for one reply
            user_id: ADK user identifier for the local session
        """
        self.model_name = model_name
        self.logger = logger
        self.system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self.timeout_seconds = timeout_seconds
        self.user_id = user_id

        self.session_service = InMemorySessionService()
        self.agent = self._create_agent()
        self.runner = Runner(
            agent=self.agent,
            app_name=ADK_APP_NAME,
            session_service=self.session_service,
        )
        self.session: Session | None = None

        self.logger.info("ChatService initialized with model %s", self.model_name)

    def _create_agent(self) -> Agent:
        return Agent(
            model=self.model_name,
            name=AGENT_NAME,
            description="Desktop chat assistant with image understanding",
            instruction=self.system_prompt,
        )

    def _build_parts(
        self, text: str, attachments: list[ImageAttachment]
    ) -> list[types.Part]:
        parts: list[types.Part] = []
        for attachment in attachments:
            base64_data = attachment.get("base64")
            mime_type = attachment.get("mime_type", "image/jpeg")
            if not base64_data:
                continue
            try:
                parts.append(
                    types.Part.from_bytes(
                        data=decode_base64(base64_data), mime_type=mime_type
                    )
                )
            except ValueError as e:
                self.logger.warning("Failed to decode attachment: %s", e)

        if text:
            parts.append(types.Part.from_text(text=text))
        return parts

    async def initialize(self, history: list[MessagePayload] | None = None) -> None:
        session = await self.session_service.create_session(
            app_name=ADK_APP_NAME,
            user_id=self.user_id,
            session_id=str(uuid.uuid4()),
        )

        primed = 0
        for msg in history or []:
            if msg.get("id") == WELCOME_MESSAGE_ID:
                continue

            parts = self._build_parts(msg.get("content", ""), msg.get("attachments", []))
            if not parts:
                continue

            role = "user" if msg.get("role") == "user" else "model"
            event = Event(
                author="user" if role == "user" else AGENT_NAME,
                content=types.Content(role=role, parts=parts),
            )
            await self.session_service.append_event(session=session, event=event)
            primed += 1

        self.session = session
        self.logger.info("Started chat session with %d primed messages", primed)

    @observe()
    async def send_message(
        self, text: str, attachments: list[ImageAttachment] | None = None
    ) -> str:
        if self.session is None:
            await self.initialize()
        assert self.session is not None

        parts = self._build_parts(text, attachments or [])
        if not parts:
            raise ChatServiceError("Nothing to send: the message has no text or images")

        new_message = types.Content(role="user", parts=parts)
        final_response = ""

        try:
            async with asyncio.timeout(self.timeout_seconds):
                async for event in self.runner.run_async(
                    user_id=self.user_id,
                    session_id=self.session.id,
                    new_message=new_message,
                ):
                    if event.is_final_response() and event.content and event.content.parts:
                        for part in event.content.parts:
                            if getattr(part, "text", None):
                                final_response += part.text
        except TimeoutError as e:
            self.logger.error("Chat request timed out after %ss", self.timeout_seconds)
            raise ChatServiceError("The request took too long to complete") from e
        except Exception as e:
            self.logger.error("Error sending message to Gemini: %s", e, exc_info=True)
            raise ChatServiceError(str(e) or type(e).__name__) from e

        if not final_response:
            self.logger.warning("Model returned an empty response")
        return final_response
