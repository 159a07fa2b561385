from __future__ import annotations

import asyncio
import logging
import shlex
from collections.abc import Awaitable, Callable
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.theme import Theme

from gemdesk.components.audio.audio_output_interface import UnsupportedCapabilityError
from gemdesk.entities.message import MessagePayload, PlaybackState
from gemdesk.entities.source_file import InMemoryFile, LocalFile
from gemdesk.services.AttachmentService.attachment_service import (
    AttachmentValidationError,
)
from gemdesk.services.AttachmentService.attachment_service_interface import (
    AttachmentServiceInterface,
)
from gemdesk.services.ConsoleService.console_service_interface import (
    ConsoleServiceInterface,
)
from gemdesk.services.ConversationService.conversation_service import (
    MessageNotReadyError,
)
from gemdesk.services.ConversationService.conversation_service_interface import (
    ConversationServiceInterface,
)
from gemdesk.services.PlaybackService.playback_service import PlaybackError
from gemdesk.services.SettingsService.settings_service import InvalidSettingError
from gemdesk.services.SettingsService.settings_service_interface import (
    SettingsServiceInterface,
)
from gemdesk.services.SpeechRecognizerService.gemini_speech_recognizer import (
    SpeechRecognitionError,
)
from gemdesk.services.SpeechRecognizerService.speech_recognizer_interface import (
    SpeechRecognizerInterface,
)
from gemdesk.utils.audio import AudioDecodeError
from gemdesk.utils.formatting import format_file_size, format_timestamp

GEMDESK_THEME = Theme(
    {
        "gd.user": "bold #818cf8",
        "gd.model": "bold #34d399",
        "gd.dim": "#64748b",
        "gd.error": "bold red",
        "gd.notice": "yellow",
        "gd.playing": "bold red",
    }
)

HELP_TEXT = """\
**Commands**

- `/attach <paths>` attach images (or drop files onto the terminal)
- `/remove <n>` remove attachment *n*, `/clear` remove all, `/cancel` stop processing
- `/reply <n>` quote message *n* in your next message
- `/speak [n]` read message *n* aloud (again to stop), `/stop` stop reading
- `/voice <name>`, `/speed <0.5-2.0>`, `/autospeak` speech settings
- `/listen` start or stop voice input
- `/search <text>` filter messages, `/history` show all messages
- `/new` new chat, `/clear-history` delete saved history
- `/quit` exit

Paste a `data:image/...;base64,` line to attach a clipboard image.
"""


def parse_dropped_paths(line: str) -> list[Path] | None:
    """Paths inserted by a terminal drag-and-drop, or None if ``line`` is ordinary text."""
    try:
        tokens = shlex.split(line)
    except ValueError:
        return None
    if not tokens:
        return None
    paths = [Path(token).expanduser() for token in tokens]
    if all(path.is_file() for path in paths):
        return paths
    return None


class ConsoleService(ConsoleServiceInterface):
    def __init__(
        self,
        conversation: ConversationServiceInterface,
        attachment_service: AttachmentServiceInterface,
        settings_service: SettingsServiceInterface,
        speech_recognizer: SpeechRecognizerInterface,
        logger: logging.Logger,
        console: Console | None = None,
    ) -> None:
        self.conversation = conversation
        self.attachment_service = attachment_service
        self.settings_service = settings_service
        self.speech_recognizer = speech_recognizer
        self.logger = logger
        self.console = console or Console(theme=GEMDESK_THEME)
        self._draft = ""
        self._running = False
        self._speaking: set[asyncio.Task] = set()
        self._commands: dict[str, Callable[[str], Awaitable[None]]] = {
            "/help": self._cmd_help,
            "/new": self._cmd_new,
            "/history": self._cmd_history,
            "/clear-history": self._cmd_clear_history,
            "/search": self._cmd_search,
            "/reply": self._cmd_reply,
            "/attach": self._cmd_attach,
            "/remove": self._cmd_remove,
            "/clear": self._cmd_clear,
            "/cancel": self._cmd_cancel,
            "/speak": self._cmd_speak,
            "/stop": self._cmd_stop,
            "/voice": self._cmd_voice,
            "/speed": self._cmd_speed,
            "/autospeak": self._cmd_autospeak,
            "/listen": self._cmd_listen,
            "/quit": self._cmd_quit,
        }

    async def start(self) -> None:
        self.logger.info("Starting console chat")
        await self.conversation.start()
        self._print_header()
        self._print_messages(self.conversation.messages)

        self._running = True
        try:
            while self._running:
                self._print_status()
                try:
                    line = await asyncio.to_thread(self.console.input, "[gd.user]> [/]")
                except (EOFError, KeyboardInterrupt):
                    break
                await self.handle_line(line)
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        if self.speech_recognizer.is_listening:
            try:
                await self.speech_recognizer.stop()
            except SpeechRecognitionError as exc:
                self.logger.warning("Discarding voice input on exit: %s", exc)
        for task in list(self._speaking):
            task.cancel()
        await self.conversation.aclose()
        self.logger.info("Console chat stopped")

    async def handle_line(self, line: str) -> None:
        stripped = line.strip()
        if not stripped:
            return

        command, _, argument = stripped.partition(" ")
        handler = self._commands.get(command.lower())
        if handler is not None:
            await handler(argument.strip())
            return

        if stripped.startswith("data:"):
            if self._handle_paste(stripped):
                return
        else:
            dropped = parse_dropped_paths(stripped)
            if dropped:
                self._submit([LocalFile(path) for path in dropped])
                return

        await self._send(stripped)

    async def _send(self, text: str) -> None:
        if self._draft:
            spacer = "" if self._draft.endswith(" ") else " "
            text = f"{self._draft}{spacer}{text}"
            self._draft = ""

        try:
            with self.console.status("Thinking...", spinner="dots"):
                reply = await self.conversation.send_message(text)
        except MessageNotReadyError as exc:
            self._notice(str(exc))
            return

        self._print_message(reply, len(self.conversation.messages))

    def _handle_paste(self, data_url: str) -> bool:
        try:
            pasted = InMemoryFile.from_data_url(data_url, name="pasted-image")
        except ValueError:
            return False
        return self.attachment_service.submit_paste([pasted])

    def _submit(self, files) -> None:
        try:
            self.attachment_service.submit_files(files)
        except AttachmentValidationError as exc:
            self._notice(str(exc))

    async def _cmd_help(self, argument: str) -> None:
        self.console.print(Markdown(HELP_TEXT))

    async def _cmd_new(self, argument: str) -> None:
        await self.conversation.new_chat()
        self._print_messages(self.conversation.messages)

    async def _cmd_history(self, argument: str) -> None:
        self._print_messages(self.conversation.messages)

    async def _cmd_clear_history(self, argument: str) -> None:
        answer = await asyncio.to_thread(
            self.console.input, "Clear your chat history? [y/N] "
        )
        if answer.strip().lower() not in {"y", "yes"}:
            return
        await self.conversation.clear_history()
        self._print_messages(self.conversation.messages)

    async def _cmd_search(self, argument: str) -> None:
        matches = self.conversation.search(argument)
        if not matches:
            self._notice(f"No messages match {argument!r}")
            return
        self._print_messages(matches)

    async def _cmd_reply(self, argument: str) -> None:
        message = self._message_at(argument)
        if message is None:
            return
        self.conversation.set_quote(message["id"])
        who = "You" if message["role"] == "user" else "Gemini"
        self._notice(f"Replying to {who}: {message['content'][:80]}")

    async def _cmd_attach(self, argument: str) -> None:
        try:
            tokens = shlex.split(argument)
        except ValueError as exc:
            self._notice(f"Could not parse paths: {exc}")
            return
        if not tokens:
            self._notice("Usage: /attach <path> [<path> ...]")
            return

        missing = [token for token in tokens if not Path(token).expanduser().is_file()]
        if missing:
            self._notice(f"File not found: {', '.join(missing)}")
            return
        self._submit([LocalFile(Path(token).expanduser()) for token in tokens])

    async def _cmd_remove(self, argument: str) -> None:
        try:
            removed = self.attachment_service.remove_attachment(int(argument) - 1)
        except (ValueError, IndexError):
            self._notice(f"No attachment {argument!r}")
            return
        self._notice(f"Removed {removed.get('file_name') or 'image'}")

    async def _cmd_clear(self, argument: str) -> None:
        self.attachment_service.clear_attachments()

    async def _cmd_cancel(self, argument: str) -> None:
        self.attachment_service.cancel_all()

    async def _cmd_speak(self, argument: str) -> None:
        if argument:
            message = self._message_at(argument)
        else:
            message = next(
                (m for m in reversed(self.conversation.messages) if m["role"] == "model"),
                None,
            )
        if message is None:
            return

        task = asyncio.create_task(self.conversation.speak(message["id"]))
        self._speaking.add(task)
        task.add_done_callback(self._on_speak_done)

    def _on_speak_done(self, task: asyncio.Task) -> None:
        self._speaking.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if isinstance(exc, UnsupportedCapabilityError):
            self._notice(str(exc))
        elif isinstance(exc, (PlaybackError, AudioDecodeError)):
            self._notice("Failed to generate speech. Please check your API key.")
        elif exc is not None:
            self.logger.error("Unexpected speech failure", exc_info=exc)

    async def _cmd_stop(self, argument: str) -> None:
        self.conversation.stop_speaking()

    async def _cmd_voice(self, argument: str) -> None:
        if not argument:
            self._notice(f"Voice: {self.settings_service.get_voice().value}")
            return
        try:
            voice = self.settings_service.set_voice(argument)
        except InvalidSettingError as exc:
            self._notice(str(exc))
            return
        self._notice(f"Voice set to {voice.value}")

    async def _cmd_speed(self, argument: str) -> None:
        if not argument:
            self._notice(f"Speed: {self.settings_service.get_tts_speed():.1f}x")
            return
        try:
            speed = self.settings_service.set_tts_speed(float(argument))
        except (InvalidSettingError, ValueError) as exc:
            self._notice(str(exc))
            return
        self._notice(f"Speed set to {speed:.1f}x")

    async def _cmd_autospeak(self, argument: str) -> None:
        enabled = not self.settings_service.is_auto_speak()
        self.settings_service.set_auto_speak(enabled)
        self._notice(f"Auto-speak {'on' if enabled else 'off'}")

    async def _cmd_listen(self, argument: str) -> None:
        if not self.speech_recognizer.is_listening:
            try:
                await self.speech_recognizer.start()
            except UnsupportedCapabilityError as exc:
                self._notice(f"Voice input is not supported here. {exc}")
                return
            self._notice("Microphone active - speak now, then /listen again")
            return

        try:
            with self.console.status("Transcribing...", spinner="dots"):
                transcript = await self.speech_recognizer.stop()
        except SpeechRecognitionError as exc:
            self._notice(str(exc))
            return

        if transcript:
            spacer = " " if self._draft and not self._draft.endswith(" ") else ""
            self._draft = f"{self._draft}{spacer}{transcript}"
            self._notice(f"Heard: {transcript} (press Enter to add more and send)")

    async def _cmd_quit(self, argument: str) -> None:
        self._running = False

    def _message_at(self, argument: str) -> MessagePayload | None:
        messages = self.conversation.messages
        try:
            index = int(argument) - 1
            if index < 0:
                raise IndexError(index)
            return messages[index]
        except (ValueError, IndexError):
            self._notice(f"No message {argument!r}")
            return None

    def _print_header(self) -> None:
        self.console.print(
            Panel(
                "[gd.model]Gemini Desk[/]\n[gd.dim]Type [bold]/help[/] for commands[/]",
                border_style="#34d399",
            )
        )

    def _print_messages(self, messages: list[MessagePayload]) -> None:
        all_ids = [m["id"] for m in self.conversation.messages]
        for message in messages:
            number = all_ids.index(message["id"]) + 1 if message["id"] in all_ids else 0
            self._print_message(message, number)

    def _print_message(self, message: MessagePayload, number: int) -> None:
        is_user = message["role"] == "user"
        style = "gd.user" if is_user else "gd.model"
        name = "You" if is_user else "Gemini"
        header = f"[{style}]{number}. {name}[/] [gd.dim]{format_timestamp(message['timestamp'])}[/]"
        if self.conversation.playback_state(message["id"]) is not PlaybackState.IDLE:
            header += " [gd.playing](reading aloud)[/]"
        self.console.print(header)

        for idx, attachment in enumerate(message["attachments"], start=1):
            label = attachment.get("file_name") or f"Image {idx}"
            size = format_file_size(attachment.get("size_bytes"))
            self.console.print(f"  [gd.dim]📎 {label} {size}[/]")

        self.console.print(Markdown(message["content"]))
        self.console.print()

    def _print_status(self) -> None:
        count = len(self.attachment_service.attachments)
        if self.attachment_service.is_processing:
            self.console.print("[gd.dim]Processing images... (/cancel to stop)[/]")
        elif count:
            self.console.print(
                f"[gd.dim]{count} File{'s' if count > 1 else ''} attached[/]"
            )
        quoted = self.conversation.quoted_message
        if quoted is not None:
            self.console.print(f"[gd.dim]Replying to: {quoted['content'][:60]}[/]")

    def _notice(self, text: str) -> None:
        self.console.print(f"[gd.notice]{text}[/]")
