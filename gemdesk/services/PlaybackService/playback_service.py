"""
Single-flight speech playback.

At most one :class:`PlaybackSession` exists at a time. Every await inside
``speak`` is followed by a check that its session is still the active one;
a result that arrives for a session that was stopped or superseded is
dropped instead of played.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from gemdesk.components.audio.audio_output_interface import (
    AudioOutputInterface,
    PlaybackHandleInterface,
    UnsupportedCapabilityError,
)
from gemdesk.entities.message import PlaybackState
from gemdesk.services.PlaybackService.playback_service_interface import (
    PlaybackOutcome,
    PlaybackServiceInterface,
)
from gemdesk.services.SettingsService.settings_service_interface import (
    SettingsServiceInterface,
)
from gemdesk.services.SpeechService.speech_service_interface import (
    SpeechServiceError,
    SpeechServiceInterface,
)
from gemdesk.utils.audio import (
    OUTPUT_SAMPLE_RATE,
    AudioBuffer,
    AudioDecodeError,
    decode_pcm16,
)
from gemdesk.utils.encoding import decode_base64


class PlaybackError(Exception):
    """Base error for the speech playback pipeline."""


class SynthesisError(PlaybackError):
    """The synthesis collaborator failed or returned no audio."""


@dataclass
class PlaybackSession:
    message_id: str
    rate: float
    state: PlaybackState = PlaybackState.REQUESTING
    buffer: AudioBuffer | None = None
    handle: PlaybackHandleInterface | None = None


def decode_audio(encoded: str, sample_rate: int) -> AudioBuffer:
    try:
        data = decode_base64(encoded)
    except ValueError as exc:
        raise AudioDecodeError(str(exc)) from exc
    return decode_pcm16(data, sample_rate=sample_rate)


class PlaybackService(PlaybackServiceInterface):
    def __init__(
        self,
        speech_service: SpeechServiceInterface,
        settings_service: SettingsServiceInterface,
        audio_output_factory: Callable[[int], AudioOutputInterface],
        logger: logging.Logger,
        sample_rate: int = OUTPUT_SAMPLE_RATE,
        on_state_change: Callable[[str, PlaybackState], None] | None = None,
    ) -> None:
        self.speech_service = speech_service
        self.settings_service = settings_service
        self.audio_output_factory = audio_output_factory
        self.logger = logger
        self.sample_rate = sample_rate
        self.on_state_change = on_state_change
        self._output: AudioOutputInterface | None = None
        self._session: PlaybackSession | None = None

    @property
    def active_message_id(self) -> str | None:
        return self._session.message_id if self._session else None

    @property
    def session(self) -> PlaybackSession | None:
        return self._session

    def state_for(self, message_id: str) -> PlaybackState:
        if self._session is not None and self._session.message_id == message_id:
            return self._session.state
        return PlaybackState.IDLE

    async def speak(self, message_id: str, text: str) -> PlaybackOutcome:
        if self._session is not None and self._session.message_id == message_id:
            self.logger.info("Toggling off playback for message %s", message_id)
            self.stop()
            return PlaybackOutcome.STOPPED

        self.stop()

        session = PlaybackSession(
            message_id=message_id, rate=self.settings_service.get_tts_speed()
        )
        self._session = session
        self._notify(session.message_id, PlaybackState.REQUESTING)

        try:
            output = await self._ensure_output()
            if not self._is_current(session):
                return PlaybackOutcome.STOPPED

            voice = self.settings_service.get_voice()
            encoded = await self.speech_service.synthesize(text, voice)
            if not self._is_current(session):
                self.logger.debug("Discarding audio for stopped message %s", message_id)
                return PlaybackOutcome.STOPPED
            if not encoded:
                raise SynthesisError("No audio generated")

            buffer = await asyncio.to_thread(decode_audio, encoded, self.sample_rate)
            if not self._is_current(session):
                return PlaybackOutcome.STOPPED

            session.buffer = buffer
            session.handle = output.play(buffer, session.rate)
            session.state = PlaybackState.PLAYING
            self._notify(session.message_id, PlaybackState.PLAYING)
            self.logger.info(
                "Playing %.1fs of speech for message %s at %.1fx",
                buffer.duration,
                message_id,
                session.rate,
            )

            completed = await session.handle.wait()
        except asyncio.CancelledError:
            self._finish(session)
            raise
        except Exception as exc:
            stale = not self._is_current(session)
            self._finish(session)
            if stale:
                self.logger.debug("Ignoring failure of superseded session: %s", exc)
                return PlaybackOutcome.STOPPED
            error = self._as_playback_error(exc)
            if error is exc:
                raise
            raise error from exc

        if not self._is_current(session):
            return PlaybackOutcome.STOPPED

        self._finish(session)
        if completed:
            self.logger.info("Playback finished for message %s", message_id)
            return PlaybackOutcome.COMPLETED
        return PlaybackOutcome.STOPPED

    def stop(self) -> None:
        session = self._session
        if session is None:
            return
        self._session = None
        self._halt(session)
        self._notify(session.message_id, PlaybackState.IDLE)

    async def aclose(self) -> None:
        self.stop()
        if self._output is not None:
            output, self._output = self._output, None
            await output.close()

    async def _ensure_output(self) -> AudioOutputInterface:
        if self._output is None or self._output.state == "closed":
            self._output = self.audio_output_factory(self.sample_rate)
        if self._output.state == "suspended":
            await self._output.resume()
        return self._output

    def _is_current(self, session: PlaybackSession) -> bool:
        return self._session is session

    def _finish(self, session: PlaybackSession) -> None:
        if self._is_current(session):
            self.stop()

    def _halt(self, session: PlaybackSession) -> None:
        if session.handle is None:
            return
        try:
            session.handle.stop()
        except Exception as exc:
            # Stop can race natural completion.
            self.logger.debug("Ignoring halt failure: %s", exc)
        session.handle = None

    def _as_playback_error(self, exc: Exception) -> Exception:
        if isinstance(exc, (PlaybackError, AudioDecodeError, UnsupportedCapabilityError)):
            self.logger.error("Playback failed: %s", exc)
            return exc
        if isinstance(exc, SpeechServiceError):
            self.logger.error("Speech synthesis failed: %s", exc)
            return SynthesisError(str(exc))
        self.logger.error("Unexpected playback failure: %s", exc, exc_info=True)
        return PlaybackError(str(exc))

    def _notify(self, message_id: str, state: PlaybackState) -> None:
        if self.on_state_change is not None:
            self.on_state_change(message_id, state)
