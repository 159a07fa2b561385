"""Voice input: capture the microphone while listening, transcribe on stop."""

from __future__ import annotations

import asyncio
import io
import logging
import threading
import wave
from typing import Any

from google import genai
from google.genai import types

from gemdesk.components.audio.audio_output_interface import UnsupportedCapabilityError
from gemdesk.services.SpeechRecognizerService.speech_recognizer_interface import (
    SpeechRecognizerInterface,
)

CAPTURE_SAMPLE_RATE = 16000
_CAPTURE_CHUNK_FRAMES = 1024
MAX_READ_ERRORS = 5
_READ_RETRY_DELAY = 0.05

TRANSCRIBE_PROMPT = (
    "Transcribe the speech in this recording verbatim. "
    "Reply with the transcript only, without commentary."
)


class SpeechRecognitionError(Exception):
    """Raised when captured speech cannot be transcribed."""


def pcm16_to_wav(pcm: bytes, sample_rate: int, channels: int = 1) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


class GeminiSpeechRecognizer(SpeechRecognizerInterface):
    def __init__(
        self,
        client: genai.Client,
        model_name: str,
        logger: logging.Logger,
        sample_rate: int = CAPTURE_SAMPLE_RATE,
    ) -> None:
        self.client = client
        self.model_name = model_name
        self.logger = logger
        self.sample_rate = sample_rate
        self._frames: list[bytes] = []
        self._stop_event = threading.Event()
        self._capture: asyncio.Future | None = None

    @property
    def is_listening(self) -> bool:
        return self._capture is not None

    async def start(self) -> None:
        if self._capture is not None:
            return

        try:
            import pyaudio
        except ImportError as exc:
            raise UnsupportedCapabilityError(
                "Voice input", "install the 'audio' extra (pyaudio)"
            ) from exc

        pa: Any = pyaudio.PyAudio()
        try:
            stream = pa.open(
                rate=self.sample_rate,
                channels=1,
                format=pyaudio.paInt16,
                input=True,
                frames_per_buffer=_CAPTURE_CHUNK_FRAMES,
            )
        except OSError as exc:
            pa.terminate()
            raise UnsupportedCapabilityError("Voice input", str(exc)) from exc

        self._frames = []
        self._stop_event.clear()
        self._capture = asyncio.get_running_loop().run_in_executor(
            None, self._record, pa, stream
        )
        self.logger.info("Listening for voice input")

    def _record(self, pa: Any, stream: Any) -> None:
        failures = 0
        try:
            while not self._stop_event.is_set():
                try:
                    data = stream.read(_CAPTURE_CHUNK_FRAMES, exception_on_overflow=False)
                except OSError as exc:
                    failures += 1
                    if failures >= MAX_READ_ERRORS:
                        self.logger.error(
                            "Giving up on voice capture after %d read errors: %s",
                            failures,
                            exc,
                        )
                        break
                    self.logger.warning("Audio read error: %s", exc)
                    self._stop_event.wait(_READ_RETRY_DELAY)
                    continue
                failures = 0
                self._frames.append(data)
        finally:
            stream.stop_stream()
            stream.close()
            pa.terminate()

    async def stop(self) -> str:
        if self._capture is None:
            return ""

        self._stop_event.set()
        capture, self._capture = self._capture, None
        await capture

        pcm = b"".join(self._frames)
        self._frames = []
        if not pcm:
            return ""

        self.logger.info("Transcribing %d bytes of captured audio", len(pcm))
        return await self.transcribe(pcm16_to_wav(pcm, self.sample_rate))

    async def transcribe(self, wav_bytes: bytes) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Content(
                        role="user",
                        parts=[
                            types.Part.from_text(text=TRANSCRIBE_PROMPT),
                            types.Part.from_bytes(data=wav_bytes, mime_type="audio/wav"),
                        ],
                    )
                ],
            )
        except Exception as exc:
            self.logger.error("Transcription failed: %s", exc, exc_info=True)
            raise SpeechRecognitionError(f"Transcription failed: {exc}") from exc

        return (getattr(response, "text", None) or "").strip()
