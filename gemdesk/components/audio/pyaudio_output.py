"""
Speaker output through PortAudio.

Frames are written from a worker thread in small chunks so a stop request
takes effect within one chunk.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

from gemdesk.components.audio.audio_output_interface import (
    AudioOutputInterface,
    OutputState,
    PlaybackHandleInterface,
    UnsupportedCapabilityError,
)
from gemdesk.utils.audio import AudioBuffer, apply_playback_rate

_CHUNK_FRAMES = 1024


class PyAudioPlayback(PlaybackHandleInterface):
    def __init__(self, future: asyncio.Future[bool], stop_event: threading.Event):
        self._future = future
        self._stop_event = stop_event

    async def wait(self) -> bool:
        return await self._future

    def stop(self) -> None:
        self._stop_event.set()


class PyAudioOutput(AudioOutputInterface):
    def __init__(self, sample_rate: int, logger: logging.Logger) -> None:
        try:
            import pyaudio
        except ImportError as exc:
            raise UnsupportedCapabilityError(
                "Audio output", "install the 'audio' extra (pyaudio)"
            ) from exc

        self.sample_rate = sample_rate
        self.logger = logger
        self._pyaudio = pyaudio
        self._pa: Any = pyaudio.PyAudio()

        if self._pa.get_device_count() == 0:
            self._pa.terminate()
            raise UnsupportedCapabilityError("Audio output", "no audio device found")

        self._state: OutputState = "running"
        self._writers: dict[asyncio.Future[bool], threading.Event] = {}
        self.logger.info("Audio output opened at %s Hz", sample_rate)

    @property
    def state(self) -> OutputState:
        return self._state

    async def resume(self) -> None:
        if self._state == "closed":
            raise RuntimeError("Audio output is closed")
        self._state = "running"

    def play(self, buffer: AudioBuffer, rate: float = 1.0) -> PlaybackHandleInterface:
        if self._state != "running":
            raise RuntimeError(f"Audio output is {self._state}")

        stretched = apply_playback_rate(buffer, rate)
        stop_event = threading.Event()
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(
            None,
            self._write_frames,
            stretched.to_pcm16(),
            stretched.channels,
            stop_event,
        )
        self._writers[future] = stop_event
        future.add_done_callback(lambda done: self._writers.pop(done, None))
        return PyAudioPlayback(future, stop_event)

    def _write_frames(
        self, pcm: bytes, channels: int, stop_event: threading.Event
    ) -> bool:
        stream = self._pa.open(
            format=self._pyaudio.paInt16,
            channels=channels,
            rate=self.sample_rate,
            output=True,
        )
        chunk_bytes = _CHUNK_FRAMES * channels * 2
        try:
            for offset in range(0, len(pcm), chunk_bytes):
                if stop_event.is_set():
                    return False
                stream.write(pcm[offset : offset + chunk_bytes])
            return not stop_event.is_set()
        finally:
            stream.stop_stream()
            stream.close()

    async def close(self) -> None:
        if self._state == "closed":
            return
        self._state = "closed"
        # Writers must leave their streams before PortAudio is terminated.
        writers = list(self._writers.items())
        for _, stop_event in writers:
            stop_event.set()
        if writers:
            await asyncio.gather(
                *(future for future, _ in writers), return_exceptions=True
            )
        await asyncio.to_thread(self._pa.terminate)
        self.logger.info("Audio output closed")
