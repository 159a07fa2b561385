"""
Decoding and resampling of synthesized speech.

Gemini TTS answers with headerless 16-bit little-endian PCM. The helpers here
turn those bytes into float samples and apply a playback-rate multiplier by
linear resampling, so pitch follows speed the same way a browser
``AudioBufferSourceNode.playbackRate`` does.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

OUTPUT_SAMPLE_RATE = 24000
_PCM16_SCALE = 32768.0


class AudioDecodeError(Exception):
    """Raised when synthesized audio bytes cannot be turned into samples."""


@dataclass(frozen=True)
class AudioBuffer:
    """Decoded audio as float32 samples shaped ``(frames, channels)``."""

    samples: np.ndarray
    sample_rate: int

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        return self.frames / float(self.sample_rate)

    def to_pcm16(self) -> bytes:
        """Interleaved 16-bit little-endian bytes, ready for an output stream."""
        clipped = np.clip(self.samples, -1.0, 32767.0 / _PCM16_SCALE)
        return (clipped * _PCM16_SCALE).astype("<i2").tobytes()


def decode_pcm16(
    data: bytes, sample_rate: int = OUTPUT_SAMPLE_RATE, channels: int = 1
) -> AudioBuffer:
    """Decode raw PCM16 bytes into an :class:`AudioBuffer`."""
    if channels < 1:
        raise AudioDecodeError(f"Invalid channel count: {channels}")
    if not data:
        raise AudioDecodeError("Audio payload is empty")

    frame_width = 2 * channels
    if len(data) % frame_width:
        raise AudioDecodeError(
            f"Audio payload of {len(data)} bytes is not a whole number of frames"
        )

    pcm = np.frombuffer(data, dtype="<i2")
    samples = (pcm.astype(np.float32) / _PCM16_SCALE).reshape(-1, channels)
    return AudioBuffer(samples=samples, sample_rate=sample_rate)


def apply_playback_rate(buffer: AudioBuffer, rate: float) -> AudioBuffer:
    """
    Return a buffer that lasts ``duration / rate`` at the same sample rate.

    Rate 1.0 returns the input untouched.
    """
    if rate <= 0:
        raise ValueError(f"Playback rate must be positive, got {rate}")
    if rate == 1.0 or buffer.frames < 2:
        return buffer

    positions = np.arange(0, buffer.frames - 1, rate, dtype=np.float64)
    source = np.arange(buffer.frames, dtype=np.float64)
    resampled = np.column_stack(
        [
            np.interp(positions, source, buffer.samples[:, channel])
            for channel in range(buffer.channels)
        ]
    ).astype(np.float32)
    return AudioBuffer(samples=resampled, sample_rate=buffer.sample_rate)
