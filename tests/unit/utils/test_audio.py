import numpy as np
import pytest

from gemdesk.utils.audio import (
    AudioBuffer,
    AudioDecodeError,
    apply_playback_rate,
    decode_pcm16,
)


def _pcm(*values: int) -> bytes:
    return np.array(values, dtype="<i2").tobytes()


@pytest.mark.unit
class TestDecodePcm16:
    def test_scales_samples_to_unit_range(self):
        buffer = decode_pcm16(_pcm(0, 16384, -32768), sample_rate=24000)

        assert buffer.sample_rate == 24000
        assert buffer.channels == 1
        assert buffer.frames == 3
        np.testing.assert_allclose(buffer.samples[:, 0], [0.0, 0.5, -1.0])

    def test_duration(self):
        buffer = decode_pcm16(b"\x00\x00" * 24000)
        assert buffer.duration == pytest.approx(1.0)

    def test_stereo_frames(self):
        buffer = decode_pcm16(_pcm(1, 2, 3, 4), channels=2)
        assert buffer.samples.shape == (2, 2)

    def test_empty_payload(self):
        with pytest.raises(AudioDecodeError):
            decode_pcm16(b"")

    def test_partial_frame(self):
        with pytest.raises(AudioDecodeError):
            decode_pcm16(b"\x00\x01\x02")

    def test_invalid_channel_count(self):
        with pytest.raises(AudioDecodeError):
            decode_pcm16(b"\x00\x00", channels=0)

    def test_to_pcm16_restores_bytes(self):
        raw = _pcm(0, 1000, -1000, 32767, -32768)
        assert decode_pcm16(raw).to_pcm16() == raw


@pytest.mark.unit
class TestApplyPlaybackRate:
    def _buffer(self, frames: int) -> AudioBuffer:
        samples = np.linspace(-1.0, 1.0, frames, dtype=np.float32).reshape(-1, 1)
        return AudioBuffer(samples=samples, sample_rate=24000)

    def test_unit_rate_returns_same_buffer(self):
        buffer = self._buffer(100)
        assert apply_playback_rate(buffer, 1.0) is buffer

    def test_double_speed_halves_length(self):
        stretched = apply_playback_rate(self._buffer(1000), 2.0)
        assert stretched.frames == 500
        assert stretched.sample_rate == 24000

    def test_half_speed_doubles_length(self):
        stretched = apply_playback_rate(self._buffer(1000), 0.5)
        assert stretched.frames == 1998

    def test_interpolates_between_samples(self):
        buffer = AudioBuffer(
            samples=np.array([[0.0], [1.0]], dtype=np.float32), sample_rate=24000
        )
        stretched = apply_playback_rate(buffer, 0.5)
        np.testing.assert_allclose(stretched.samples[:, 0], [0.0, 0.5])

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            apply_playback_rate(self._buffer(10), 0)
