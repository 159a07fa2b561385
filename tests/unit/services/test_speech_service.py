"""
Unit tests for GeminiSpeechService.

The genai client is a MagicMock; responses mimic the shape returned by
``client.aio.models.generate_content`` for the TTS model.
"""

import base64
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.genai import errors
from tenacity import wait_none

from gemdesk.entities.message import TTSVoice
from gemdesk.services.SpeechService.gemini_speech_service import (
    GeminiSpeechService,
)
from gemdesk.services.SpeechService.speech_service_interface import (
    SpeechServiceError,
)


def _audio_response(data) -> MagicMock:
    part = MagicMock()
    part.inline_data.data = data
    response = MagicMock()
    response.candidates = [MagicMock()]
    response.candidates[0].content.parts = [part]
    return response


def _server_error() -> errors.ServerError:
    return errors.ServerError(
        503, {"error": {"code": 503, "message": "unavailable", "status": "UNAVAILABLE"}}
    )


@pytest.fixture
def client() -> MagicMock:
    mock_client = MagicMock()
    mock_client.aio.models.generate_content = AsyncMock()
    return mock_client


@pytest.fixture
def speech_service(client: MagicMock, logger: logging.Logger) -> GeminiSpeechService:
    return GeminiSpeechService(
        client=client, model_name="tts-model", logger=logger, max_attempts=2
    )


@pytest.mark.unit
class TestSynthesize:
    @pytest.mark.asyncio
    async def test_returns_base64_audio(
        self, speech_service: GeminiSpeechService, client: MagicMock
    ) -> None:
        client.aio.models.generate_content.return_value = _audio_response(b"\x00\x01")

        result = await speech_service.synthesize("Hello", TTSVoice.KORE)

        assert base64.b64decode(result) == b"\x00\x01"

    @pytest.mark.asyncio
    async def test_requests_audio_with_selected_voice(
        self, speech_service: GeminiSpeechService, client: MagicMock
    ) -> None:
        client.aio.models.generate_content.return_value = _audio_response(b"\x00\x01")

        await speech_service.synthesize("Hello", TTSVoice.FENRIR)

        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "tts-model"
        config = kwargs["config"]
        assert config.response_modalities == ["AUDIO"]
        voice = config.speech_config.voice_config.prebuilt_voice_config.voice_name
        assert voice == "Fenrir"
        assert kwargs["contents"][0].parts[0].text == "Hello"

    @pytest.mark.asyncio
    async def test_string_payload_is_returned_as_is(
        self, speech_service: GeminiSpeechService, client: MagicMock
    ) -> None:
        client.aio.models.generate_content.return_value = _audio_response("AAE=")
        assert await speech_service.synthesize("Hello", TTSVoice.KORE) == "AAE="

    @pytest.mark.asyncio
    async def test_no_candidates_returns_none(
        self, speech_service: GeminiSpeechService, client: MagicMock
    ) -> None:
        response = MagicMock()
        response.candidates = []
        client.aio.models.generate_content.return_value = response

        assert await speech_service.synthesize("Hello", TTSVoice.KORE) is None

    @pytest.mark.asyncio
    async def test_no_audio_part_returns_none(
        self, speech_service: GeminiSpeechService, client: MagicMock
    ) -> None:
        client.aio.models.generate_content.return_value = _audio_response(None)
        assert await speech_service.synthesize("Hello", TTSVoice.KORE) is None

    @pytest.mark.asyncio
    async def test_client_error_is_wrapped(
        self, speech_service: GeminiSpeechService, client: MagicMock
    ) -> None:
        client.aio.models.generate_content.side_effect = ValueError("bad key")

        with pytest.raises(SpeechServiceError, match="bad key"):
            await speech_service.synthesize("Hello", TTSVoice.KORE)

        assert client.aio.models.generate_content.await_count == 1

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(
        self, speech_service: GeminiSpeechService, client: MagicMock
    ) -> None:
        client.aio.models.generate_content.side_effect = [
            _server_error(),
            _audio_response(b"\x00\x01"),
        ]

        with patch(
            "gemdesk.services.SpeechService.gemini_speech_service.wait_exponential_jitter",
            return_value=wait_none(),
        ):
            result = await speech_service.synthesize("Hello", TTSVoice.KORE)

        assert result is not None
        assert client.aio.models.generate_content.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(
        self, speech_service: GeminiSpeechService, client: MagicMock
    ) -> None:
        client.aio.models.generate_content.side_effect = _server_error()

        with patch(
            "gemdesk.services.SpeechService.gemini_speech_service.wait_exponential_jitter",
            return_value=wait_none(),
        ):
            with pytest.raises(SpeechServiceError):
                await speech_service.synthesize("Hello", TTSVoice.KORE)

        assert client.aio.models.generate_content.await_count == 2
