"""
Audio Bridge Tests

Download -> temp file -> transcription, and text -> speech.
The temporary file must be gone after every outcome.
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from eva.credentials import CredentialCache
from eva.errors import AuthError, MediaFetchError, TranscriptionError, UpstreamApiError
from services.audio import AudioBridge, scoped_temp_file


@pytest.fixture
def eva_client():
    client = MagicMock()
    client.login = AsyncMock(return_value="tok")
    client.speech_from_audio = AsyncMock(return_value=" bom dia ")
    client.speech_from_text = AsyncMock(return_value=b"mp3")
    return client


@pytest.fixture
def media_client():
    client = MagicMock()
    client.download = AsyncMock(return_value=b"ogg-bytes")
    return client


@pytest.fixture
def bridge(eva_client, media_client, tmp_path):
    return AudioBridge(eva_client, CredentialCache(eva_client), media_client, tmp_dir=str(tmp_path))


class TestScopedTempFile:
    def test_file_exists_only_inside_block(self, tmp_path):
        with scoped_temp_file(b"data", directory=str(tmp_path)) as path:
            assert path.read_bytes() == b"data"
            assert path.suffix == ".mp3"
        assert not path.exists()

    def test_file_removed_on_exception(self, tmp_path):
        with pytest.raises(RuntimeError):
            with scoped_temp_file(b"data", directory=str(tmp_path)) as path:
                raise RuntimeError("boom")
        assert not path.exists()
        assert list(tmp_path.iterdir()) == []


class TestFetchAndTranscribe:
    """Speech-to-text path."""

    @pytest.mark.asyncio
    async def test_transcribes_downloaded_audio(self, bridge, eva_client, media_client, bot_config, tmp_path):
        seen = {}

        async def speech_from_audio(auth, token, audio_path, language):
            seen["path"] = Path(audio_path)
            seen["bytes"] = Path(audio_path).read_bytes()
            seen["language"] = language
            return " bom dia "

        eva_client.speech_from_audio = AsyncMock(side_effect=speech_from_audio)

        text = await bridge.fetch_and_transcribe("MEDIA_ID", bot_config, message_id="wamid.1")

        assert text == "bom dia"
        media_client.download.assert_awaited_once_with("MEDIA_ID", bot_config.whatsapp)
        assert seen["bytes"] == b"ogg-bytes"
        assert seen["language"] == "pt_BR"
        assert not seen["path"].exists()
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_empty_transcription_returns_none(self, bridge, eva_client, bot_config):
        eva_client.speech_from_audio = AsyncMock(return_value="   ")

        assert await bridge.fetch_and_transcribe("MEDIA_ID", bot_config) is None

    @pytest.mark.asyncio
    async def test_missing_text_returns_none(self, bridge, eva_client, bot_config):
        eva_client.speech_from_audio = AsyncMock(return_value=None)

        assert await bridge.fetch_and_transcribe("MEDIA_ID", bot_config) is None

    @pytest.mark.asyncio
    async def test_upstream_failure_is_transcription_error(self, bridge, eva_client, bot_config, tmp_path):
        """Temp file is removed even when transcription fails."""
        eva_client.speech_from_audio = AsyncMock(side_effect=UpstreamApiError("boom", status_code=500))

        with pytest.raises(TranscriptionError):
            await bridge.fetch_and_transcribe("MEDIA_ID", bot_config)
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_media_failure_propagates(self, bridge, media_client, eva_client, bot_config):
        media_client.download = AsyncMock(side_effect=MediaFetchError("404"))

        with pytest.raises(MediaFetchError):
            await bridge.fetch_and_transcribe("MEDIA_ID", bot_config)
        eva_client.speech_from_audio.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_token_retried_once(self, bridge, eva_client, bot_config, tmp_path):
        eva_client.speech_from_audio = AsyncMock(side_effect=[AuthError("expired"), "oi"])

        assert await bridge.fetch_and_transcribe("MEDIA_ID", bot_config) == "oi"
        assert eva_client.login.await_count == 2
        assert list(tmp_path.iterdir()) == []


class TestSynthesize:
    @pytest.mark.asyncio
    async def test_synthesize_returns_audio(self, bridge, eva_client, bot_config):
        audio = await bridge.synthesize("Olá!", bot_config)

        assert audio == b"mp3"
        eva_client.speech_from_text.assert_awaited_once_with(bot_config.auth, "tok", "Olá!", "pt")
