import pytest

from meeting_wizard.services.retry import RateLimitExhaustedError
from meeting_wizard.services.transcription import (
    TranscriptionProvider,
    TranscriptionProviderError,
    TranscriptionRateLimitError,
)
from meeting_wizard.services.transcription_service import TranscriptionService


class ScriptedTranscriber(TranscriptionProvider):
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def transcribe(self, audio_path, language):
        self.calls.append((audio_path, language))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def service(store, settings):
    return TranscriptionService(store, settings, max_retries=3, base_delay_ms=1)


@pytest.fixture
def meeting_with_audio(store):
    meeting_id = store.create_meeting()["meetingId"]
    info = store.save_audio(meeting_id, b"ID3data", "audio/mpeg", "mote.mp3")
    return meeting_id, info


def use_provider(service, provider, language="sv"):
    service._get_provider = lambda: (provider, language)


@pytest.mark.asyncio
async def test_rate_limited_once_then_stored(service, store, meeting_with_audio):
    meeting_id, info = meeting_with_audio
    provider = ScriptedTranscriber([TranscriptionRateLimitError("Rate limit nådd"), "hej"])
    use_provider(service, provider)

    transcript = await service.transcribe(meeting_id, info["filename"])

    assert transcript == "hej"
    assert store.load_transcript(meeting_id) == "hej"
    assert len(provider.calls) == 2
    assert provider.calls[0] == provider.calls[1]
    assert provider.calls[0][1] == "sv"
    assert store.owns_path(meeting_id, provider.calls[0][0])


@pytest.mark.asyncio
async def test_language_override_and_append(service, store, meeting_with_audio):
    meeting_id, info = meeting_with_audio
    store.save_transcript(meeting_id, "första")
    provider = ScriptedTranscriber(["andra"])
    use_provider(service, provider)

    transcript = await service.transcribe(
        meeting_id, info["filename"], language="en", append=True, filename="mote.mp3"
    )

    assert provider.calls[0][1] == "en"
    assert transcript == "första\n\n--- Transkribering från: mote.mp3 ---\n\nandra"


@pytest.mark.asyncio
async def test_rate_limited_every_attempt(service, store, meeting_with_audio):
    meeting_id, info = meeting_with_audio
    provider = ScriptedTranscriber([TranscriptionRateLimitError("Rate limit nådd")] * 3)
    use_provider(service, provider)

    with pytest.raises(RateLimitExhaustedError) as excinfo:
        await service.transcribe(meeting_id, info["filename"])

    assert excinfo.value.attempts == 3
    assert len(provider.calls) == 3
    assert store.load_transcript(meeting_id) is None


@pytest.mark.asyncio
async def test_provider_error_is_not_retried(service, meeting_with_audio):
    meeting_id, info = meeting_with_audio
    provider = ScriptedTranscriber([TranscriptionProviderError("API error", status_code=500)])
    use_provider(service, provider)

    with pytest.raises(TranscriptionProviderError):
        await service.transcribe(meeting_id, info["filename"])

    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_audio_outside_meeting_is_rejected(service, store, tmp_path, meeting_with_audio):
    meeting_id, _ = meeting_with_audio
    outside = tmp_path / "annan.mp3"
    outside.write_bytes(b"ID3")
    provider = ScriptedTranscriber(["aldrig"])
    use_provider(service, provider)

    with pytest.raises(TranscriptionProviderError) as excinfo:
        await service.transcribe(meeting_id, str(outside))

    assert excinfo.value.status_code == 404
    assert provider.calls == []
