"""Voice resolution tests"""
import pytest

from services.voice import (
    AudioTooLong,
    TranscriptionFailed,
    TranscriptionRateLimited,
    TranscriptionTimeout,
    TranscriptionUnavailable,
    VoiceResolver,
    same_language,
)

AUDIO = b"OggS voice"


@pytest.mark.asyncio
async def test_english_is_not_translated(resolver, speech):
    result = await resolver.resolve(AUDIO, "Rate the roads")

    assert result.transcript == "The roads are much better now"
    assert result.translation == result.transcript
    assert not result.was_translated
    assert result.summary == "Roads have improved"
    assert result.duration == 4.0
    assert speech.calls == ["transcribe", "summarize"]


@pytest.mark.asyncio
async def test_other_language_is_translated(resolver, speech):
    speech.text = "Barabara ni nzuri sasa"
    speech.language = "swahili"
    speech.translation = "The roads are good now"

    result = await resolver.resolve(AUDIO, "Rate the roads")

    assert result.was_translated
    assert result.translation == "The roads are good now"
    assert result.language == "swahili"
    assert speech.calls == ["transcribe", "translate", "summarize"]


@pytest.mark.asyncio
async def test_translation_failure_keeps_transcript(resolver, speech):
    speech.language = "ru"
    speech.translate_error = RuntimeError("boom")

    result = await resolver.resolve(AUDIO, "Rate the roads")

    assert result.translation == result.transcript


@pytest.mark.asyncio
async def test_summary_failure_uses_answer_text(resolver, speech):
    speech.summarize_error = RuntimeError("boom")

    result = await resolver.resolve(AUDIO, "Rate the roads")

    assert result.summary == result.transcript


@pytest.mark.asyncio
async def test_timeout_is_typed(speech):
    speech.delay = 0.5
    resolver = VoiceResolver(speech, timeout=0.05, max_bytes=1024, max_duration=60, target_language="en")

    with pytest.raises(TranscriptionTimeout):
        await resolver.resolve(AUDIO, "Rate the roads")


@pytest.mark.asyncio
async def test_unconfigured_service(resolver, speech):
    speech.is_configured = False

    assert not resolver.is_available
    with pytest.raises(TranscriptionUnavailable):
        await resolver.resolve(AUDIO, "Rate the roads")
    assert speech.calls == []


@pytest.mark.asyncio
async def test_typed_errors_pass_through(resolver, speech):
    speech.transcribe_error = TranscriptionRateLimited("slow down")

    with pytest.raises(TranscriptionRateLimited):
        await resolver.resolve(AUDIO, "Rate the roads")


@pytest.mark.asyncio
async def test_unexpected_errors_become_failures(resolver, speech):
    speech.transcribe_error = ConnectionError("reset")

    with pytest.raises(TranscriptionFailed):
        await resolver.resolve(AUDIO, "Rate the roads")


@pytest.mark.asyncio
async def test_empty_transcript_fails(resolver, speech):
    speech.text = "   "

    with pytest.raises(TranscriptionFailed):
        await resolver.resolve(AUDIO, "Rate the roads")


@pytest.mark.asyncio
async def test_limits(resolver):
    with pytest.raises(AudioTooLong):
        await resolver.resolve(b"x" * 2048, "Rate the roads")
    with pytest.raises(AudioTooLong):
        resolver.check_limits(duration=61)
    resolver.check_limits(size=1024, duration=60)


def test_error_message_keys():
    assert AudioTooLong.message_key == "voice_too_long"
    assert TranscriptionUnavailable.message_key == "voice_unavailable"
    assert TranscriptionTimeout.message_key == "voice_timeout"
    assert TranscriptionRateLimited.message_key == "voice_rate_limited"
    assert TranscriptionFailed.message_key == "voice_failed"


@pytest.mark.parametrize("detected, expected", [
    ("en", True),
    ("English", True),
    ("", True),
    (None, True),
    ("swahili", False),
    ("ru", False),
])
def test_same_language(detected, expected):
    assert same_language(detected, "en") is expected
