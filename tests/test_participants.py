"""Participant registry tests"""
import pytest

from services.participants import format_participant_code, format_survey_code


def test_code_formats():
    assert format_participant_code(7) == "P000007"
    assert format_survey_code("CF", 12) == "CF-0012"


@pytest.mark.asyncio
async def test_participant_created_once(participants):
    first = await participants.get_or_create_participant("1001")
    again = await participants.get_or_create_participant("1001")

    assert first.id == again.id
    assert first.participant_code == format_participant_code(first.id)


@pytest.mark.asyncio
async def test_survey_codes_are_sequential(catalog, participants, mixed_definition):
    await catalog.create_survey(mixed_definition)

    first, created_first = await participants.ensure_participation("1001", "mixed_001")
    second, created_second = await participants.ensure_participation("1002", "mixed_001")
    repeat, created_repeat = await participants.ensure_participation("1001", "mixed_001")

    assert (created_first, created_second, created_repeat) == (True, True, False)
    assert first.participant_survey_code == "CF-0001"
    assert second.participant_survey_code == "CF-0002"
    assert repeat.id == first.id


@pytest.mark.asyncio
async def test_find_participation(catalog, participants, mixed_definition):
    await catalog.create_survey(mixed_definition)
    assert await participants.find_participation("1001", "mixed_001") is None

    participation, _ = await participants.ensure_participation("1001", "mixed_001")

    found = await participants.find_participation("1001", "mixed_001")
    assert found.id == participation.id


@pytest.mark.asyncio
async def test_complete_stores_duration(catalog, participants, mixed_definition):
    """Completion sets the timestamp and a non-negative duration"""
    await catalog.create_survey(mixed_definition)
    participation, _ = await participants.ensure_participation("1001", "mixed_001")

    completed = await participants.complete(participation.id)

    assert completed.is_completed
    assert completed.completed_at is not None
    assert completed.completion_duration_seconds >= 0

    # Completing twice keeps the first result
    again = await participants.complete(participation.id)
    assert again.completed_at == completed.completed_at


@pytest.mark.asyncio
async def test_complete_unknown_participation(participants):
    with pytest.raises(LookupError):
        await participants.complete(999)


@pytest.mark.asyncio
async def test_participation_for_unknown_survey(participants):
    with pytest.raises(LookupError):
        await participants.ensure_participation("1001", "missing")
