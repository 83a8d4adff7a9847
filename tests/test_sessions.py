"""Session store tests"""
import asyncio
from datetime import timedelta

import pytest

from models import ChatSession, Stage, utcnow
from services.sessions import (
    InvalidTransitionError,
    PendingAnswer,
    PendingVoice,
    SessionError,
    SessionNotFoundError,
    pending_from_dict,
    pending_to_dict,
)
from services.voice import VoiceResolution

PENDING = PendingAnswer(question_id=1, answer="Agree", question_type="curated", question_text="Do you like it?")
VOICE = VoiceResolution("Ndiyo", "Yes", "They agree", "swahili", 2.0)


@pytest.fixture
async def participation(catalog, participants, curated_definition):
    await catalog.create_survey(curated_definition)
    participation, _ = await participants.ensure_participation("1001", "agree_001")
    return participation


@pytest.fixture
async def state(sessions, participation):
    return await sessions.get_or_create("1001", "agree_001", participation.participant_id, "QC-0001")


@pytest.mark.asyncio
async def test_new_session_starts_initial(state):
    assert state.stage == Stage.INITIAL
    assert state.current_question == 0
    assert state.participant_code == "QC-0001"
    assert state.pending is None


@pytest.mark.asyncio
async def test_get_or_create_returns_existing(sessions, state, participation):
    again = await sessions.get_or_create("1001", "agree_001", participation.participant_id)

    assert again.id == state.id


@pytest.mark.asyncio
async def test_concurrent_get_or_create_makes_one_session(sessions, session_maker, participation):
    """Duplicate deliveries racing on one pair end up with a single row"""
    results = await asyncio.gather(*[
        sessions.get_or_create("1001", "agree_001", participation.participant_id)
        for _ in range(5)
    ])

    assert len({s.id for s in results}) == 1
    async with session_maker() as db:
        rows = (await db.execute(ChatSession.__table__.select())).all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_get_or_create_recovers_from_duplicate_insert(sessions, session_maker, monkeypatch, state, participation):
    """A session created by another process is re-read when the insert collides"""
    real_find = sessions.find
    calls = []

    async def stale_find(phone_number, survey_id):
        calls.append((phone_number, survey_id))
        if len(calls) == 1:
            return None
        return await real_find(phone_number, survey_id)

    monkeypatch.setattr(sessions, "find", stale_find)
    again = await sessions.get_or_create("1001", "agree_001", participation.participant_id)

    assert len(calls) == 2
    assert again.id == state.id
    async with session_maker() as db:
        rows = (await db.execute(ChatSession.__table__.select())).all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_update_merges_scratch_data(sessions, state):
    await sessions.update(state.id, stage=Stage.SURVEY, data={"note": "first"})
    updated = await sessions.update(state.id, stage=Stage.FOLLOWUP, pending=PENDING)

    assert updated.stage == Stage.FOLLOWUP
    assert updated.pending == PENDING
    assert updated.data["note"] == "first"
    assert updated.participant_code == "QC-0001"

    found = await sessions.find("1001", "agree_001")
    assert found.pending == PENDING


@pytest.mark.asyncio
async def test_pending_voice_round_trip(sessions, state):
    await sessions.update(state.id, stage=Stage.SURVEY)
    await sessions.update(state.id, stage=Stage.FOLLOWUP, pending=PENDING)
    await sessions.update(state.id, stage=Stage.VOICE_CONFIRMATION, pending=PendingVoice(PENDING, VOICE))

    found = await sessions.find("1001", "agree_001")
    assert found.stage == Stage.VOICE_CONFIRMATION
    assert found.pending == PendingVoice(PENDING, VOICE)


@pytest.mark.asyncio
async def test_update_without_pending_keeps_it(sessions, state):
    await sessions.update(state.id, stage=Stage.SURVEY)
    await sessions.update(state.id, stage=Stage.FOLLOWUP, pending=PENDING)

    updated = await sessions.update(state.id, data={"retries": 1})

    assert updated.pending == PENDING


@pytest.mark.asyncio
async def test_invalid_transition(sessions, state):
    with pytest.raises(InvalidTransitionError):
        await sessions.update(state.id, stage=Stage.VOICE_CONFIRMATION)

    assert (await sessions.find("1001", "agree_001")).stage == Stage.INITIAL


@pytest.mark.asyncio
async def test_question_index_never_goes_back(sessions, state):
    await sessions.update(state.id, stage=Stage.SURVEY, current_question=1)

    with pytest.raises(InvalidTransitionError):
        await sessions.update(state.id, current_question=0)
    with pytest.raises(InvalidTransitionError):
        await sessions.update(state.id, current_question=-1)


@pytest.mark.asyncio
async def test_update_missing_session(sessions):
    with pytest.raises(SessionNotFoundError):
        await sessions.update(12345, stage=Stage.SURVEY)


@pytest.mark.asyncio
async def test_delete_and_discard(sessions, state, participation):
    assert await sessions.delete(state.id)
    assert await sessions.find("1001", "agree_001") is None
    assert not await sessions.delete(state.id)

    await sessions.get_or_create("1001", "agree_001", participation.participant_id)
    assert await sessions.discard("1001", "agree_001")
    assert not await sessions.discard("1001", "agree_001")


@pytest.mark.asyncio
async def test_purge_stale(sessions, session_maker, state):
    async with session_maker() as db:
        row = await db.get(ChatSession, state.id)
        row.updated_at = utcnow() - timedelta(hours=48)
        await db.commit()

    assert await sessions.purge_stale(timedelta(hours=24)) == 1
    assert await sessions.find("1001", "agree_001") is None


def test_pending_serialization():
    assert pending_to_dict(None) is None
    assert pending_from_dict(None) is None
    assert pending_to_dict(PENDING)["kind"] == "answer"
    assert pending_from_dict(pending_to_dict(PendingVoice(PENDING, VOICE))) == PendingVoice(PENDING, VOICE)


@pytest.mark.parametrize("data", [
    {"kind": "answer", "answer": "x"},
    {"kind": "mystery"},
    {"answer": "x"},
])
def test_corrupt_pending_data(data):
    with pytest.raises(SessionError):
        pending_from_dict(data)
