"""Shared fixtures: a throwaway SQLite database and fake collaborators"""
import asyncio
import copy

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from models.database import Base
from services.catalog import SurveyCatalog
from services.engine import ConversationEngine
from services.notifier import Notifier
from services.participants import ParticipantRegistry
from services.responses import ResponseStore
from services.sessions import SessionStore
from services.transport import InboundMessage
from services.voice import Transcription, VoiceResolver


class FakeTransport:
    """Records outgoing texts instead of sending them"""

    def __init__(self):
        self.sent = []
        self.audio = b"OggS fake voice"
        self.download_error = None
        self.fail_on = set()

    async def send_text(self, recipient, text):
        if text in self.fail_on:
            raise ConnectionError("send failed")
        self.sent.append((recipient, text))

    async def download_attachment(self, message):
        if self.download_error:
            raise self.download_error
        return self.audio

    def texts(self, recipient=None):
        return [text for to, text in self.sent if recipient is None or to == recipient]

    def clear(self):
        self.sent.clear()


class FakeSpeech:
    """Configurable stand-in for the speech service"""

    def __init__(self):
        self.is_configured = True
        self.text = "The roads are much better now"
        self.language = "english"
        self.duration = 4.0
        self.translation = "translated text"
        self.summary = "Roads have improved"
        self.delay = 0
        self.transcribe_error = None
        self.translate_error = None
        self.summarize_error = None
        self.calls = []

    async def transcribe(self, audio):
        self.calls.append("transcribe")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.transcribe_error:
            raise self.transcribe_error
        return Transcription(text=self.text, language=self.language, duration=self.duration)

    async def translate(self, text, from_language):
        self.calls.append("translate")
        if self.translate_error:
            raise self.translate_error
        return self.translation

    async def summarize(self, text, question_prompt, language):
        self.calls.append("summarize")
        if self.summarize_error:
            raise self.summarize_error
        return self.summary


CURATED_SURVEY = {
    "id": "agree_001",
    "title": "Quick check",
    "participant_prefix": "QC",
    "is_active": True,
    "questions": [
        {"type": "curated", "text": "Do you like the new park?", "options": ["Agree", "Disagree"]},
    ],
}

MIXED_SURVEY = {
    "id": "mixed_001",
    "title": "Community Feedback",
    "description": "Help us improve the neighbourhood",
    "estimated_time": "2 minutes",
    "participant_prefix": "CF",
    "is_active": True,
    "questions": [
        {"type": "multiple", "text": "How do you usually travel?", "options": ["Bus", "Car", "Bike"]},
        {"type": "likert", "text": "Rate the roads", "scale": {"min": 1, "max": 5, "labels": ["Poor", "Great"]}},
        {"type": "text", "text": "Anything else?", "ask_followup": False},
    ],
}


@pytest.fixture
def curated_definition():
    """One curated question with two options"""
    return copy.deepcopy(CURATED_SURVEY)


@pytest.fixture
def mixed_definition():
    return copy.deepcopy(MIXED_SURVEY)


@pytest.fixture
async def session_maker(tmp_path):
    """Session factory bound to a fresh SQLite file"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker

    await engine.dispose()


@pytest.fixture
def catalog(session_maker):
    return SurveyCatalog(session_maker)


@pytest.fixture
def sessions(session_maker):
    return SessionStore(session_maker)


@pytest.fixture
def participants(session_maker):
    return ParticipantRegistry(session_maker)


@pytest.fixture
def responses(session_maker):
    return ResponseStore(session_maker)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def resolver(speech):
    return VoiceResolver(speech, timeout=1, max_bytes=1024, max_duration=60, target_language="en")


@pytest.fixture
def engine(transport, resolver, catalog, sessions, participants, responses):
    return ConversationEngine(
        transport=transport,
        resolver=resolver,
        catalog=catalog,
        sessions=sessions,
        participants=participants,
        responses=responses,
        notifier=Notifier(),
    )


@pytest.fixture
def text_message():
    def build(text, sender="1001"):
        return InboundMessage(sender=sender, text=text)
    return build


@pytest.fixture
def voice_message():
    def build(sender="1001", duration=5):
        return InboundMessage(sender=sender, attachment_kind="voice", attachment_duration=duration)
    return build
