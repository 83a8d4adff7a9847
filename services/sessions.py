"""Session store: durable conversation state per (phone, survey)"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import Any, Dict, Optional, Union

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models import ChatSession, Stage, async_session_maker, utcnow
from utils.locks import KeyedLock
from .voice import VoiceResolution

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    Stage.INITIAL: {Stage.SURVEY},
    Stage.SURVEY: {Stage.FOLLOWUP, Stage.COMPLETED},
    Stage.FOLLOWUP: {Stage.SURVEY, Stage.VOICE_CONFIRMATION, Stage.COMPLETED},
    Stage.VOICE_CONFIRMATION: {Stage.SURVEY, Stage.FOLLOWUP, Stage.COMPLETED},
    Stage.COMPLETED: set(),
}


class SessionError(Exception):
    pass


class SessionNotFoundError(SessionError):
    pass


class InvalidTransitionError(SessionError):
    pass


@dataclass(frozen=True)
class PendingAnswer:
    """Validated answer waiting for its follow-up"""
    question_id: int
    answer: str
    question_type: str
    question_text: str


@dataclass(frozen=True)
class PendingVoice:
    """Voice follow-up waiting for the respondent's confirmation"""
    answer: PendingAnswer
    voice: VoiceResolution


Pending = Union[PendingAnswer, PendingVoice, None]


def pending_to_dict(pending: Pending) -> Optional[Dict[str, Any]]:
    if pending is None:
        return None
    if isinstance(pending, PendingAnswer):
        return {"kind": "answer", **asdict(pending)}
    if isinstance(pending, PendingVoice):
        return {"kind": "voice", "answer": asdict(pending.answer), "voice": asdict(pending.voice)}
    raise TypeError(f"Unknown pending operation: {pending!r}")


def pending_from_dict(data: Optional[Dict[str, Any]]) -> Pending:
    if not data:
        return None
    try:
        kind = data["kind"]
        if kind == "answer":
            return PendingAnswer(
                question_id=int(data["question_id"]),
                answer=data["answer"],
                question_type=data["question_type"],
                question_text=data["question_text"],
            )
        if kind == "voice":
            return PendingVoice(
                answer=pending_from_dict({"kind": "answer", **data["answer"]}),
                voice=VoiceResolution(**data["voice"]),
            )
    except (KeyError, TypeError, ValueError) as e:
        raise SessionError(f"Corrupt pending data: {data!r}") from e
    raise SessionError(f"Unknown pending kind: {data!r}")


@dataclass
class ConversationState:
    id: int
    phone_number: str
    survey_id: str
    participant_id: int
    current_question: int
    stage: Stage
    participant_code: Optional[str] = None
    pending: Pending = None
    data: Dict[str, Any] = field(default_factory=dict)


_UNSET = object()


class SessionStore:
    """CRUD over ChatSession rows with stage validation"""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession] = async_session_maker):
        self._session_maker = session_maker
        self._gate = KeyedLock()

    @staticmethod
    def _to_state(row: ChatSession) -> ConversationState:
        data = dict(row.session_data or {})
        try:
            stage = Stage(row.stage)
        except ValueError as e:
            raise SessionError(f"Unknown stage {row.stage!r} in session {row.id}") from e
        return ConversationState(
            id=row.id,
            phone_number=row.phone_number,
            survey_id=row.survey_id,
            participant_id=row.participant_id,
            current_question=row.current_question,
            stage=stage,
            participant_code=data.get("participant_code"),
            pending=pending_from_dict(data.get("pending")),
            data=data,
        )

    async def find(self, phone_number: str, survey_id: str) -> Optional[ConversationState]:
        """Session for the pair, or None"""
        async with self._session_maker() as db:
            result = await db.execute(
                select(ChatSession).where(
                    and_(
                        ChatSession.phone_number == phone_number,
                        ChatSession.survey_id == survey_id,
                    )
                )
            )
            row = result.scalar_one_or_none()
            return self._to_state(row) if row else None

    async def get_or_create(
        self,
        phone_number: str,
        survey_id: str,
        participant_id: int,
        participant_code: Optional[str] = None,
    ) -> ConversationState:
        """Existing session for the pair or a fresh one in the initial stage"""
        async with self._gate.hold((phone_number, survey_id)):
            state = await self.find(phone_number, survey_id)
            if state is not None:
                return state

            async with self._session_maker() as db:
                row = ChatSession(
                    phone_number=phone_number,
                    survey_id=survey_id,
                    participant_id=participant_id,
                    current_question=0,
                    stage=Stage.INITIAL.value,
                    session_data={"participant_code": participant_code, "pending": None},
                )
                db.add(row)
                try:
                    await db.commit()
                except IntegrityError:
                    # Another process created it first
                    await db.rollback()
                    state = await self.find(phone_number, survey_id)
                    if state is None:
                        raise
                    return state

                logger.info("Created session %s for %s in survey %s", row.id, phone_number, survey_id)
                return self._to_state(row)

    async def update(
        self,
        session_id: int,
        *,
        stage: Optional[Stage] = None,
        current_question: Optional[int] = None,
        pending: Any = _UNSET,
        data: Optional[Dict[str, Any]] = None,
    ) -> ConversationState:
        """Apply a partial change; scratch data is merged, not replaced"""
        async with self._session_maker() as db:
            row = await db.get(ChatSession, session_id)
            if row is None:
                raise SessionNotFoundError(f"Session {session_id} no longer exists")

            if stage is not None:
                try:
                    stage = Stage(stage)
                except ValueError as e:
                    raise InvalidTransitionError(f"Unknown stage {stage!r}") from e
                current = Stage(row.stage)
                if stage != current and stage not in ALLOWED_TRANSITIONS[current]:
                    raise InvalidTransitionError(f"Cannot move from {current.value} to {stage.value}")
                row.stage = stage.value

            if current_question is not None:
                if current_question < 0 or current_question < row.current_question:
                    raise InvalidTransitionError(
                        f"Question index cannot go from {row.current_question} to {current_question}"
                    )
                row.current_question = current_question

            session_data = dict(row.session_data or {})
            if data:
                session_data.update(data)
            if pending is not _UNSET:
                session_data["pending"] = pending_to_dict(pending)
            row.session_data = session_data

            await db.commit()
            return self._to_state(row)

    async def delete(self, session_id: int) -> bool:
        async with self._session_maker() as db:
            result = await db.execute(delete(ChatSession).where(ChatSession.id == session_id))
            await db.commit()
            return result.rowcount > 0

    async def discard(self, phone_number: str, survey_id: str) -> bool:
        """Delete the pair's session, used to reset a broken conversation"""
        async with self._session_maker() as db:
            result = await db.execute(
                delete(ChatSession).where(
                    and_(
                        ChatSession.phone_number == phone_number,
                        ChatSession.survey_id == survey_id,
                    )
                )
            )
            await db.commit()
            return result.rowcount > 0

    async def purge_stale(self, max_age: timedelta) -> int:
        """Delete sessions not updated within max_age"""
        cutoff = utcnow() - max_age
        async with self._session_maker() as db:
            result = await db.execute(delete(ChatSession).where(ChatSession.updated_at < cutoff))
            await db.commit()
        if result.rowcount:
            logger.info("Purged %s stale sessions", result.rowcount)
        return result.rowcount
