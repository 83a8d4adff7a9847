"""Response persistence and export"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models import Question, Response, SurveyParticipation, async_session_maker
from .voice import VoiceResolution

logger = logging.getLogger(__name__)

EXPORT_FIELDS = [
    "participant_code",
    "question_number",
    "question",
    "answer",
    "follow_up",
    "original_language",
    "original_text",
    "was_transcribed",
    "answered_at",
]


def voice_metadata(voice: Optional[VoiceResolution]) -> Optional[Dict[str, Any]]:
    """Provenance stored with a voice-derived follow-up"""
    if voice is None:
        return None
    return {
        "original_text": voice.transcript,
        "translated_text": voice.translation,
        "original_language": voice.language,
        "duration": voice.duration,
        "was_transcribed": True,
    }


class ResponseStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession] = async_session_maker):
        self._session_maker = session_maker

    async def _find(self, db: AsyncSession, survey_id: str, participant_id: int, question_id: int):
        result = await db.execute(
            select(Response).where(
                and_(
                    Response.survey_id == survey_id,
                    Response.participant_id == participant_id,
                    Response.question_id == question_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def save(
        self,
        survey_id: str,
        participant_id: int,
        question_id: int,
        answer: str,
        follow_up_comment: Optional[str] = None,
        voice: Optional[VoiceResolution] = None,
    ) -> Response:
        """Insert the answer or update the existing row for the same question"""
        values = {
            "answer": answer,
            "follow_up_comment": follow_up_comment or None,
            "voice_metadata": voice_metadata(voice),
        }
        async with self._session_maker() as db:
            existing = await self._find(db, survey_id, participant_id, question_id)
            if existing:
                for key, value in values.items():
                    setattr(existing, key, value)
                await db.commit()
                return existing

            response = Response(
                survey_id=survey_id,
                participant_id=participant_id,
                question_id=question_id,
                **values,
            )
            db.add(response)
            try:
                await db.commit()
                return response
            except IntegrityError:
                # A replayed event inserted the row in between
                await db.rollback()
                logger.warning(
                    "Duplicate response for survey=%s participant=%s question=%s, updating instead",
                    survey_id, participant_id, question_id,
                )

            existing = await self._find(db, survey_id, participant_id, question_id)
            for key, value in values.items():
                setattr(existing, key, value)
            await db.commit()
            return existing

    async def count(self, survey_id: str, participant_id: Optional[int] = None) -> int:
        query = select(func.count(Response.id)).where(Response.survey_id == survey_id)
        if participant_id is not None:
            query = query.where(Response.participant_id == participant_id)
        async with self._session_maker() as db:
            result = await db.execute(query)
            return result.scalar() or 0

    async def export_rows(self, survey_id: str) -> List[Dict[str, Any]]:
        """Rows for the CSV export of one survey"""
        query = (
            select(Response, Question, SurveyParticipation.participant_survey_code)
            .join(Question, Question.id == Response.question_id)
            .join(
                SurveyParticipation,
                and_(
                    SurveyParticipation.survey_id == Response.survey_id,
                    SurveyParticipation.participant_id == Response.participant_id,
                ),
            )
            .where(Response.survey_id == survey_id)
            .order_by(SurveyParticipation.participant_survey_code, Question.question_number)
        )
        async with self._session_maker() as db:
            result = await db.execute(query)
            rows = []
            for response, question, code in result.all():
                voice = response.voice_metadata or {}
                rows.append({
                    "participant_code": code,
                    "question_number": question.question_number,
                    "question": question.question_text,
                    "answer": response.answer,
                    "follow_up": response.follow_up_comment or "",
                    "original_language": voice.get("original_language", ""),
                    "original_text": voice.get("original_text", ""),
                    "was_transcribed": bool(voice.get("was_transcribed")),
                    "answered_at": response.updated_at.strftime("%Y-%m-%d %H:%M:%S") if response.updated_at else "",
                })
            return rows
