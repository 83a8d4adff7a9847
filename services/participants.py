"""Participants and their survey participations"""
import logging
from typing import Optional, Tuple

from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models import Participant, Survey, SurveyParticipation, async_session_maker, utcnow

logger = logging.getLogger(__name__)


def format_participant_code(participant_id: int) -> str:
    return f"P{participant_id:06d}"


def format_survey_code(prefix: str, counter: int) -> str:
    return f"{prefix}-{counter:04d}"


class ParticipantRegistry:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession] = async_session_maker):
        self._session_maker = session_maker

    async def get_or_create_participant(self, phone_number: str) -> Participant:
        """Participant for the contact address, created on first contact"""
        async with self._session_maker() as db:
            result = await db.execute(
                select(Participant).where(Participant.phone_number == phone_number)
            )
            participant = result.scalar_one_or_none()
            if participant:
                return participant

            participant = Participant(phone_number=phone_number)
            db.add(participant)
            try:
                await db.flush()
                participant.participant_code = format_participant_code(participant.id)
                await db.commit()
            except IntegrityError:
                await db.rollback()
                result = await db.execute(
                    select(Participant).where(Participant.phone_number == phone_number)
                )
                return result.scalar_one()

            logger.info("New participant %s", participant.participant_code)
            return participant

    async def next_survey_code(self, db: AsyncSession, survey_id: str) -> str:
        """Increment the survey counter and format the next participant code"""
        await db.execute(
            update(Survey)
            .where(Survey.id == survey_id)
            .values(participant_counter=Survey.participant_counter + 1)
        )
        result = await db.execute(
            select(Survey.participant_prefix, Survey.participant_counter).where(Survey.id == survey_id)
        )
        row = result.one_or_none()
        if row is None:
            raise LookupError(f"Survey not found: {survey_id}")
        prefix, counter = row
        return format_survey_code(prefix, counter)

    async def get_participation(
        self, survey_id: str, participant_id: int
    ) -> Optional[SurveyParticipation]:
        async with self._session_maker() as db:
            result = await db.execute(
                select(SurveyParticipation).where(
                    and_(
                        SurveyParticipation.survey_id == survey_id,
                        SurveyParticipation.participant_id == participant_id,
                    )
                )
            )
            return result.scalar_one_or_none()

    async def find_participation(
        self, phone_number: str, survey_id: str
    ) -> Optional[SurveyParticipation]:
        """Participation by contact address, without creating anything"""
        async with self._session_maker() as db:
            result = await db.execute(
                select(SurveyParticipation)
                .join(Participant, Participant.id == SurveyParticipation.participant_id)
                .where(
                    and_(
                        Participant.phone_number == phone_number,
                        SurveyParticipation.survey_id == survey_id,
                    )
                )
            )
            return result.scalar_one_or_none()

    async def ensure_participation(
        self, phone_number: str, survey_id: str
    ) -> Tuple[SurveyParticipation, bool]:
        """Participation of the respondent in the survey; the flag tells if it was just created"""
        participant = await self.get_or_create_participant(phone_number)

        existing = await self.get_participation(survey_id, participant.id)
        if existing:
            return existing, False

        async with self._session_maker() as db:
            code = await self.next_survey_code(db, survey_id)
            participation = SurveyParticipation(
                survey_id=survey_id,
                participant_id=participant.id,
                participant_survey_code=code,
                started_at=utcnow(),
            )
            db.add(participation)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                existing = await self.get_participation(survey_id, participant.id)
                if existing is None:
                    raise
                return existing, False

        logger.info("Participant %s joined survey %s as %s", participant.participant_code, survey_id, code)
        return participation, True

    async def complete(self, participation_id: int) -> SurveyParticipation:
        """Mark the participation completed and store its duration"""
        async with self._session_maker() as db:
            participation = await db.get(SurveyParticipation, participation_id)
            if participation is None:
                raise LookupError(f"Participation not found: {participation_id}")

            if not participation.is_completed:
                now = utcnow()
                started_at = participation.started_at or now
                participation.completed_at = now
                participation.is_completed = True
                participation.completion_duration_seconds = max(0, int((now - started_at).total_seconds()))
                await db.commit()
            return participation
