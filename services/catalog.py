"""Survey catalog: the active survey and survey definitions"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from models import Question, QuestionType, Response, Survey, SurveyParticipation, async_session_maker
from .validator import QuestionView, parse_options, parse_scale

logger = logging.getLogger(__name__)


class InvalidSurveyError(ValueError):
    pass


@dataclass(frozen=True)
class SurveyView:
    id: str
    title: str
    description: str
    estimated_time: str
    questions: Tuple[QuestionView, ...]

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def question_at(self, index: int) -> Optional[QuestionView]:
        if 0 <= index < len(self.questions):
            return self.questions[index]
        return None


@dataclass(frozen=True)
class SurveyStats:
    id: str
    title: str
    is_active: bool
    participants: int
    completed: int
    responses: int
    avg_completion_seconds: Optional[int]

    @property
    def completion_rate(self) -> float:
        if not self.participants:
            return 0.0
        return round(self.completed * 100.0 / self.participants, 2)


def question_view(question: Question, survey_followups: bool = True) -> QuestionView:
    """Normalize a stored question; malformed parameters fall back to defaults"""
    try:
        question_type = QuestionType(question.question_type)
    except ValueError:
        logger.warning(
            "Question %s has unknown type %r, treating it as free text",
            question.id, question.question_type,
        )
        question_type = QuestionType.TEXT

    options: Tuple[str, ...] = ()
    scale = None
    if question_type.is_select:
        options = tuple(parse_options(question.options))
        if not options:
            logger.warning("Question %s has no options, treating it as free text", question.id)
            question_type = QuestionType.TEXT
    elif question_type == QuestionType.LIKERT:
        scale = parse_scale(question.scale)

    ask_followup = survey_followups if question.ask_followup is None else question.ask_followup
    return QuestionView(
        id=question.id,
        number=question.question_number,
        type=question_type,
        text=question.question_text,
        options=options,
        scale=scale,
        ask_followup=bool(ask_followup),
    )


def _check_question(number: int, data: Dict[str, Any]) -> Question:
    """Build a Question from a definition, enforcing the per-type invariants"""
    text = str(data.get("text") or data.get("question") or "").strip()
    if not text:
        raise InvalidSurveyError(f"Question {number} has no text")

    try:
        question_type = QuestionType(data.get("type"))
    except ValueError:
        raise InvalidSurveyError(f"Question {number} has unknown type {data.get('type')!r}")

    options = None
    scale = None
    if question_type.is_select:
        raw = data.get("options")
        if not isinstance(raw, list) or not raw or not all(str(o).strip() for o in raw):
            raise InvalidSurveyError(f"Question {number} ({question_type.value}) requires a non-empty options list")
        options = [str(o).strip() for o in raw]
    elif question_type == QuestionType.LIKERT:
        raw = data.get("scale")
        if not isinstance(raw, dict):
            raise InvalidSurveyError(f"Question {number} (likert) requires a scale")
        labels = raw.get("labels") or [raw.get("low_label"), raw.get("high_label")]
        try:
            low_value, high_value = int(raw["min"]), int(raw["max"])
        except (KeyError, TypeError, ValueError):
            raise InvalidSurveyError(f"Question {number} scale needs integer min and max")
        if low_value >= high_value:
            raise InvalidSurveyError(f"Question {number} scale min must be lower than max")
        if len(labels) < 2 or not all(labels[:2]):
            raise InvalidSurveyError(f"Question {number} scale needs low and high labels")
        scale = {"min": low_value, "max": high_value, "labels": [str(labels[0]), str(labels[1])]}

    return Question(
        question_number=number,
        question_type=question_type.value,
        question_text=text,
        options=options,
        scale=scale,
        ask_followup=data.get("ask_followup"),
    )


class SurveyCatalog:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession] = async_session_maker):
        self._session_maker = session_maker

    async def get_active(self) -> Optional[SurveyView]:
        """The active survey with its ordered questions"""
        async with self._session_maker() as db:
            result = await db.execute(
                select(Survey)
                .where(Survey.is_active == True)
                .options(selectinload(Survey.questions))
                .order_by(Survey.updated_at.desc())
            )
            surveys = result.scalars().all()
            if not surveys:
                return None
            if len(surveys) > 1:
                logger.warning("%s surveys are active, using %s", len(surveys), surveys[0].id)

            survey = surveys[0]
            questions = sorted(survey.questions, key=lambda q: q.question_number)
            return SurveyView(
                id=survey.id,
                title=survey.title,
                description=survey.description or "",
                estimated_time=survey.estimated_time or "3-5 minutes",
                questions=tuple(question_view(q, survey.ask_followups) for q in questions),
            )

    async def activate(self, survey_id: str) -> bool:
        """Activate one survey and deactivate all others"""
        async with self._session_maker() as db:
            survey = await db.get(Survey, survey_id)
            if survey is None:
                return False
            await db.execute(
                update(Survey).where(Survey.id != survey_id).values(is_active=False)
            )
            survey.is_active = True
            await db.commit()
        logger.info("Survey %s activated", survey_id)
        return True

    async def deactivate(self, survey_id: str) -> bool:
        async with self._session_maker() as db:
            survey = await db.get(Survey, survey_id)
            if survey is None:
                return False
            survey.is_active = False
            await db.commit()
        return True

    async def exists(self, survey_id: str) -> bool:
        async with self._session_maker() as db:
            return await db.get(Survey, survey_id) is not None

    async def create_survey(self, definition: Dict[str, Any]) -> str:
        """Validate and store a survey definition, returns its id"""
        survey_id = str(definition.get("id") or "").strip()
        title = str(definition.get("title") or "").strip()
        prefix = str(definition.get("participant_prefix") or "").strip()
        if not survey_id or not title or not prefix:
            raise InvalidSurveyError("Survey needs id, title and participant_prefix")

        raw_questions = definition.get("questions") or []
        if not raw_questions:
            raise InvalidSurveyError(f"Survey {survey_id} has no questions")
        questions = [_check_question(number, data) for number, data in enumerate(raw_questions, start=1)]

        survey = Survey(
            id=survey_id,
            title=title,
            description=definition.get("description", ""),
            estimated_time=definition.get("estimated_time", "3-5 minutes"),
            participant_prefix=prefix,
            ask_followups=definition.get("ask_followups", True),
            is_active=False,
            questions=questions,
        )
        async with self._session_maker() as db:
            db.add(survey)
            await db.commit()

        if definition.get("is_active"):
            await self.activate(survey_id)
        logger.info("Survey %s created with %s questions", survey_id, len(questions))
        return survey_id

    async def load_definitions(self, path: Union[str, Path]) -> List[str]:
        """Create surveys from a JSON file; ids that already exist are skipped"""
        path = Path(path)
        if not path.exists():
            logger.info("No survey definitions at %s", path)
            return []

        with path.open(encoding="utf-8") as f:
            data = json.load(f)
        definitions = data if isinstance(data, list) else data.get("surveys", [])

        created = []
        for definition in definitions:
            if await self.exists(str(definition.get("id", ""))):
                continue
            created.append(await self.create_survey(definition))
        return created

    async def list_surveys(self) -> List[SurveyStats]:
        """All surveys with participation and response counts"""
        async with self._session_maker() as db:
            surveys = (await db.execute(select(Survey).order_by(Survey.created_at))).scalars().all()
            stats = []
            for survey in surveys:
                participants = await db.scalar(
                    select(func.count(SurveyParticipation.id)).where(SurveyParticipation.survey_id == survey.id)
                )
                completed = await db.scalar(
                    select(func.count(SurveyParticipation.id)).where(
                        SurveyParticipation.survey_id == survey.id,
                        SurveyParticipation.is_completed == True,
                    )
                )
                avg_seconds = await db.scalar(
                    select(func.avg(SurveyParticipation.completion_duration_seconds)).where(
                        SurveyParticipation.survey_id == survey.id,
                        SurveyParticipation.is_completed == True,
                    )
                )
                responses = await db.scalar(
                    select(func.count(Response.id)).where(Response.survey_id == survey.id)
                )
                stats.append(SurveyStats(
                    id=survey.id,
                    title=survey.title,
                    is_active=survey.is_active,
                    participants=participants or 0,
                    completed=completed or 0,
                    responses=responses or 0,
                    avg_completion_seconds=round(avg_seconds) if avg_seconds is not None else None,
                ))
            return stats

    async def get_stats(self, survey_id: str) -> Optional[SurveyStats]:
        for stats in await self.list_surveys():
            if stats.id == survey_id:
                return stats
        return None
