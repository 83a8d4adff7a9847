from .database import init_db, get_session, async_session_maker, utcnow
from .survey import Survey, Question, QuestionType
from .participant import Participant, SurveyParticipation
from .session import ChatSession, Stage
from .response import Response

__all__ = [
    "init_db",
    "get_session",
    "async_session_maker",
    "utcnow",
    "Survey",
    "Question",
    "QuestionType",
    "Participant",
    "SurveyParticipation",
    "ChatSession",
    "Stage",
    "Response",
]
