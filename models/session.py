"""Conversation session model"""
import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, UniqueConstraint, Index
from .database import Base, utcnow


class Stage(str, enum.Enum):
    INITIAL = "initial"
    SURVEY = "survey"
    FOLLOWUP = "followup"
    VOICE_CONFIRMATION = "voice_confirmation"
    COMPLETED = "completed"


class ChatSession(Base):
    """Live conversation state of one respondent in one survey"""
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone_number = Column(String(50), nullable=False)
    survey_id = Column(String(50), ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    current_question = Column(Integer, nullable=False, default=0)
    stage = Column(String(30), nullable=False, default=Stage.INITIAL.value)
    session_data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("phone_number", "survey_id", name="uq_session_phone_survey"),
        Index("idx_sessions_updated", "updated_at"),
    )

    def __repr__(self):
        return f"<ChatSession(id={self.id}, stage={self.stage}, question={self.current_question})>"
