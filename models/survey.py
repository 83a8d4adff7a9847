"""Survey and question models"""
import enum
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from .database import Base, utcnow


class QuestionType(str, enum.Enum):
    CURATED = "curated"      # single choice from a curated list (agree/disagree...)
    MULTIPLE = "multiple"    # single choice from a list of options
    LIKERT = "likert"        # rating scale
    TEXT = "text"            # free text

    @property
    def is_select(self) -> bool:
        return self in (QuestionType.CURATED, QuestionType.MULTIPLE)


class Survey(Base):
    __tablename__ = "surveys"

    id = Column(String(50), primary_key=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, default="")
    estimated_time = Column(String(50), default="3-5 minutes")
    participant_prefix = Column(String(20), nullable=False)
    participant_counter = Column(Integer, nullable=False, default=0)
    ask_followups = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    questions = relationship(
        "Question",
        back_populates="survey",
        cascade="all, delete-orphan",
        order_by="Question.question_number",
    )

    __table_args__ = (
        Index("idx_surveys_active", "is_active"),
    )

    def __repr__(self):
        return f"<Survey(id={self.id}, active={self.is_active})>"


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(String(50), ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False)
    question_number = Column(Integer, nullable=False)  # 1-based
    question_type = Column(String(20), nullable=False)
    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=True)  # list of labels for select types
    scale = Column(JSON, nullable=True)    # {"min", "max", "labels": [low, high]} for likert
    ask_followup = Column(Boolean, nullable=True)  # None inherits Survey.ask_followups
    created_at = Column(DateTime, default=utcnow)

    survey = relationship("Survey", back_populates="questions")

    __table_args__ = (
        UniqueConstraint("survey_id", "question_number", name="uq_question_number"),
    )

    def __repr__(self):
        return f"<Question(id={self.id}, number={self.question_number}, type={self.question_type})>"
