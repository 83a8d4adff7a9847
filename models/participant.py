"""Participant models"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from .database import Base, utcnow


class Participant(Base):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone_number = Column(String(50), nullable=False, unique=True)
    participant_code = Column(String(20), nullable=True, unique=True)  # filled right after insert
    created_at = Column(DateTime, default=utcnow)

    participations = relationship(
        "SurveyParticipation", back_populates="participant", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Participant(id={self.id}, code={self.participant_code})>"


class SurveyParticipation(Base):
    __tablename__ = "survey_participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(String(50), ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    participant_survey_code = Column(String(30), nullable=False)
    started_at = Column(DateTime, default=utcnow)
    completed_at = Column(DateTime, nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    completion_duration_seconds = Column(Integer, nullable=True)

    participant = relationship("Participant", back_populates="participations")

    __table_args__ = (
        UniqueConstraint("survey_id", "participant_id", name="uq_survey_participant"),
        UniqueConstraint("survey_id", "participant_survey_code", name="uq_survey_participant_code"),
        Index("idx_survey_participants_completed", "survey_id", "is_completed"),
    )

    def __repr__(self):
        return f"<SurveyParticipation(code={self.participant_survey_code}, completed={self.is_completed})>"
