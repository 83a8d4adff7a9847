"""Survey response model"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, UniqueConstraint, Index
from .database import Base, utcnow


class Response(Base):
    __tablename__ = "responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(String(50), ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    answer = Column(Text, nullable=False)
    follow_up_comment = Column(Text, nullable=True)
    # {"original_text", "translated_text", "original_language", "duration", "was_transcribed"}
    voice_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("survey_id", "participant_id", "question_id", name="uq_response_question"),
        Index("idx_responses_survey", "survey_id"),
    )

    def __repr__(self):
        return f"<Response(id={self.id}, question={self.question_id})>"
