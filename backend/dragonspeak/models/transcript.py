"""
SQLAlchemy model for session transcripts.
"""

from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime

from dragonspeak.db.database import Base


class SessionTranscript(Base):
    """
    Database model for a transcription job attached to a game session.

    Audio format and status are stored as their canonical enum names.
    """

    __tablename__ = "session_transcripts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, index=True)
    job_id = Column(String(128), nullable=False, unique=True, index=True)
    audio_location = Column(String(255), nullable=False)
    audio_format = Column(String(10), nullable=False)
    transcript_location = Column(String(255), nullable=False)
    summary_location = Column(String(255), nullable=False, default="")
    status = Column(String(32), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<SessionTranscript(job_id='{self.job_id}', session_id='{self.session_id}', status='{self.status}')>"
