"""
Persistence for transcription job records.
Converts between SessionTranscript rows and Transcript values.
"""

from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from dragonspeak.errors import ConflictedError, EntityAlreadyExistsError, EntityNotFoundError
from dragonspeak.models.enums import AudioFormat, TranscriptStatus
from dragonspeak.models.transcript import SessionTranscript
from dragonspeak.schemas.transcript import Transcript
from dragonspeak.utils.logger import get_logger

logger = get_logger(__name__)


def transcript_from_row(row: SessionTranscript) -> Transcript:
    """
    Build a Transcript value from a database row.

    Raises:
        InvalidEntityError: If the stored format or status name is unknown
    """
    return Transcript(
        job_id=row.job_id,
        audio_location=row.audio_location,
        audio_format=AudioFormat.from_string(row.audio_format),
        transcript_location=row.transcript_location,
        summary_location=row.summary_location or "",
        status=TranscriptStatus.from_string(row.status),
    )


class TranscriptRepository:
    """
    Stores transcript records keyed by job ID and grouped by session.

    All methods are blocking; the transcription service runs them in a
    worker thread.
    """

    def __init__(self, db: Session) -> None:
        """
        Initialize the repository.

        Args:
            db: Database session for operations
        """
        self.db: Session = db

    def _get_row(self, job_id: str, for_update: bool = False) -> Optional[SessionTranscript]:
        query = self.db.query(SessionTranscript).filter(SessionTranscript.job_id == job_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def add_transcript_to_session(self, session_id: str, transcript: Transcript) -> Transcript:
        """
        Persist a new transcript record for a session.

        Args:
            session_id: Session the transcript belongs to
            transcript: Record to store

        Returns:
            The stored Transcript

        Raises:
            EntityAlreadyExistsError: If a record with the same job ID exists
        """
        row = SessionTranscript(
            session_id=session_id,
            job_id=transcript.job_id,
            audio_location=transcript.audio_location,
            audio_format=transcript.audio_format.value,
            transcript_location=transcript.transcript_location,
            summary_location=transcript.summary_location,
            status=transcript.status.value,
        )

        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)

        except IntegrityError as e:
            self.db.rollback()
            logger.error("Database integrity error",
                        job_id=transcript.job_id,
                        session_id=session_id,
                        error=str(e))
            raise EntityAlreadyExistsError(f"Transcript {transcript.job_id} already exists") from e

        except Exception:
            self.db.rollback()
            raise

        logger.info("Created transcript record",
                   job_id=row.job_id,
                   session_id=session_id,
                   status=row.status)

        return transcript_from_row(row)

    def get_transcript(self, job_id: str) -> Transcript:
        """
        Retrieve a transcript by its job ID.

        Raises:
            EntityNotFoundError: If no record exists for the job ID
        """
        row = self._get_row(job_id)
        if row is None:
            raise EntityNotFoundError(f"Transcript {job_id} not found")
        return transcript_from_row(row)

    def get_transcripts_for_session(self, session_id: str) -> List[Transcript]:
        """
        List every transcript recorded for a session, oldest first.

        Returns an empty list when the session has none.
        """
        rows = (
            self.db.query(SessionTranscript)
            .filter(SessionTranscript.session_id == session_id)
            .order_by(SessionTranscript.created_at.asc(), SessionTranscript.id.asc())
            .all()
        )

        logger.info("Listed transcripts", session_id=session_id, count=len(rows))

        return [transcript_from_row(row) for row in rows]

    def update_transcript_status(
        self,
        job_id: str,
        status: TranscriptStatus,
        summary_location: Optional[str] = None,
    ) -> Transcript:
        """
        Advance a transcript along its status lifecycle.

        Used by the out-of-band process that follows the transcription
        engine and the summary step.

        Args:
            job_id: Job to update
            status: New status; must be a legal successor of the current one
            summary_location: Blob key of the produced summary, if any

        Raises:
            EntityNotFoundError: If no record exists for the job ID
            ConflictedError: If the transition is not allowed
        """
        # Locked until commit or rollback
        row = self._get_row(job_id, for_update=True)
        if row is None:
            self.db.rollback()
            raise EntityNotFoundError(f"Transcript {job_id} not found")

        current = TranscriptStatus.from_string(row.status)
        if not current.can_transition_to(status):
            logger.warning("Rejected status transition",
                          job_id=job_id,
                          current_status=current.value,
                          requested_status=status.value)
            self.db.rollback()
            raise ConflictedError(
                f"Transcript {job_id} cannot move from {current.value} to {status.value}"
            )

        try:
            row.status = status.value
            if summary_location is not None:
                row.summary_location = summary_location
            self.db.commit()
            self.db.refresh(row)

        except Exception as e:
            self.db.rollback()
            logger.error("Failed to update transcript status", job_id=job_id, error=str(e))
            raise

        logger.info("Transcript status updated",
                   job_id=job_id,
                   previous_status=current.value,
                   status=row.status)

        return transcript_from_row(row)
