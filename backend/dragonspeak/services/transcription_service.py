"""
Orchestration of transcription jobs across the database, the blob store
and the speech-to-text engine.

There is no transaction spanning the three systems. Submission persists the
job record first, then uploads the audio, then starts the engine job, so a
failure at any later step still leaves a queryable record behind. Failures
are logged with the step that failed and re-raised unchanged; nothing is
rolled back or retried here.
"""

import asyncio
from typing import BinaryIO, List

from dragonspeak.errors import ConflictedError
from dragonspeak.models.enums import AudioFormat, TranscriptStatus
from dragonspeak.schemas.transcript import Transcript
from dragonspeak.services.blob_store import BlobStore
from dragonspeak.services.transcript_repository import TranscriptRepository
from dragonspeak.services.transcription_provider import TranscriptionProvider
from dragonspeak.utils.identifiers import UUIDProvider
from dragonspeak.utils.logger import bind_job_id, get_logger

logger = get_logger(__name__)


class TranscriptionService:
    """
    Submits transcription jobs and exposes their status and results.

    Holds no per-call state; every collaborator is injected.
    """

    def __init__(
        self,
        bucket: str,
        transcription_provider: TranscriptionProvider,
        blob_store: BlobStore,
        repository: TranscriptRepository,
        uuid_provider: UUIDProvider,
    ) -> None:
        """
        Initialize the transcription service.

        Args:
            bucket: Blob container holding audio and transcripts
            transcription_provider: Engine that performs speech-to-text
            blob_store: Storage for audio and transcript bytes
            repository: Persistence for transcript records
            uuid_provider: Source of unique identifiers
        """
        self.bucket = bucket
        self.transcription_provider = transcription_provider
        self.blob_store = blob_store
        self.repository = repository
        self.uuid_provider = uuid_provider

    def build_transcript(self, user_id: str, campaign_id: str, session_id: str, audio_format: AudioFormat) -> Transcript:
        """Assign a job ID and blob keys for a new submission."""
        prefix = f"{user_id}/{campaign_id}/{session_id}"
        return Transcript(
            job_id=f"{session_id}-{self.uuid_provider.new_uuid()}",
            audio_location=f"{prefix}/audio-{self.uuid_provider.new_uuid()}",
            audio_format=audio_format,
            transcript_location=f"{prefix}/transcript-{self.uuid_provider.new_uuid()}",
            summary_location="",
            status=TranscriptStatus.TRANSCRIBING,
        )

    async def submit_transcription_job(
        self,
        user_id: str,
        campaign_id: str,
        session_id: str,
        audio_format: AudioFormat,
        audio_file: BinaryIO,
    ) -> Transcript:
        """
        Record, upload and start a transcription job.

        Args:
            user_id: Owner of the campaign
            campaign_id: Campaign the session belongs to
            session_id: Session the recording was made in
            audio_format: Encoding of the uploaded audio
            audio_file: Readable stream with the raw audio

        Returns:
            The Transcript as assembled for submission

        Raises:
            Whatever the failing collaborator raised. A failure after the
            record was persisted leaves it in Transcribing status.
        """
        transcript = self.build_transcript(user_id, campaign_id, session_id, audio_format)

        with bind_job_id(transcript.job_id):
            logger.info("Submitting transcription job",
                       session_id=session_id,
                       audio_format=audio_format.value,
                       audio_location=transcript.audio_location)

            try:
                await asyncio.to_thread(self.repository.add_transcript_to_session, session_id, transcript)
            except Exception as e:
                logger.error("Transcription job failed", step="persist", session_id=session_id, error=str(e))
                raise

            try:
                await self.blob_store.upload_data(self.bucket, transcript.audio_location, audio_file)
            except Exception as e:
                logger.error("Transcription job failed", step="upload", session_id=session_id,
                            audio_location=transcript.audio_location, error=str(e))
                raise

            try:
                await self.transcription_provider.start_transcription_job(
                    transcript.job_id,
                    transcript.audio_location,
                    transcript.transcript_location,
                    audio_format,
                )
            except Exception as e:
                logger.error("Transcription job failed", step="start_job", session_id=session_id, error=str(e))
                raise

            logger.info("Transcription job submitted", session_id=session_id)

        return transcript

    async def get_transcript_job(self, job_id: str) -> Transcript:
        """
        Raises:
            EntityNotFoundError: If the job does not exist
        """
        return await asyncio.to_thread(self.repository.get_transcript, job_id)

    async def get_transcripts_for_session(self, session_id: str) -> List[Transcript]:
        return await asyncio.to_thread(self.repository.get_transcripts_for_session, session_id)

    async def download_transcript(self, job_id: str, destination: BinaryIO) -> int:
        """
        Copy the finished transcript text of a job into ``destination``.

        Downloads are refused until the engine has produced the transcript,
        i.e. while the job is NotStarted, Transcribing or TranscriptionFailed.

        Returns:
            Number of bytes written

        Raises:
            EntityNotFoundError: If the job or its transcript blob is missing
            ConflictedError: If the transcript has not been produced
        """
        transcript = await asyncio.to_thread(self.repository.get_transcript, job_id)

        if not transcript.status.transcript_available:
            logger.warning("Transcript not ready for download",
                          job_id=job_id,
                          status=transcript.status.value)
            raise ConflictedError(
                f"Transcript {job_id} is {transcript.status.value}; text is not available"
            )

        bytes_written = await self.blob_store.download_data(
            self.bucket, transcript.transcript_location, destination
        )

        logger.info("Transcript downloaded", job_id=job_id, size_bytes=bytes_written)

        return bytes_written
