"""
API routes for session transcripts.
Handles audio submission, job status lookup, and transcript download.
"""

import io
import tempfile
from functools import lru_cache
from typing import List

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from dragonspeak.config import get_settings
from dragonspeak.db.database import get_db
from dragonspeak.errors import InvalidEntityError
from dragonspeak.models.enums import AudioFormat
from dragonspeak.schemas.transcript import TranscriptResponse
from dragonspeak.services.blob_store import BlobStore, LocalBlobStore
from dragonspeak.services.transcript_repository import TranscriptRepository
from dragonspeak.services.transcription_provider import KafkaTranscriptionProvider, TranscriptionProvider
from dragonspeak.services.transcription_service import TranscriptionService
from dragonspeak.utils.identifiers import UUIDProvider
from dragonspeak.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

BASE_URL = "/dragonspeak-service/v1"

router = APIRouter(
    prefix=BASE_URL + "/users/{user_id}/campaigns/{campaign_id}/sessions/{session_id}/transcripts",
    tags=["transcripts"],
)

CONTENT_TYPE_FORMATS = {
    "audio/mpeg": AudioFormat.MP3,
    "audio/webm": AudioFormat.WEBM,
    "audio/ogg": AudioFormat.OGG,
}


def content_type_to_audio_format(content_type: str) -> AudioFormat:
    """
    Map a request Content-Type onto an AudioFormat.

    Raises:
        InvalidEntityError: If the content type is not supported
    """
    media_type = (content_type or "").split(";")[0].strip().lower()
    try:
        return CONTENT_TYPE_FORMATS[media_type]
    except KeyError:
        supported = ", ".join(f'"{t}"' for t in CONTENT_TYPE_FORMATS)
        raise InvalidEntityError(
            f"Content-Type: {content_type or '<missing>'} not supported. Supported types are {supported}"
        )


@lru_cache()
def get_blob_store() -> BlobStore:
    return LocalBlobStore(settings.blob_storage_path)


@lru_cache()
def get_transcription_provider() -> TranscriptionProvider:
    return KafkaTranscriptionProvider(
        bootstrap_servers=settings.kafka_bootstrap_servers,
        topic=settings.kafka_topic_transcription,
        bucket=settings.blob_bucket,
        language_code=settings.transcription_language_code,
        send_timeout=settings.kafka_send_timeout_seconds,
        status_topic=settings.kafka_topic_transcription_status,
        status_poll_timeout_ms=settings.kafka_status_poll_timeout_ms,
    )


def get_transcription_service(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    transcription_provider: TranscriptionProvider = Depends(get_transcription_provider),
) -> TranscriptionService:
    """Wire a TranscriptionService for the current request."""
    return TranscriptionService(
        bucket=settings.blob_bucket,
        transcription_provider=transcription_provider,
        blob_store=blob_store,
        repository=TranscriptRepository(db),
        uuid_provider=UUIDProvider(),
    )


@router.post("", response_model=TranscriptResponse, status_code=201)
async def submit_transcription_job(
    user_id: str,
    campaign_id: str,
    session_id: str,
    request: Request,
    service: TranscriptionService = Depends(get_transcription_service),
) -> TranscriptResponse:
    """
    Submit a session recording for transcription.

    The raw audio is the request body; its encoding is taken from the
    Content-Type header (audio/mpeg, audio/webm or audio/ogg).
    """
    audio_format = content_type_to_audio_format(request.headers.get("content-type", ""))

    logger.info("Submit transcription request received",
               user_id=user_id,
               campaign_id=campaign_id,
               session_id=session_id,
               audio_format=audio_format.value)

    with tempfile.SpooledTemporaryFile(max_size=8 * 1024 * 1024) as audio_file:
        size = 0
        async for chunk in request.stream():
            size += len(chunk)
            if size > settings.max_audio_upload_size:
                max_mb = settings.max_audio_upload_size / (1024 * 1024)
                logger.warning("Audio upload too large", session_id=session_id, max_size_mb=max_mb)
                raise InvalidEntityError(f"Audio exceeds maximum allowed size ({max_mb:.2f} MB)")
            audio_file.write(chunk)

        if size == 0:
            raise InvalidEntityError("Request body must contain audio data")

        audio_file.seek(0)
        transcript = await service.submit_transcription_job(
            user_id, campaign_id, session_id, audio_format, audio_file
        )

    return TranscriptResponse.from_transcript(transcript)


@router.get("", response_model=List[TranscriptResponse])
async def list_transcripts(
    session_id: str,
    service: TranscriptionService = Depends(get_transcription_service),
) -> List[TranscriptResponse]:
    """List every transcription job recorded for a session."""
    transcripts = await service.get_transcripts_for_session(session_id)
    return [TranscriptResponse.from_transcript(t) for t in transcripts]


@router.get("/{job_id}", response_model=TranscriptResponse)
async def get_transcript_job(
    job_id: str,
    service: TranscriptionService = Depends(get_transcription_service),
) -> TranscriptResponse:
    """Get the current status of a transcription job."""
    transcript = await service.get_transcript_job(job_id)
    return TranscriptResponse.from_transcript(transcript)


@router.get("/{job_id}/fulltext")
async def get_transcript_full_text(
    job_id: str,
    service: TranscriptionService = Depends(get_transcription_service),
) -> Response:
    """Return the finished transcript as plain text."""
    buffer = io.BytesIO()
    bytes_written = await service.download_transcript(job_id, buffer)

    logger.info("Transcript full text served", job_id=job_id, size_bytes=bytes_written)

    return Response(content=buffer.getvalue(), media_type="text/plain; charset=utf-8")
