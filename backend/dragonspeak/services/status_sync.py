"""
Reconciles a transcript record with the engine's view of its job.

Each call handles one job once. Whatever schedules the calls (a poller or a
webhook handler) lives outside this service.
"""

import asyncio

from dragonspeak.models.enums import TranscriptStatus
from dragonspeak.schemas.transcript import Transcript
from dragonspeak.services.transcript_repository import TranscriptRepository
from dragonspeak.services.transcription_provider import TranscriptionProvider
from dragonspeak.utils.logger import bind_job_id, get_logger

logger = get_logger(__name__)


async def sync_transcript_status(
    job_id: str,
    transcription_provider: TranscriptionProvider,
    repository: TranscriptRepository,
) -> Transcript:
    """
    Move a Transcribing job forward if the engine has finished with it.

    Jobs in any other status are returned unchanged; the engine only governs
    the transcription phase.

    Args:
        job_id: Job to reconcile; also the engine's job name
        transcription_provider: Engine to query
        repository: Persistence for transcript records

    Returns:
        The transcript after any update

    Raises:
        EntityNotFoundError: If the record or the engine job is unknown
        TranscriptionProviderError: If the engine could not be queried
    """
    with bind_job_id(job_id):
        transcript = await asyncio.to_thread(repository.get_transcript, job_id)
        if transcript.status is not TranscriptStatus.TRANSCRIBING:
            return transcript

        provider_status = await transcription_provider.get_transcription_job_status(job_id)
        target = provider_status.to_transcript_status()
        if target is transcript.status:
            logger.info("Transcription still running", provider_status=provider_status.value)
            return transcript

        logger.info("Advancing transcript status",
                   provider_status=provider_status.value,
                   status=target.value)

        return await asyncio.to_thread(repository.update_transcript_status, job_id, target)
