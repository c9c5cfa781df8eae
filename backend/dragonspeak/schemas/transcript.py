"""
Pydantic schemas for transcription jobs and their API responses.
"""

from pydantic import BaseModel, ConfigDict, Field

from dragonspeak.models.enums import AudioFormat, TranscriptStatus


class Transcript(BaseModel):
    """A transcription job as seen by the orchestration layer."""
    model_config = ConfigDict(frozen=True)

    job_id: str = Field(..., min_length=1)
    audio_location: str
    audio_format: AudioFormat
    transcript_location: str
    summary_location: str = ""
    status: TranscriptStatus


class TranscriptResponse(BaseModel):
    """Schema for transcript API responses."""
    id: str
    status: str

    @classmethod
    def from_transcript(cls, transcript: Transcript) -> "TranscriptResponse":
        return cls(id=transcript.job_id, status=transcript.status.value)
