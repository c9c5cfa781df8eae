"""
Enumerations for transcript status and audio encoding.

Both are persisted as their canonical names and parsed back
case-insensitively; unknown names are rejected.
"""

from enum import Enum
from typing import Dict, FrozenSet

from dragonspeak.errors import InvalidEntityError


class AudioFormat(str, Enum):
    """Audio encodings accepted for transcription."""

    MP3 = "MP3"
    MP4 = "MP4"
    WAV = "WAV"
    FLAC = "FLAC"
    AMR = "AMR"
    OGG = "OGG"
    WEBM = "WebM"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, value: str) -> "AudioFormat":
        """
        Parse a canonical format name, ignoring case.

        Raises:
            InvalidEntityError: If the name is not a known format
        """
        for member in cls:
            if member.value.lower() == (value or "").lower():
                return member
        raise InvalidEntityError(f"invalid AudioFormat: {value}")


class TranscriptStatus(str, Enum):
    """Lifecycle of a transcription job."""

    NOT_STARTED = "NotStarted"
    TRANSCRIBING = "Transcribing"
    SUMMARIZING = "Summarizing"
    DONE = "Done"
    TRANSCRIPTION_FAILED = "TranscriptionFailed"
    SUMMARIZING_FAILED = "SummarizingFailed"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, value: str) -> "TranscriptStatus":
        """
        Parse a canonical status name, ignoring case.

        Raises:
            InvalidEntityError: If the name is not a known status
        """
        for member in cls:
            if member.value.lower() == (value or "").lower():
                return member
        raise InvalidEntityError(f"invalid TranscriptStatus: {value}")

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]

    @property
    def transcript_available(self) -> bool:
        """True once the raw transcript text has been written by the provider."""
        return self in (
            TranscriptStatus.SUMMARIZING,
            TranscriptStatus.DONE,
            TranscriptStatus.SUMMARIZING_FAILED,
        )

    def can_transition_to(self, target: "TranscriptStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: Dict[TranscriptStatus, FrozenSet[TranscriptStatus]] = {
    TranscriptStatus.NOT_STARTED: frozenset({TranscriptStatus.TRANSCRIBING}),
    TranscriptStatus.TRANSCRIBING: frozenset({
        TranscriptStatus.SUMMARIZING,
        TranscriptStatus.TRANSCRIPTION_FAILED,
    }),
    TranscriptStatus.SUMMARIZING: frozenset({
        TranscriptStatus.DONE,
        TranscriptStatus.SUMMARIZING_FAILED,
    }),
    TranscriptStatus.DONE: frozenset(),
    TranscriptStatus.TRANSCRIPTION_FAILED: frozenset(),
    TranscriptStatus.SUMMARIZING_FAILED: frozenset(),
}
