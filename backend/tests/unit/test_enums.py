"""
Tests for transcript status and audio format enumerations.
"""

import pytest

from dragonspeak.errors import InvalidEntityError
from dragonspeak.models.enums import AudioFormat, TranscriptStatus


class TestAudioFormat:
    """Test AudioFormat parsing and naming."""

    @pytest.mark.parametrize("audio_format", list(AudioFormat))
    def test_round_trip(self, audio_format: AudioFormat) -> None:
        """Test every format survives string conversion."""
        name = str(audio_format)
        assert str(AudioFormat.from_string(name)) == name
        assert AudioFormat.from_string(name) is audio_format

    def test_canonical_names(self) -> None:
        """Test canonical names match the stored values."""
        assert [f.value for f in AudioFormat] == ["MP3", "MP4", "WAV", "FLAC", "AMR", "OGG", "WebM"]

    @pytest.mark.parametrize("name", ["webm", "WEBM", "WebM", "wEbM"])
    def test_parse_case_insensitive(self, name: str) -> None:
        """Test parsing ignores case."""
        assert AudioFormat.from_string(name) is AudioFormat.WEBM

    @pytest.mark.parametrize("name", ["AAC", "", "mp3 ", None])
    def test_parse_invalid(self, name: str) -> None:
        """Test unknown names are rejected rather than defaulted."""
        with pytest.raises(InvalidEntityError, match="invalid AudioFormat"):
            AudioFormat.from_string(name)


class TestTranscriptStatus:
    """Test TranscriptStatus parsing and lifecycle rules."""

    @pytest.mark.parametrize("status", list(TranscriptStatus))
    def test_round_trip(self, status: TranscriptStatus) -> None:
        """Test every status survives string conversion."""
        name = str(status)
        assert str(TranscriptStatus.from_string(name)) == name

    @pytest.mark.parametrize("name", ["done", "Done", "DONE"])
    def test_parse_case_insensitive(self, name: str) -> None:
        """Test parsing ignores case."""
        assert TranscriptStatus.from_string(name) is TranscriptStatus.DONE

    def test_parse_invalid(self) -> None:
        """Test unknown status names are rejected."""
        with pytest.raises(InvalidEntityError, match="invalid TranscriptStatus"):
            TranscriptStatus.from_string("Finished")

    def test_forward_transitions(self) -> None:
        """Test the allowed lifecycle transitions."""
        assert TranscriptStatus.NOT_STARTED.can_transition_to(TranscriptStatus.TRANSCRIBING)
        assert TranscriptStatus.TRANSCRIBING.can_transition_to(TranscriptStatus.SUMMARIZING)
        assert TranscriptStatus.TRANSCRIBING.can_transition_to(TranscriptStatus.TRANSCRIPTION_FAILED)
        assert TranscriptStatus.SUMMARIZING.can_transition_to(TranscriptStatus.DONE)
        assert TranscriptStatus.SUMMARIZING.can_transition_to(TranscriptStatus.SUMMARIZING_FAILED)

    def test_no_backward_or_skipping_transitions(self) -> None:
        """Test status never moves backward or skips a step."""
        assert not TranscriptStatus.SUMMARIZING.can_transition_to(TranscriptStatus.TRANSCRIBING)
        assert not TranscriptStatus.TRANSCRIBING.can_transition_to(TranscriptStatus.DONE)
        assert not TranscriptStatus.TRANSCRIBING.can_transition_to(TranscriptStatus.TRANSCRIBING)

    @pytest.mark.parametrize("status", [
        TranscriptStatus.DONE,
        TranscriptStatus.TRANSCRIPTION_FAILED,
        TranscriptStatus.SUMMARIZING_FAILED,
    ])
    def test_terminal_statuses(self, status: TranscriptStatus) -> None:
        """Test terminal statuses have no outgoing transitions."""
        assert status.is_terminal
        assert not any(status.can_transition_to(target) for target in TranscriptStatus)

    def test_transcript_available(self) -> None:
        """Test which statuses imply the transcript text exists."""
        available = {s for s in TranscriptStatus if s.transcript_available}
        assert available == {
            TranscriptStatus.SUMMARIZING,
            TranscriptStatus.DONE,
            TranscriptStatus.SUMMARIZING_FAILED,
        }
