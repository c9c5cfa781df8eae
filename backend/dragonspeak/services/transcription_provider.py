"""
Adapters for the external speech-to-text engine.

Jobs are handed to the engine by publishing a request on a Kafka topic;
the engine reads audio from the blob store and writes the transcript back
to the requested output key. The engine reports progress on a second,
compacted topic keyed by job name.
"""

import asyncio
import json
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from kafka import KafkaConsumer, KafkaProducer
from kafka.errors import KafkaError

from dragonspeak.errors import EntityNotFoundError, InvalidEntityError, TranscriptionProviderError
from dragonspeak.models.enums import AudioFormat, TranscriptStatus
from dragonspeak.utils.logger import get_logger

logger = get_logger(__name__)


_MEDIA_FORMATS: Dict[AudioFormat, str] = {
    AudioFormat.MP3: "mp3",
    AudioFormat.MP4: "mp4",
    AudioFormat.WAV: "wav",
    AudioFormat.FLAC: "flac",
    AudioFormat.AMR: "amr",
    AudioFormat.OGG: "ogg",
    AudioFormat.WEBM: "webm",
}


def audio_format_to_media_format(audio_format: AudioFormat) -> str:
    """
    Map an AudioFormat onto the engine's media format string.

    Raises:
        InvalidEntityError: If the engine does not accept the format
    """
    try:
        return _MEDIA_FORMATS[audio_format]
    except KeyError:
        raise InvalidEntityError(f"unsupported media format: {audio_format}")


class ProviderJobStatus(str, Enum):
    """Job states reported by the speech-to-text engine."""

    QUEUED = "QUEUED"
    IN_PROGRESS = "IN_PROGRESS"
    FAILED = "FAILED"
    COMPLETED = "COMPLETED"

    @classmethod
    def from_string(cls, value: str) -> "ProviderJobStatus":
        for member in cls:
            if member.value.lower() == (value or "").lower():
                return member
        raise InvalidEntityError(f"invalid ProviderJobStatus: {value}")

    def to_transcript_status(self) -> TranscriptStatus:
        """
        Status a transcript should hold once the engine reports this state.

        A completed transcription hands over to the summary step.
        """
        if self is ProviderJobStatus.FAILED:
            return TranscriptStatus.TRANSCRIPTION_FAILED
        if self is ProviderJobStatus.COMPLETED:
            return TranscriptStatus.SUMMARIZING
        return TranscriptStatus.TRANSCRIBING


class TranscriptionProvider(ABC):
    """Asynchronous, off-process speech-to-text engine."""

    @abstractmethod
    async def start_transcription_job(
        self,
        job_name: str,
        audio_location: str,
        result_location: str,
        audio_format: AudioFormat,
    ) -> None:
        """
        Ask the engine to transcribe ``audio_location`` into ``result_location``.

        Raises:
            InvalidEntityError: If the audio format is not supported
            TranscriptionProviderError: If the engine could not accept the job
        """
        pass

    @abstractmethod
    async def get_transcription_job_status(self, job_name: str) -> ProviderJobStatus:
        """
        Report the engine's current state for a job.

        Raises:
            EntityNotFoundError: If the engine knows no job by that name
            TranscriptionProviderError: If the engine could not be queried
        """
        pass


class KafkaTranscriptionProvider(TranscriptionProvider):
    """
    Publishes transcription requests to the engine's Kafka topic and reads
    job states back from its status topic.

    Producer and consumer are created lazily so the API can start while the
    broker is still coming up; the first call surfaces connection errors.
    One instance is shared by all requests, so both are created under locks.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        topic: str,
        bucket: str,
        language_code: str = "en-US",
        send_timeout: float = 10.0,
        status_topic: str = "transcription-job-status",
        status_poll_timeout_ms: int = 1000,
        producer: Optional[KafkaProducer] = None,
        consumer: Optional[KafkaConsumer] = None,
    ) -> None:
        self.bootstrap_servers = bootstrap_servers
        self.topic = topic
        self.bucket = bucket
        self.language_code = language_code
        self.send_timeout = send_timeout
        self.status_topic = status_topic
        self.status_poll_timeout_ms = status_poll_timeout_ms
        self.producer: Optional[KafkaProducer] = producer
        self.consumer: Optional[KafkaConsumer] = consumer
        self._job_statuses: Dict[str, ProviderJobStatus] = {}
        self._producer_lock = threading.Lock()
        self._status_lock = threading.Lock()

    def _get_producer(self) -> KafkaProducer:
        """
        Return the Kafka producer, connecting on first use.

        Raises:
            TranscriptionProviderError: If unable to connect to Kafka
        """
        if self.producer is not None:
            return self.producer

        with self._producer_lock:
            if self.producer is not None:
                return self.producer

            try:
                self.producer = KafkaProducer(
                    bootstrap_servers=self.bootstrap_servers.split(','),
                    value_serializer=lambda v: json.dumps(v).encode('utf-8'),
                    key_serializer=lambda k: str(k).encode('utf-8') if k else None,
                    acks='all',  # Wait for all replicas to acknowledge
                    retries=3,
                    retry_backoff_ms=100
                )
                logger.info("Kafka producer initialized",
                           bootstrap_servers=self.bootstrap_servers)
                return self.producer

            except KafkaError as e:
                logger.error("Failed to initialize Kafka producer", error=str(e))
                raise TranscriptionProviderError(f"Cannot connect to Kafka: {str(e)}") from e

    def _get_consumer(self) -> KafkaConsumer:
        """
        Return the status topic consumer, connecting on first use.

        No consumer group is used: every process replays the compacted
        status topic from the beginning and keeps the latest state per job.
        Callers must hold ``_status_lock``.

        Raises:
            TranscriptionProviderError: If unable to connect to Kafka
        """
        if self.consumer is not None:
            return self.consumer

        try:
            self.consumer = KafkaConsumer(
                self.status_topic,
                bootstrap_servers=self.bootstrap_servers.split(','),
                value_deserializer=lambda m: json.loads(m.decode('utf-8')),
                key_deserializer=lambda m: m.decode('utf-8') if m else None,
                group_id=None,
                auto_offset_reset='earliest',
                enable_auto_commit=False,
            )
            logger.info("Kafka status consumer initialized",
                       topic=self.status_topic,
                       bootstrap_servers=self.bootstrap_servers)
            return self.consumer

        except KafkaError as e:
            logger.error("Failed to initialize Kafka status consumer", error=str(e))
            raise TranscriptionProviderError(f"Cannot connect to Kafka: {str(e)}") from e

    def build_job_message(
        self,
        job_name: str,
        audio_location: str,
        result_location: str,
        audio_format: AudioFormat,
    ) -> Dict[str, Any]:
        return {
            "job_name": job_name,
            "language_code": self.language_code,
            "media_format": audio_format_to_media_format(audio_format),
            "media_uri": f"blob://{self.bucket}/{audio_location}",
            "output_bucket": self.bucket,
            "output_key": result_location,
            "requested_at": datetime.now(timezone.utc).isoformat(),
        }

    def _publish(self, job_name: str, message: Dict[str, Any]) -> None:
        producer = self._get_producer()
        try:
            future = producer.send(topic=self.topic, key=job_name, value=message)
            record_metadata = future.get(timeout=self.send_timeout)

        except KafkaError as e:
            logger.error("Kafka publish error", job_name=job_name, error=str(e))
            raise TranscriptionProviderError(f"Failed to publish transcription job: {str(e)}") from e

        with self._status_lock:
            self._job_statuses.setdefault(job_name, ProviderJobStatus.QUEUED)

        logger.info("Transcription job published to Kafka",
                   job_name=job_name,
                   topic=record_metadata.topic,
                   partition=record_metadata.partition,
                   offset=record_metadata.offset)

    async def start_transcription_job(
        self,
        job_name: str,
        audio_location: str,
        result_location: str,
        audio_format: AudioFormat,
    ) -> None:
        message = self.build_job_message(job_name, audio_location, result_location, audio_format)
        await asyncio.to_thread(self._publish, job_name, message)

    def apply_status_update(self, key: Optional[str], value: Optional[Dict[str, Any]]) -> None:
        """Record one message from the status topic; malformed messages are skipped."""
        value = value or {}
        job_name = value.get("job_name") or key
        if not job_name:
            logger.warning("Status update without job name", key=key)
            return

        try:
            status = ProviderJobStatus.from_string(value.get("status"))
        except InvalidEntityError as e:
            logger.warning("Ignoring status update", job_name=job_name, error=str(e))
            return

        self._job_statuses[job_name] = status

    def _lookup_status(self, job_name: str) -> ProviderJobStatus:
        with self._status_lock:
            consumer = self._get_consumer()
            try:
                batches = consumer.poll(timeout_ms=self.status_poll_timeout_ms)
            except KafkaError as e:
                logger.error("Kafka status poll error", job_name=job_name, error=str(e))
                raise TranscriptionProviderError(f"Failed to read transcription job status: {str(e)}") from e

            for records in batches.values():
                for record in records:
                    self.apply_status_update(record.key, record.value)

            status = self._job_statuses.get(job_name)

        if status is None:
            raise EntityNotFoundError(f"Transcription job {job_name} not found")

        logger.info("Transcription job status read", job_name=job_name, provider_status=status.value)
        return status

    async def get_transcription_job_status(self, job_name: str) -> ProviderJobStatus:
        return await asyncio.to_thread(self._lookup_status, job_name)

    def close(self) -> None:
        """Close the Kafka producer and consumer connections."""
        with self._producer_lock:
            if self.producer:
                try:
                    self.producer.close(timeout=5)
                    logger.info("Kafka producer closed")
                except KafkaError as e:
                    logger.error("Error closing Kafka producer", error=str(e))
                finally:
                    self.producer = None

        with self._status_lock:
            if self.consumer:
                try:
                    self.consumer.close()
                    logger.info("Kafka status consumer closed")
                except KafkaError as e:
                    logger.error("Error closing Kafka status consumer", error=str(e))
                finally:
                    self.consumer = None
