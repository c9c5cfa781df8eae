"""
Error taxonomy shared by the transcription core and the HTTP layer.
"""


class DragonspeakError(Exception):
    """Base class for all errors raised by the service."""
    pass


class EntityNotFoundError(DragonspeakError):
    """Raised when a transcript record or stored blob does not exist."""
    pass


class EntityAlreadyExistsError(DragonspeakError):
    """Raised when an entity with the same unique key is already stored."""
    pass


class InvalidEntityError(DragonspeakError):
    """Raised when caller input fails a required-field or enum check."""
    pass


class ConflictedError(DragonspeakError):
    """Raised when an operation is not valid for the entity's current state."""
    pass


class BlobStoreError(DragonspeakError):
    """Raised when the blob store fails for reasons other than a missing key."""
    pass


class TranscriptionProviderError(DragonspeakError):
    """Raised when the transcription provider cannot accept a job."""
    pass
