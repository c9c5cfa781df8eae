"""
Identifier generation for transcription jobs and blob keys.
"""

import uuid


class UUIDProvider:
    """Produces time-and-randomness based identifiers (UUID version 1)."""

    def new_uuid(self) -> str:
        return str(uuid.uuid1())
