"""Checkpoint domain exceptions."""

from src.core.domain.exceptions import DomainException, EntityNotFoundError


class CheckpointMissingError(EntityNotFoundError):
    """Raised when a batch is requested before the checkpoint was initialized."""

    error_code = "CHECKPOINT_MISSING"
    fatal = True

    def __init__(self, location: str):
        super().__init__("Checkpoint", location)


class CheckpointCorruptedError(DomainException):
    """Raised when the persisted checkpoint cannot be decoded."""

    error_code = "CHECKPOINT_CORRUPTED"

    def __init__(self, location: str, reason: str):
        self.location = location
        super().__init__(f"Checkpoint at {location} is corrupted: {reason}")
