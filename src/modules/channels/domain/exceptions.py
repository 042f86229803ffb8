"""Channel domain exceptions."""

from pathlib import Path

from src.core.domain.exceptions import DomainException


class CatalogReadError(DomainException):
    """Raised when the channel catalog cannot be read or parsed."""

    error_code = "CATALOG_READ_ERROR"
    fatal = True

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Failed to read catalog {path}: {reason}")


class OutputStoreReadError(DomainException):
    """Raised when an existing output file is unreadable."""

    error_code = "OUTPUT_READ_ERROR"
    fatal = True

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Failed to read output store {path}: {reason}")
