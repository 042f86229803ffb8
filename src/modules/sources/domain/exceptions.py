"""Source domain exceptions."""

from pathlib import Path

from src.core.domain.exceptions import DomainException


class FetchError(DomainException):
    """Raised when a subscription cannot be fetched (network, timeout, size limit)."""

    error_code = "FETCH_ERROR"

    def __init__(self, url: str, cause: str):
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to fetch {url}: {cause}")


class ParseError(DomainException):
    """Raised when a playlist document yields no usable entries."""

    error_code = "PARSE_ERROR"


class FileAccessError(DomainException):
    """Raised when a downloaded subscription file cannot be read."""

    error_code = "FILE_ACCESS_ERROR"

    def __init__(self, path: Path, cause: str):
        self.path = path
        super().__init__(f"Cannot read subscription file {path}: {cause}")


class TempDirectoryError(DomainException):
    """Raised when the download directory cannot be created."""

    error_code = "TEMP_DIRECTORY_ERROR"
    fatal = True

    def __init__(self, path: Path, cause: str):
        self.path = path
        super().__init__(f"Cannot create download directory under {path}: {cause}")
