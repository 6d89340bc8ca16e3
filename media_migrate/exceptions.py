"""
Custom exception hierarchy for the media migrator.

Collaborator failures (OS errors, subprocess errors, parser errors) are
wrapped into these types at the boundary where they happen, so each stage
only has to decide which of them are fatal.
"""
from typing import Optional


class MediaMigrateError(Exception):
    """Base exception for all media migrator errors."""
    pass


class FileHashError(MediaMigrateError):
    """Raised when a file cannot be read while computing its digest."""
    pass


class MetadataExtractionError(MediaMigrateError):
    """Raised when embedded metadata exists but cannot be read."""
    pass


class ManifestError(MediaMigrateError):
    """Raised when a manifest cannot be opened or a line fails to parse."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class FileOperationError(MediaMigrateError):
    """Raised when a copy fails during apply."""
    pass


class TranscodeError(MediaMigrateError):
    """Raised when ffmpeg cannot produce the requested output."""
    pass
