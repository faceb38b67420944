"""
Custom exception hierarchy for the album arranger.

This module defines a structured hierarchy of exceptions that allows for
precise error handling and clear separation of different failure modes.
"""


class MusicOrganizerError(Exception):
    """Base class for all application-specific errors."""
    pass


class ConfigurationError(MusicOrganizerError):
    """Raised when there are configuration-related issues."""
    pass


class FileProcessingError(MusicOrganizerError):
    """Base class for errors during file classification or pre-processing."""
    pass


class FileClassificationError(FileProcessingError):
    """Raised when a file name cannot be mapped to a file role."""

    code = "BAD_EXT"

    def __init__(self, file_name: str, message: str):
        self.file_name = file_name
        super().__init__(message)


class MissingExtensionError(FileClassificationError):
    """Raised when a file name carries no extension at all."""

    code = "NO_EXT"

    def __init__(self, file_name: str):
        super().__init__(file_name, f"File has no extension: {file_name}")


class UnknownExtensionError(FileClassificationError):
    """Raised when a file extension is not one of the known ones."""

    code = "BAD_EXT"

    def __init__(self, file_name: str, extension: str):
        self.extension = extension
        super().__init__(file_name, f"Unknown extension '{extension}' for file: {file_name}")


class TagStoreError(FileProcessingError):
    """Base class for tag store failures."""

    def __init__(self, file_path: str, reason: str = None):
        self.file_path = file_path
        self.reason = reason
        super().__init__(self._describe(file_path, reason))

    def _describe(self, file_path: str, reason: str = None) -> str:
        message = f"Tag store error on file: {file_path}"
        if reason:
            message += f" - {reason}"
        return message


class TagReadError(TagStoreError):
    """Raised when the tags of an audio file cannot be read."""

    def _describe(self, file_path: str, reason: str = None) -> str:
        message = f"Failed to read tags from file: {file_path}"
        if reason:
            message += f" - {reason}"
        return message


class TagWriteError(TagStoreError):
    """Raised when a tag cannot be written to or deleted from an audio file."""

    def __init__(self, file_path: str, key: str, reason: str = None):
        self.key = key
        super().__init__(file_path, reason)

    def _describe(self, file_path: str, reason: str = None) -> str:
        message = f"Failed to write tag {self.key} to file: {file_path}"
        if reason:
            message += f" - {reason}"
        return message


class FilesystemError(MusicOrganizerError):
    """Raised when filesystem operations fail."""

    def __init__(self, path: str, operation: str, reason: str = None):
        self.path = path
        self.operation = operation
        self.reason = reason

        message = f"Filesystem error during {operation} on {path}"
        if reason:
            message += f": {reason}"

        super().__init__(message)


class OrganizationError(MusicOrganizerError):
    """Raised when an album cannot be relocated into the destination tree."""

    def __init__(self, source_path: str, dest_path: str, reason: str = None):
        self.source_path = source_path
        self.dest_path = dest_path
        self.reason = reason

        message = f"Failed to organize '{source_path}' into '{dest_path}'"
        if reason:
            message += f": {reason}"

        super().__init__(message)
