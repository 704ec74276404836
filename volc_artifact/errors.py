"""Error taxonomy for the artifact upload pipeline.

Every failure surfaced to callers derives from ArtifactError, so a single
except clause can catch the whole family. Validation errors are raised
before the archive is written or the network is touched.

    ArtifactError
    ├── ArtifactValidationError
    │   ├── InvalidArtifactName
    │   ├── InvalidRootDirectory
    │   ├── PathEscapesRoot
    │   ├── InvalidPathError
    │   ├── DuplicateEntryError
    │   ├── InvalidCompressionLevel
    │   └── InvalidStorageKey
    ├── FilesNotFoundError
    ├── ArchiveError
    ├── UploadError
    ├── UnsupportedEnvironmentError
    ├── ConfigurationError
    └── GatewayError
"""

from enum import StrEnum
from typing import Optional


class GatewayErrorKind(StrEnum):
    """Normalized failure classes reported by upload gateways."""

    AUTH = "auth"
    NETWORK = "network"
    QUOTA = "quota"
    SERVER = "server"


class ArtifactError(Exception):
    """Base class for all artifact pipeline failures."""


class ArtifactValidationError(ArtifactError):
    """Raised when caller input is rejected before any side effect."""


class InvalidArtifactName(ArtifactValidationError):
    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Artifact name is not valid: {name!r}. {reason}")


class InvalidRootDirectory(ArtifactValidationError):
    def __init__(self, root_directory: str, reason: str):
        self.root_directory = root_directory
        super().__init__(
            f"The provided rootDirectory {root_directory} {reason}"
        )


class PathEscapesRoot(ArtifactValidationError):
    """A requested path does not live under the declared root directory."""

    def __init__(self, path: str, root_directory: str):
        self.path = path
        self.root_directory = root_directory
        super().__init__(
            f"The rootDirectory: {root_directory} is not a parent directory "
            f"of the file: {path}"
        )


class InvalidPathError(ArtifactValidationError):
    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"The path for one of the files in artifact is not valid: {path}. {reason}")


class DuplicateEntryError(ArtifactValidationError):
    def __init__(self, destination_path: str):
        self.destination_path = destination_path
        super().__init__(
            f"Multiple files map to the same archive path: {destination_path}"
        )


class InvalidCompressionLevel(ArtifactValidationError):
    def __init__(self, level: object):
        self.level = level
        super().__init__(
            f"Invalid compression level {level!r}. Valid values are 0-9"
        )


class InvalidStorageKey(ArtifactValidationError):
    pass


class FilesNotFoundError(ArtifactError):
    """No requested path resolved to an archivable entry.

    Carries the requested paths that did not exist so callers can report
    them.
    """

    def __init__(self, files: Optional[list[str]] = None):
        self.files = list(files or [])
        message = "No files were found to upload"
        if self.files:
            message = f"{message}: {', '.join(self.files)}"
        super().__init__(message)


class ArchiveError(ArtifactError):
    """Fatal I/O failure while building the archive."""


class GatewayError(ArtifactError):
    """Raised by gateway implementations on a failed put.

    Carries the failure kind and original error for upstream logging.
    """

    def __init__(
        self,
        kind: GatewayErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
    ):
        self.kind = kind
        self.cause = cause
        super().__init__(f"[{kind}] {message}")


class UploadError(ArtifactError):
    """The gateway rejected or failed the upload.

    `key` is the storage key that was attempted; `cause` is the gateway
    error exactly as raised.
    """

    def __init__(self, kind: GatewayErrorKind, key: str, cause: Optional[BaseException] = None):
        self.kind = kind
        self.key = key
        self.cause = cause
        super().__init__(f"Upload of {key} failed ({kind}): {cause}")


class UnsupportedEnvironmentError(ArtifactError):
    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "Artifact upload is not supported on this host. "
            "Legacy on-premises servers are not supported by this client."
        )


class ConfigurationError(ArtifactError):
    pass
