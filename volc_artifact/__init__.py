"""Upload CI job outputs as zip artifacts to an S3-compatible object store.

Public API:
    upload_artifact(name, files, root_directory, options) -> UploadResult
    ArtifactClient, UploadOptions, UploadResult, RunIdentity
"""

from volc_artifact.client import (
    ArtifactClient,
    UploadOptions,
    UploadResult,
    get_client,
    upload_artifact,
)
from volc_artifact.core.config import ArtifactSettings
from volc_artifact.errors import (
    ArchiveError,
    ArtifactError,
    ArtifactValidationError,
    ConfigurationError,
    DuplicateEntryError,
    FilesNotFoundError,
    GatewayError,
    GatewayErrorKind,
    InvalidArtifactName,
    InvalidCompressionLevel,
    InvalidPathError,
    InvalidRootDirectory,
    InvalidStorageKey,
    PathEscapesRoot,
    UnsupportedEnvironmentError,
    UploadError,
)
from volc_artifact.storage.keys import RunIdentity

__all__ = [
    "upload_artifact",
    "get_client",
    "ArtifactClient",
    "ArtifactSettings",
    "UploadOptions",
    "UploadResult",
    "RunIdentity",
    "ArtifactError",
    "ArtifactValidationError",
    "InvalidArtifactName",
    "InvalidRootDirectory",
    "PathEscapesRoot",
    "InvalidPathError",
    "DuplicateEntryError",
    "InvalidCompressionLevel",
    "InvalidStorageKey",
    "FilesNotFoundError",
    "ArchiveError",
    "UploadError",
    "GatewayError",
    "GatewayErrorKind",
    "UnsupportedEnvironmentError",
    "ConfigurationError",
]
