"""Packaging module for resolving and archiving artifact files.

Public API:
    resolve(requested_paths, root_directory) -> UploadSpecification
    build(destination, spec, compression_level) -> int
"""

from volc_artifact.packaging.archive import DEFAULT_COMPRESSION_LEVEL, build
from volc_artifact.packaging.resolver import resolve, validate_root_directory
from volc_artifact.packaging.types import ArchiveEntry, EntryKind, UploadSpecification
from volc_artifact.packaging.validation import validate_artifact_name

__all__ = [
    "resolve",
    "validate_root_directory",
    "build",
    "DEFAULT_COMPRESSION_LEVEL",
    "ArchiveEntry",
    "EntryKind",
    "UploadSpecification",
    "validate_artifact_name",
]
