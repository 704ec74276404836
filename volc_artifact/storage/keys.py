"""Storage key derivation for uploaded artifacts.

Keys follow:
    artifacts/{repository}/{name}-{workflow_run_id}-{job_run_id}.zip

The run identity keeps artifacts of the same name from different runs or
jobs apart, while a retried upload of the same run/job/name lands on the
same key. This layout is how previously uploaded artifacts are found, so
changing it needs a versioned prefix.

When no run identity is available, an upload-time UTC timestamp takes its
place:
    artifacts/{repository}/{name}-{YYYYMMDDTHHMMSSZ}.zip
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from volc_artifact.errors import InvalidStorageKey
from volc_artifact.packaging.validation import validate_artifact_name

KEY_PREFIX = "artifacts"
ARCHIVE_SUFFIX = ".zip"


@dataclass(frozen=True)
class RunIdentity:
    """Opaque (workflow run, job run) pair scoping an artifact to one execution."""

    workflow_run_id: str
    job_run_id: str

    @classmethod
    def from_values(
        cls,
        workflow_run_id: Optional[str],
        job_run_id: Optional[str],
    ) -> Optional["RunIdentity"]:
        """Return a RunIdentity, or None unless both ids are non-empty."""
        if not workflow_run_id or not job_run_id:
            return None
        return cls(workflow_run_id=str(workflow_run_id), job_run_id=str(job_run_id))


def upload_timestamp(now: Optional[datetime] = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _validate_repository(repository: str) -> None:
    """Reject repository identifiers that would break the key layout."""
    if not repository:
        raise InvalidStorageKey("Repository identifier must not be empty")
    if repository.startswith("/") or repository.endswith("/"):
        raise InvalidStorageKey(
            f"Repository identifier must not start or end with '/': {repository!r}"
        )
    if "\\" in repository or "\x00" in repository:
        raise InvalidStorageKey(
            f"Invalid repository identifier: forbidden character: {repository!r}"
        )
    if any(part in ("", ".", "..") for part in repository.split("/")):
        raise InvalidStorageKey(
            f"Invalid repository identifier: path traversal detected: {repository!r}"
        )


def archive_file_name(
    artifact_name: str,
    run: Optional[RunIdentity],
    timestamp: Optional[str] = None,
) -> str:
    """Return the `<name>-<run>-<job>.zip` file name for an artifact.

    Raises:
        InvalidArtifactName: If the name is malformed.
        InvalidStorageKey: If neither run nor timestamp is given.
    """
    validate_artifact_name(artifact_name)

    if run is not None:
        return f"{artifact_name}-{run.workflow_run_id}-{run.job_run_id}{ARCHIVE_SUFFIX}"
    if not timestamp:
        raise InvalidStorageKey(
            "A timestamp is required when no run identity is available"
        )
    return f"{artifact_name}-{timestamp}{ARCHIVE_SUFFIX}"


def derive_key(
    repository: str,
    artifact_name: str,
    run: Optional[RunIdentity],
    timestamp: Optional[str] = None,
) -> str:
    """Compose the storage key. Pure; same inputs always give the same key.

    Raises:
        InvalidArtifactName: If the name is malformed.
        InvalidStorageKey: If the repository is malformed, or neither run
            nor timestamp is given.
    """
    file_name = archive_file_name(artifact_name, run, timestamp)
    _validate_repository(repository)
    return f"{KEY_PREFIX}/{repository}/{file_name}"


def artifact_url(public_endpoint: str, bucket: str, key: str) -> str:
    """Virtual-hosted style URL for a stored object.

    The URL is where the object would be served from; whether it is
    publicly readable depends on the bucket policy.
    """
    return f"https://{bucket}.{public_endpoint}/{key}"
