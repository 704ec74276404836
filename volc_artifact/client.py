"""Artifact client: runs the upload pipeline for one artifact.

State machine (per invocation):
    idle -> validating -> archiving -> uploading -> done
    any non-terminal state -> failed

The pipeline for upload_artifact():
  1. Validate the artifact name, compression level and upload settings
  2. Resolve the requested files under the root directory
     (packaging/resolver.py, includes the root-escape guard)
  3. Derive the storage key from repository, name and run identity
  4. Build the zip archive on local disk (packaging/archive.py)
  5. Upload it through the configured gateway (storage/*_gateway.py)
  6. Return the size and URL of the stored object

No network call happens before the archive is closed on disk. The archive
is left in place afterwards; cleaning it up is the CI runner's job.
"""

import functools
import tempfile
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from os import PathLike
from pathlib import Path
from typing import Optional, TypeVar

import structlog

from volc_artifact.core.config import ArtifactSettings, get_settings
from volc_artifact.core.logging import artifact_context, configure_logging
from volc_artifact.errors import (
    ArtifactError,
    FilesNotFoundError,
    GatewayError,
    UnsupportedEnvironmentError,
    UploadError,
)
from volc_artifact.packaging.archive import build, validate_compression_level
from volc_artifact.packaging.resolver import resolve
from volc_artifact.packaging.validation import validate_artifact_name
from volc_artifact.storage.factory import get_gateway
from volc_artifact.storage.gateway import UploadGateway
from volc_artifact.storage.keys import (
    RunIdentity,
    artifact_url,
    derive_key,
    upload_timestamp,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

FAILURE_GUIDANCE = (
    "Errors can be temporary, so please try again and optionally run with "
    "debug logging enabled for more information."
)


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class PipelineState(StrEnum):
    IDLE = "idle"
    VALIDATING = "validating"
    ARCHIVING = "archiving"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"


VALID_TRANSITIONS: dict[PipelineState, set[PipelineState]] = {
    PipelineState.IDLE: {PipelineState.VALIDATING, PipelineState.FAILED},
    PipelineState.VALIDATING: {PipelineState.ARCHIVING, PipelineState.FAILED},
    PipelineState.ARCHIVING: {PipelineState.UPLOADING, PipelineState.FAILED},
    PipelineState.UPLOADING: {PipelineState.DONE, PipelineState.FAILED},
}


def validate_transition(current: PipelineState, target: PipelineState) -> None:
    """Enforce the pipeline state machine.

    Raises ValueError if the transition is not allowed.
    """
    allowed = VALID_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise ValueError(
            f"Invalid pipeline state transition: {current} -> {target}. "
            f"Allowed transitions from '{current}': "
            f"{sorted(allowed) or 'none (terminal state)'}"
        )


@dataclass
class PipelineRun:
    """Tracks the state of a single upload_artifact() invocation."""

    artifact_name: str
    state: PipelineState = PipelineState.IDLE
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    failure: Optional[str] = None

    def advance(self, target: PipelineState) -> None:
        validate_transition(self.state, target)
        logger.debug("pipeline_transition", source=str(self.state), target=str(target))
        self.state = target
        self.history.append(target)

    def fail(self, exc: BaseException) -> None:
        if self.state in (PipelineState.DONE, PipelineState.FAILED):
            return
        self.failure = type(exc).__name__
        self.advance(PipelineState.FAILED)


# ---------------------------------------------------------------------------
# Options / results
# ---------------------------------------------------------------------------


@dataclass
class UploadOptions:
    """Per-call overrides. Unset values fall back to ArtifactSettings."""

    compression_level: Optional[int] = None
    archive_directory: Optional[str | PathLike] = None


@dataclass
class UploadResult:
    """Outcome of a successful upload.

    url is composed from the public endpoint and the key; it does not imply
    the object is publicly readable.
    """

    size_bytes: int
    url: str
    key: str

    def to_dict(self) -> dict:
        return {"size": self.size_bytes, "url": self.url, "key": self.key}


# ---------------------------------------------------------------------------
# Boundary error handling
# ---------------------------------------------------------------------------


def artifact_operation(operation: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Log failures of a public operation once, then re-raise unchanged."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except ArtifactError as exc:
                logger.warning(
                    f"{operation} failed with error: {exc}.\n\n{FAILURE_GUIDANCE}",
                    error_type=type(exc).__name__,
                )
                raise
            except Exception:
                logger.exception(f"{operation} failed with an unexpected error")
                raise

        return wrapper

    return decorator


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class ArtifactClient:
    """Uploads artifacts for one CI job.

    Holds only immutable configuration, so a single client may serve
    concurrent uploads of different artifacts.

    Args:
        settings: Upload configuration; read from the environment if omitted.
        gateway: Object-store gateway; built from settings if omitted.
        run: Run identity; taken from settings when omitted. Without one,
            keys carry an upload-time timestamp instead.
        clock: Returns the current UTC time; used for timestamp keys.
    """

    def __init__(
        self,
        settings: Optional[ArtifactSettings] = None,
        gateway: Optional[UploadGateway] = None,
        run: Optional[RunIdentity] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._settings = settings or get_settings()
        self._gateway = gateway
        self._run = run or RunIdentity.from_values(
            self._settings.workflow_run_id,
            self._settings.workflow_job_run_id,
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def settings(self) -> ArtifactSettings:
        return self._settings

    @property
    def gateway(self) -> UploadGateway:
        if self._gateway is None:
            self._gateway = get_gateway(self._settings)
        return self._gateway

    @artifact_operation("Artifact upload")
    def upload_artifact(
        self,
        name: str,
        files: Sequence[str | PathLike],
        root_directory: str | PathLike,
        options: Optional[UploadOptions] = None,
    ) -> UploadResult:
        """Archive `files` under `root_directory` and upload them as `name`.

        Raises:
            UnsupportedEnvironmentError: On hosts flagged as legacy.
            ArtifactValidationError: For a bad name, root, path or level.
            FilesNotFoundError: If none of the files exist.
            ArchiveError: If the archive could not be written.
            UploadError: If the gateway failed; not retried.
        """
        with artifact_context(name):
            run = PipelineRun(artifact_name=name)
            try:
                return self._execute(run, name, files, root_directory, options or UploadOptions())
            except Exception as exc:
                run.fail(exc)
                raise

    def _execute(
        self,
        run: PipelineRun,
        name: str,
        files: Sequence[str | PathLike],
        root_directory: str | PathLike,
        options: UploadOptions,
    ) -> UploadResult:
        settings = self._settings

        if settings.legacy_host:
            raise UnsupportedEnvironmentError()

        # 1. Validation: nothing touches the filesystem before the name passes
        run.advance(PipelineState.VALIDATING)
        validate_artifact_name(name)

        level = (
            options.compression_level
            if options.compression_level is not None
            else settings.compression_level
        )
        validate_compression_level(level)
        settings.require_upload_config()
        gateway = self.gateway

        spec = resolve(files, root_directory)
        if not spec.entries:
            raise FilesNotFoundError(spec.missing)

        timestamp = None if self._run else upload_timestamp(self._clock())
        key = derive_key(settings.github_repository, name, self._run, timestamp)

        archive_directory = Path(
            options.archive_directory
            or settings.archive_directory
            or tempfile.gettempdir()
        )
        archive_path = archive_directory / key.rsplit("/", 1)[-1]

        # 2. Archive: fully written and closed before any network call
        run.advance(PipelineState.ARCHIVING)
        logger.info(
            "archive_started",
            entries=len(spec),
            missing=len(spec.missing),
            compression_level=level,
        )
        archive_directory.mkdir(parents=True, exist_ok=True)
        size = build(archive_path, spec, level)

        # 3. Upload: single attempt
        run.advance(PipelineState.UPLOADING)
        try:
            gateway.put_object(
                settings.bucket_name,
                key,
                str(archive_path),
                {"content-length": str(size)},
            )
        except GatewayError as exc:
            raise UploadError(exc.kind, key, exc) from exc

        run.advance(PipelineState.DONE)
        url = artifact_url(settings.public_endpoint, settings.bucket_name, key)
        result = UploadResult(size_bytes=size, url=url, key=key)
        logger.info("artifact_uploaded", **result.to_dict())
        return result


# ---------------------------------------------------------------------------
# Module-level convenience
# ---------------------------------------------------------------------------

_default_client: Optional[ArtifactClient] = None


def get_client() -> ArtifactClient:
    """Return the process-wide client built from environment settings.

    Logging is configured from DEBUG the first time the client is built.
    """
    global _default_client
    if _default_client is None:
        settings = get_settings()
        configure_logging(debug=settings.debug)
        _default_client = ArtifactClient(settings=settings)
    return _default_client


def upload_artifact(
    name: str,
    files: Sequence[str | PathLike],
    root_directory: str | PathLike,
    options: Optional[UploadOptions] = None,
) -> UploadResult:
    """Upload an artifact with the default client. See ArtifactClient.upload_artifact."""
    return get_client().upload_artifact(name, files, root_directory, options)
