from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from volc_artifact.errors import ConfigurationError

SUPPORTED_BACKENDS = ("s3", "http")


class ArtifactSettings(BaseSettings):
    """Upload settings loaded from environment variables.

    Environment names match the CI runner's variables, case-insensitive:
    BUCKET_NAME, GITHUB_REPOSITORY, PUBLIC_ENDPOINT, ACCESS_KEY,
    SECRET_KEY, REGION and ENDPOINT.

    Endpoint selection
    ──────────────────
    • ENDPOINT unset   : secure default endpoint derived from REGION
    • ENDPOINT=host    : explicit plain-HTTP endpoint (local MinIO, tests)

    Everything is validated once when the object is built; the pipeline
    never reads process state itself.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Object store
    bucket_name: str = ""
    github_repository: str = ""
    public_endpoint: str = ""
    access_key: str = ""
    secret_key: str = ""
    region: str = ""
    endpoint: str = ""

    # "s3" talks to an S3-compatible API via boto3, "http" PUTs to ENDPOINT.
    gateway_backend: str = "s3"
    upload_timeout_seconds: float = 300.0

    # Archive
    compression_level: int = 6
    archive_directory: Optional[str] = None

    # Run identity, when the caller exports it.
    workflow_run_id: str = ""
    workflow_job_run_id: str = ""

    # Set by hosts that cannot accept uploads (legacy on-prem servers).
    legacy_host: bool = False

    debug: bool = False

    @field_validator("gateway_backend", mode="before")
    @classmethod
    def normalise_backend(cls, v: str) -> str:
        backend = (v or "s3").strip().lower()
        if backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Unknown gateway backend '{v}'. Valid options: {', '.join(SUPPORTED_BACKENDS)}"
            )
        return backend

    @field_validator("compression_level")
    @classmethod
    def check_compression_level(cls, v: int) -> int:
        if not 0 <= v <= 9:
            raise ValueError(f"compression_level must be between 0 and 9 (got {v})")
        return v

    @field_validator("github_repository", mode="before")
    @classmethod
    def strip_repository_slashes(cls, v: str) -> str:
        return (v or "").strip().strip("/")

    def require_upload_config(self) -> None:
        """Raise ConfigurationError if values needed for an upload are missing."""
        missing = [
            env_name
            for env_name, value in (
                ("BUCKET_NAME", self.bucket_name),
                ("GITHUB_REPOSITORY", self.github_repository),
                ("PUBLIC_ENDPOINT", self.public_endpoint),
            )
            if not value
        ]
        if self.gateway_backend == "http" and not self.endpoint:
            missing.append("ENDPOINT")
        if missing:
            raise ConfigurationError(
                f"Missing required artifact configuration: {', '.join(missing)}"
            )


def get_settings() -> ArtifactSettings:
    return ArtifactSettings()
