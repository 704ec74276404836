"""Configuration and logging shared across the package."""

from volc_artifact.core.config import ArtifactSettings, get_settings
from volc_artifact.core.logging import artifact_context, configure_logging

__all__ = ["ArtifactSettings", "get_settings", "artifact_context", "configure_logging"]
