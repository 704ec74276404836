"""Upload gateway factory.

Returns the gateway implementation selected by configuration. The backend
name is validated eagerly so callers get a clear error at configuration
time rather than at upload time.
"""

import logging

from volc_artifact.core.config import ArtifactSettings
from volc_artifact.errors import ConfigurationError
from volc_artifact.storage.gateway import UploadGateway

logger = logging.getLogger(__name__)


def _build_s3(settings: ArtifactSettings) -> UploadGateway:
    from volc_artifact.storage.s3_gateway import S3Gateway

    return S3Gateway(
        access_key=settings.access_key,
        secret_key=settings.secret_key,
        region=settings.region,
        endpoint=settings.endpoint,
        timeout_seconds=settings.upload_timeout_seconds,
    )


def _build_http(settings: ArtifactSettings) -> UploadGateway:
    from volc_artifact.storage.http_gateway import HttpGateway

    if not settings.endpoint:
        raise ConfigurationError("The http gateway backend requires ENDPOINT to be set")
    return HttpGateway(
        endpoint=settings.endpoint,
        access_key=settings.access_key,
        timeout_seconds=settings.upload_timeout_seconds,
    )


_BUILDERS = {
    "s3": _build_s3,
    "http": _build_http,
}


def get_gateway(settings: ArtifactSettings) -> UploadGateway:
    """Return a gateway instance for settings.gateway_backend.

    Raises:
        ConfigurationError: If the backend name is not recognised or its
            required settings are missing.
    """
    builder = _BUILDERS.get(settings.gateway_backend.lower())
    if builder is None:
        valid = ", ".join(sorted(_BUILDERS))
        raise ConfigurationError(
            f"Unknown gateway backend '{settings.gateway_backend}'. Valid options: {valid}"
        )

    logger.debug("Using %s upload gateway", settings.gateway_backend)
    return builder(settings)
