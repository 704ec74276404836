"""Object-store layer: key derivation and upload gateways.

Public API:
    derive_key(repository, artifact_name, run, timestamp) -> str
    get_gateway(settings) -> UploadGateway
"""

from volc_artifact.storage.factory import get_gateway
from volc_artifact.storage.gateway import UploadGateway
from volc_artifact.storage.keys import (
    RunIdentity,
    archive_file_name,
    artifact_url,
    derive_key,
    upload_timestamp,
)

__all__ = [
    "get_gateway",
    "UploadGateway",
    "RunIdentity",
    "archive_file_name",
    "artifact_url",
    "derive_key",
    "upload_timestamp",
]
