"""S3-compatible upload gateway built on boto3.

Endpoint selection:
  - No custom endpoint: boto3's secure default endpoint for the region.
  - Custom endpoint (ENDPOINT): explicit plain-HTTP endpoint with TLS off,
    for local MinIO-style stores and alternate deployments.

Error mapping (botocore → GatewayErrorKind):
  - missing/invalid credentials, AccessDenied, signature errors → auth
  - throttling, quota, EntityTooLarge                            → quota
  - connection failures and timeouts                             → network
  - everything else                                              → server
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    HTTPClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from volc_artifact.errors import GatewayError, GatewayErrorKind

logger = logging.getLogger(__name__)

_AUTH_CODES = frozenset({
    "AccessDenied",
    "AccountProblem",
    "AllAccessDisabled",
    "ExpiredToken",
    "InvalidAccessKeyId",
    "InvalidToken",
    "SignatureDoesNotMatch",
})

_QUOTA_CODES = frozenset({
    "EntityTooLarge",
    "QuotaExceeded",
    "RequestLimitExceeded",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "TooManyRequests",
})

# ConnectionError covers endpoint, proxy, SSL and connect-timeout failures;
# HTTPClientError covers read timeouts and dropped connections.
_NETWORK_ERRORS = (
    BotoConnectionError,
    HTTPClientError,
)


def endpoint_url_for(endpoint: str) -> Optional[str]:
    """Return the explicit endpoint URL, or None for the secure default."""
    if not endpoint:
        return None
    if "://" in endpoint:
        return endpoint
    return f"http://{endpoint}"


def create_client(
    access_key: str,
    secret_key: str,
    region: str,
    endpoint: str = "",
    timeout_seconds: float = 300.0,
) -> Any:
    """Create an S3 client for the configured store."""
    endpoint_url = endpoint_url_for(endpoint)
    config = Config(
        connect_timeout=timeout_seconds,
        read_timeout=timeout_seconds,
        # Single attempt; retry policy belongs to the caller.
        retries={"max_attempts": 1, "mode": "standard"},
    )
    return boto3.client(
        "s3",
        aws_access_key_id=access_key or None,
        aws_secret_access_key=secret_key or None,
        region_name=region or None,
        endpoint_url=endpoint_url,
        use_ssl=endpoint_url is None or endpoint_url.startswith("https://"),
        config=config,
    )


def classify_client_error(exc: ClientError) -> GatewayErrorKind:
    error = exc.response.get("Error", {})
    code = str(error.get("Code", ""))
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

    # Error codes win; some stores report quota errors with a 403.
    if code in _AUTH_CODES:
        return GatewayErrorKind.AUTH
    if code in _QUOTA_CODES:
        return GatewayErrorKind.QUOTA
    if status in (401, 403):
        return GatewayErrorKind.AUTH
    if status in (413, 429, 507):
        return GatewayErrorKind.QUOTA
    return GatewayErrorKind.SERVER


class S3Gateway:
    """UploadGateway backed by an S3-compatible API.

    The client is created lazily unless one is injected, so constructing
    the gateway never touches the network.
    """

    def __init__(
        self,
        access_key: str = "",
        secret_key: str = "",
        region: str = "",
        endpoint: str = "",
        timeout_seconds: float = 300.0,
        client: Any = None,
    ):
        self._access_key = access_key
        self._secret_key = secret_key
        self._region = region
        self._endpoint = endpoint
        self._timeout_seconds = timeout_seconds
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = create_client(
                self._access_key,
                self._secret_key,
                self._region,
                endpoint=self._endpoint,
                timeout_seconds=self._timeout_seconds,
            )
        return self._client

    def put_object(
        self,
        bucket: str,
        key: str,
        source_file_path: str,
        headers: Mapping[str, str],
    ) -> None:
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key}
        content_length = _header(headers, "content-length")
        if content_length is not None:
            kwargs["ContentLength"] = int(content_length)
        content_type = _header(headers, "content-type")
        kwargs["ContentType"] = content_type or "application/zip"

        logger.info("Uploading %s to s3://%s/%s", source_file_path, bucket, key)

        try:
            with open(source_file_path, "rb") as body:
                self.client.put_object(Body=body, **kwargs)
        except ClientError as exc:
            kind = classify_client_error(exc)
            raise GatewayError(kind, f"put_object rejected for {key}: {exc}", cause=exc) from exc
        except (NoCredentialsError, PartialCredentialsError) as exc:
            raise GatewayError(GatewayErrorKind.AUTH, f"No usable credentials: {exc}", cause=exc) from exc
        except _NETWORK_ERRORS as exc:
            raise GatewayError(GatewayErrorKind.NETWORK, f"Could not reach store: {exc}", cause=exc) from exc
        except BotoCoreError as exc:
            raise GatewayError(GatewayErrorKind.SERVER, f"put_object failed for {key}: {exc}", cause=exc) from exc

        logger.info("Uploaded s3://%s/%s", bucket, key)


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None
