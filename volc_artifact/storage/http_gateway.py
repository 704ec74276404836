"""HTTP upload gateway: PUTs archives to a plain object-store endpoint.

Used for stores that expose a path-style HTTP API without S3 signing
(artifact proxies, local test servers). The object is written to:

    {endpoint}/{bucket}/{key}

The file is streamed as the request body in fixed-size chunks; the
archive is never loaded into memory.
"""

import logging
from collections.abc import Iterator, Mapping
from typing import BinaryIO, Optional

import httpx

from volc_artifact.errors import GatewayError, GatewayErrorKind

logger = logging.getLogger(__name__)

# Timeout for a single PUT
DEFAULT_TIMEOUT = 300

CHUNK_SIZE = 1024 * 1024

_AUTH_STATUSES = {401, 403}
_QUOTA_STATUSES = {413, 429, 507}


def classify_status(status_code: int) -> GatewayErrorKind:
    if status_code in _AUTH_STATUSES:
        return GatewayErrorKind.AUTH
    if status_code in _QUOTA_STATUSES:
        return GatewayErrorKind.QUOTA
    return GatewayErrorKind.SERVER


def _iter_file(fh: BinaryIO) -> Iterator[bytes]:
    while chunk := fh.read(CHUNK_SIZE):
        yield chunk


class HttpGateway:
    """UploadGateway that issues one PUT per object.

    access_key, when set, is sent as the X-Api-Key header.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str = "",
        timeout_seconds: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if "://" not in endpoint:
            endpoint = f"http://{endpoint}"
        self._endpoint = endpoint.rstrip("/")
        self._access_key = access_key
        self._timeout = timeout_seconds
        self._transport = transport

    def object_url(self, bucket: str, key: str) -> str:
        return f"{self._endpoint}/{bucket}/{key}"

    def put_object(
        self,
        bucket: str,
        key: str,
        source_file_path: str,
        headers: Mapping[str, str],
    ) -> None:
        request_headers = {"Content-Type": "application/zip", **dict(headers)}
        if self._access_key:
            request_headers["X-Api-Key"] = self._access_key

        url = self.object_url(bucket, key)
        logger.info("Uploading %s to %s", source_file_path, url)

        try:
            with open(source_file_path, "rb") as fh, httpx.Client(
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = client.put(url, content=_iter_file(fh), headers=request_headers)
        except httpx.TransportError as exc:
            raise GatewayError(
                GatewayErrorKind.NETWORK, f"PUT {url} failed: {exc}", cause=exc
            ) from exc

        if response.status_code >= 400:
            exc = httpx.HTTPStatusError(
                f"Upload failed: {response.status_code}",
                request=response.request,
                response=response,
            )
            raise GatewayError(
                classify_status(response.status_code),
                f"PUT {url} returned {response.status_code}",
                cause=exc,
            ) from exc

        logger.info("Uploaded %s (%d)", url, response.status_code)
