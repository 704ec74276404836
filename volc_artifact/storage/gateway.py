"""UploadGateway protocol.

All object-store implementations must conform to this interface. The
pipeline depends only on this protocol; the concrete store is chosen by
configuration (see storage.factory).
"""

from collections.abc import Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class UploadGateway(Protocol):
    """Protocol for object-store upload implementations.

    Each gateway handles its own auth and error mapping. A put is a single
    attempt; retries are left to the caller.
    """

    def put_object(
        self,
        bucket: str,
        key: str,
        source_file_path: str,
        headers: Mapping[str, str],
    ) -> None:
        """Store the file at `key` in `bucket`.

        Args:
            bucket: Target bucket name.
            key: Object key, e.g. "artifacts/owner/repo/build-1-2.zip".
            source_file_path: Local file to upload; streamed, not buffered.
            headers: Extra request headers. "content-length" is supplied
                when known; implementations may recompute it.

        Raises:
            GatewayError: With kind auth, network, quota or server.
        """
        ...  # noqa: PLR6301
