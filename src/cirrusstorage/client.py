"""
StorageClient - entry point for the blob and file services of one account
"""

import logging
from typing import Optional

from ._http import HttpClient
from .blob import BlobService
from .config import StorageConfig
from .file import FileService
from .models import LocationMode
from .retry import RetryPolicy


class StorageClient:
    """
    Client for an Azure-compatible storage account.

    Both services share one connection pool and retry policy.

    Example:
        client = StorageClient(StorageConfig.from_connection_string(conn_str))

        with client:
            client.blobs.create_container("photos")
            client.blobs.create_block_blob("photos", "cam-1/image.jpg", data)
            client.files.create_share("reports")
    """

    def __init__(
        self,
        config: StorageConfig,
        retry_policy: Optional[RetryPolicy] = None,
        location_mode: LocationMode = LocationMode.PRIMARY_ONLY,
        transport=None,
    ):
        """
        Initialize StorageClient.

        Args:
            config: Account settings and credentials
            retry_policy: Retry behaviour for transient failures; defaults to
                exponential backoff with ``config.max_retries`` attempts
            location_mode: Region read operations are sent to
            transport: Optional ``httpx`` transport, mainly for tests
        """
        self.config = config
        self._http = HttpClient(
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            retry_policy=retry_policy,
            transport=transport,
        )
        signer = config.create_signer()
        self.blobs = BlobService(config, http=self._http, signer=signer, location_mode=location_mode)
        self.files = FileService(config, http=self._http, signer=signer, location_mode=location_mode)
        self._logger = logging.getLogger(__name__)
        self._logger.debug(
            "[CirrusStorage][Client] account=%s locationMode=%s",
            config.account_name,
            location_mode.value,
        )

    @classmethod
    def from_connection_string(cls, connection_string: str, **kwargs) -> "StorageClient":
        return cls(StorageConfig.from_connection_string(connection_string), **kwargs)

    def close(self) -> None:
        """Close the shared connection pool."""
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
