"""Azure Blob Storage wrapper for per-user uploaded files.

Every file a user uploads lives under ``users/{user_id}/`` in one container.
The Azure SDK calls are synchronous and run in a worker thread.
"""

import asyncio

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.storage.blob import BlobServiceClient, ContainerClient
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from ..logging import get_logger

logger = get_logger(__name__)

USER_FILES_CONTAINER = "user-files"


def user_prefix(user_id: str) -> str:
    """Blob name prefix holding every file owned by a user."""
    return f"users/{user_id}/"


def create_blob_service_client(
    connection_string: str | None = None,
    use_managed_identity: bool = False,
    account_url: str | None = None,
) -> BlobServiceClient:
    """Create a synchronous BlobServiceClient.

    Args:
        connection_string: Azure Storage connection string.
        use_managed_identity: If True, use DefaultAzureCredential.
        account_url: Storage account URL (required if using managed identity).

    Returns:
        BlobServiceClient instance.
    """
    if use_managed_identity:
        if not account_url:
            raise ValueError("account_url is required when using managed identity")
        return BlobServiceClient(account_url, credential=DefaultAzureCredential())

    if not connection_string:
        raise ValueError(
            "Azure Storage connection string not found. Set AZURE_STORAGE_CONNECTION_STRING"
        )
    return BlobServiceClient.from_connection_string(connection_string)


class BlobStore:
    """List and delete blobs in the user files container."""

    def __init__(
        self,
        container_name: str = USER_FILES_CONTAINER,
        connection_string: str | None = None,
        use_managed_identity: bool = False,
        account_url: str | None = None,
        container_client: ContainerClient | None = None,
    ):
        """Initialize the store.

        Args:
            container_name: Container holding user files.
            connection_string: Azure Storage connection string.
            use_managed_identity: If True, use DefaultAzureCredential.
            account_url: Storage account URL (required if using managed identity).
            container_client: Pre-built container client, mainly for tests.
        """
        self._container_name = container_name
        self._connection_string = connection_string
        self._use_managed_identity = use_managed_identity
        self._account_url = account_url
        self._service_client: BlobServiceClient | None = None
        self._container = container_client

    @property
    def container(self) -> ContainerClient:
        """Get or create the container client."""
        if self._container is None:
            self._service_client = create_blob_service_client(
                connection_string=self._connection_string,
                use_managed_identity=self._use_managed_identity,
                account_url=self._account_url,
            )
            self._container = self._service_client.get_container_client(
                self._container_name
            )
        return self._container

    def ensure_container(self) -> None:
        """Create the container if it does not exist."""
        try:
            self.container.create_container()
        except ResourceExistsError:
            pass

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def list_with_prefix(self, prefix: str) -> list[str]:
        """Names of all blobs whose name starts with ``prefix``."""

        def _list() -> list[str]:
            return [blob.name for blob in self.container.list_blobs(name_starts_with=prefix)]

        return await asyncio.to_thread(_list)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_not_exception_type(ResourceNotFoundError),
        reraise=True,
    )
    async def _delete_blob(self, name: str) -> None:
        await asyncio.to_thread(self.container.delete_blob, name)

    async def delete(self, name: str) -> bool:
        """Delete one blob.

        Returns:
            True if the blob was deleted, False if it was already absent.
        """
        try:
            await self._delete_blob(name)
        except ResourceNotFoundError:
            return False
        return True

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every blob under a prefix.

        Returns:
            Number of blobs listed under the prefix and removed (already-absent
            blobs count as removed).
        """
        names = await self.list_with_prefix(prefix)
        for name in names:
            deleted = await self.delete(name)
            if not deleted:
                logger.debug("Blob already absent", blob_name=name)
        logger.info("Deleted blobs under prefix", prefix=prefix, count=len(names))
        return len(names)

    def close(self) -> None:
        """Close the underlying clients."""
        if self._service_client is not None:
            self._service_client.close()
            self._service_client = None
            self._container = None
