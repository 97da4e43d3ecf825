"""Optional Qdrant vector store (infrastructure layer).

Nothing in a voice turn depends on it; the service is connected at startup
when ``qdrant_enabled`` is set and dropped with a warning if unreachable.
"""

import logging

from qdrant_client import AsyncQdrantClient, models
from qdrant_client.http.exceptions import UnexpectedResponse

logger = logging.getLogger("vector_store")


class VectorStoreError(Exception):
    """Raised when a Qdrant operation fails."""


class VectorStoreService:
    """Thin async wrapper around Qdrant collection management.

    Args:
        url: Qdrant HTTP URL
        client: Pre-built client (tests inject a mock)
    """

    def __init__(
        self,
        url: str,
        client: AsyncQdrantClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.url = url
        self._client = client or AsyncQdrantClient(url=url, timeout=int(timeout))

    async def health_check(self) -> None:
        """Raise VectorStoreError if Qdrant does not answer."""
        try:
            await self._client.get_collections()
        except Exception as e:
            raise VectorStoreError(f"Qdrant health check failed: {e}") from e

    async def list_collections(self) -> list[str]:
        try:
            response = await self._client.get_collections()
        except UnexpectedResponse as e:
            raise VectorStoreError(f"Qdrant list collections failed: {e}") from e
        return [c.name for c in response.collections]

    async def ensure_collection(self, name: str, dimensions: int | None = None) -> bool:
        """Make sure a collection exists.

        Without ``dimensions`` this only checks existence and logs when the
        collection is missing.

        Returns:
            True if the collection exists after the call
        """
        if name in await self.list_collections():
            logger.debug(
                "Qdrant collection exists",
                extra={"service": "vector_store", "metadata": {"collection": name}},
            )
            return True

        if dimensions is None:
            logger.warning(
                "Qdrant collection missing",
                extra={"service": "vector_store", "metadata": {"collection": name}},
            )
            return False

        try:
            await self._client.create_collection(
                collection_name=name,
                vectors_config=models.VectorParams(
                    size=dimensions,
                    distance=models.Distance.COSINE,
                ),
            )
        except UnexpectedResponse as e:
            raise VectorStoreError(f"Qdrant create collection failed: {e}") from e

        logger.info(
            "Qdrant collection created",
            extra={
                "service": "vector_store",
                "metadata": {"collection": name, "dimensions": dimensions},
            },
        )
        return True

    async def delete_collection(self, name: str) -> bool:
        """Delete a collection; False if it did not exist."""
        try:
            deleted = await self._client.delete_collection(collection_name=name)
        except UnexpectedResponse as e:
            if "not found" in str(e).lower():
                return False
            raise VectorStoreError(f"Qdrant delete collection failed: {e}") from e
        if not deleted:
            return False
        logger.info(
            "Qdrant collection deleted",
            extra={"service": "vector_store", "metadata": {"collection": name}},
        )
        return True

    async def close(self) -> None:
        await self._client.close()


async def connect_vector_store(url: str) -> VectorStoreService | None:
    """Build and verify a VectorStoreService; None when Qdrant is unreachable."""
    service = VectorStoreService(url)
    try:
        await service.health_check()
    except VectorStoreError as e:
        logger.warning(
            "Qdrant unavailable, continuing without vector store",
            extra={"service": "vector_store", "error": str(e)},
        )
        await service.close()
        return None
    logger.info("Qdrant connected", extra={"service": "vector_store", "metadata": {"url": url}})
    return service
