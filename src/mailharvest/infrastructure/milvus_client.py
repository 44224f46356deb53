"""Milvus client used as the destination key-value store."""

from typing import Any

from loguru import logger
from pymilvus import DataType, MilvusClient, connections, utility

from mailharvest.infrastructure.settings import Settings, get_settings

# Milvus requires a vector field; rows here are looked up by primary key only
PLACEHOLDER_DIM = 2


class MilvusClientWrapper:
    """Wrapper for Milvus operations."""

    def __init__(self, settings: Settings | None = None):
        """Initialize Milvus client wrapper."""
        self.settings = settings or get_settings()
        self._client: MilvusClient | None = None

    def connect(self) -> MilvusClient:
        """Establish connection to Milvus."""
        if self._client is None:
            logger.info(f"Connecting to Milvus at {self.settings.milvus_uri}")
            self._client = MilvusClient(uri=self.settings.milvus_uri)
            logger.info("Milvus connection established")
        return self._client

    def disconnect(self) -> None:
        """Close Milvus connection."""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Milvus connection closed")

    @property
    def client(self) -> MilvusClient:
        """Get or create Milvus client."""
        if self._client is None:
            return self.connect()
        return self._client

    def health_check(self) -> dict[str, Any]:
        """Check Milvus connection health."""
        try:
            connections.connect(
                alias="health_check",
                host=self.settings.milvus_host,
                port=self.settings.milvus_port,
            )
            server_version = utility.get_server_version(using="health_check")
            connections.disconnect(alias="health_check")
            return {
                "status": "healthy",
                "uri": self.settings.milvus_uri,
                "server_version": server_version,
            }
        except Exception as e:
            logger.error(f"Milvus health check failed: {e}")
            return {
                "status": "unhealthy",
                "uri": self.settings.milvus_uri,
                "error": str(e),
            }

    def ensure_keyed_collection(self, name: str, max_key_length: int = 1024) -> None:
        """Create a primary-key addressed collection if it doesn't exist."""
        if self.client.has_collection(name):
            logger.debug(f"Collection already exists: {name}")
            return

        logger.info(f"Creating collection: {name}")
        self.client.create_collection(
            collection_name=name,
            dimension=PLACEHOLDER_DIM,
            primary_field_name="id",
            id_type=DataType.VARCHAR,
            max_length=max_key_length,
            vector_field_name="placeholder_vector",
            auto_id=False,
        )

    @staticmethod
    def placeholder_vector() -> list[float]:
        return [0.0] * PLACEHOLDER_DIM


# Singleton instance
_milvus_client: MilvusClientWrapper | None = None


def get_milvus_client() -> MilvusClientWrapper:
    """Get singleton Milvus client instance."""
    global _milvus_client
    if _milvus_client is None:
        _milvus_client = MilvusClientWrapper()
    return _milvus_client
