"""Infrastructure layer - external services, stores, and configuration."""

from mailharvest.infrastructure.milvus_client import MilvusClientWrapper, get_milvus_client
from mailharvest.infrastructure.settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Milvus
    "MilvusClientWrapper",
    "get_milvus_client",
]
