from __future__ import annotations

from loguru import logger

from mailharvest.application.ports.remote_mail import RemoteMailClient
from mailharvest.domain.errors import DiscoveryError, RemoteCallError


class FolderDiscovery:
    """Finds every folder below a root (deep traversal, root's descendants included)."""

    def __init__(self, client: RemoteMailClient) -> None:
        self.client = client

    def discover(self, root: str, owner: str) -> list[str]:
        try:
            folders = list(self.client.discover_folders(root, owner))
        except (RemoteCallError, OSError) as e:
            logger.error(f"Failed to find folder ids for {owner}: {e}")
            raise DiscoveryError(f"Failed to find folder ids for {owner}: {e}", e) from e

        logger.info(f"Discovered {len(folders)} folders under {root or '<root>'} for {owner}")
        return folders
