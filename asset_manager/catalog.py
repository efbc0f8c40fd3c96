"""
Content catalog.

Maps sequential integer content ids to playable media files on disk.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from asset_manager.config import AssetConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentItem:
    """A selected piece of content."""

    content_id: int
    path: Path


class AssetCatalog:
    """
    Read-only view over a fixed, contiguous range of content ids.

    Id ``i`` resolves to ``<assets_path>/<filename_pattern.format(index=i)>``.
    """

    def __init__(self, config: AssetConfig):
        """
        Initialize the catalog.

        Args:
            config: Asset configuration
        """
        self.config = config
        self.base_path = Path(config.assets_path)

    def __len__(self) -> int:
        return self.config.catalog_size

    def __contains__(self, content_id: object) -> bool:
        return isinstance(content_id, int) and 0 <= content_id < self.config.catalog_size

    def path_for(self, content_id: int) -> Path:
        """
        Resolve the file path for a content id.

        Args:
            content_id: Id in the range [0, catalog_size)

        Returns:
            Path to the media file

        Raises:
            IndexError: If the id is outside the catalog
        """
        if content_id not in self:
            raise IndexError(
                f"Content id {content_id} outside catalog range [0, {len(self)})"
            )
        return self.base_path / self.config.filename_pattern.format(index=content_id)

    def is_available(self, content_id: int) -> bool:
        """Check that the file for a content id exists and is readable."""
        path = self.path_for(content_id)
        return path.is_file() and os.access(path, os.R_OK)

    def missing(self) -> List[int]:
        """
        List content ids whose files are absent or unreadable.

        Returns:
            Sorted list of missing ids
        """
        return [content_id for content_id in range(len(self)) if not self.is_available(content_id)]
