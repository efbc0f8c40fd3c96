"""
Asset selector.

Picks content from the catalog at random while keeping recently played
items out of rotation until the rotation window fills up.
"""

import logging
import random
from typing import Optional, Set

from asset_manager.catalog import AssetCatalog, ContentItem
from asset_manager.config import AssetConfig

logger = logging.getLogger(__name__)


class ContentNotFoundError(Exception):
    """Raised when the selected content file cannot be accessed."""

    def __init__(self, content_id: int, path: str):
        self.content_id = content_id
        self.path = path
        super().__init__(
            f"Video file {path} not found. Please ensure all video files are "
            f"present in the assets directory."
        )


class AssetSelector:
    """
    Random content selection with a bounded recently-played window.

    The recently-played set is cleared entirely once it reaches
    ``rotation_capacity``; entries are never evicted one at a time.
    """

    def __init__(
        self,
        config: Optional[AssetConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the selector.

        Args:
            config: Asset configuration (loaded from environment if not provided)
            rng: Random number generator (a fresh ``random.Random`` if not provided)

        Raises:
            ValueError: If the rotation capacity is not smaller than the catalog
        """
        if config is None:
            from asset_manager.config import get_config

            config = get_config()

        config.validate()
        self.config = config
        self.catalog = AssetCatalog(config)
        self._rng = rng or random.Random()
        self._recently_played: Set[int] = set()

    @property
    def recently_played(self) -> Set[int]:
        """Snapshot of ids currently held out of rotation."""
        return set(self._recently_played)

    def pick(self) -> ContentItem:
        """
        Pick the next content item.

        Returns:
            The selected ContentItem

        Raises:
            ContentNotFoundError: If the selected file is not accessible
        """
        # Terminates because rotation_capacity < catalog_size
        content_id = self._rng.randrange(len(self.catalog))
        while content_id in self._recently_played:
            content_id = self._rng.randrange(len(self.catalog))

        path = self.catalog.path_for(content_id)
        if not self.catalog.is_available(content_id):
            logger.error(f"Failed to access video file {path}")
            raise ContentNotFoundError(content_id, str(path))

        logger.info(
            f"Selected video file: {path}",
            extra={"event": "content_selected", "content_id": content_id},
        )

        self._recently_played.add(content_id)
        if len(self._recently_played) >= self.config.rotation_capacity:
            self._recently_played.clear()
            logger.info(
                "All videos in the rotation window have been played, resetting playlist",
                extra={"event": "rotation_reset"},
            )

        return ContentItem(content_id=content_id, path=path)
