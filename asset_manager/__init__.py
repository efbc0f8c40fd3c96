"""
Asset Manager - Content selection for the looping stream daemon.

Maps sequential content ids to media files and picks the next item to
broadcast while avoiding recent repeats.
"""

from asset_manager.catalog import AssetCatalog, ContentItem
from asset_manager.config import AssetConfig
from asset_manager.selector import AssetSelector, ContentNotFoundError

__version__ = "1.0.0"
__all__ = [
    "AssetCatalog",
    "AssetConfig",
    "AssetSelector",
    "ContentItem",
    "ContentNotFoundError",
]
