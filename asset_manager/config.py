"""
Configuration management for the asset manager module.
"""

import os
from dataclasses import dataclass


@dataclass
class AssetConfig:
    """Configuration for the numbered content library and rotation."""

    # Storage
    assets_path: str = "./assets"
    filename_pattern: str = "{index:03d}.mp4"

    # Catalog ids are the contiguous range [0, catalog_size)
    catalog_size: int = 145

    # Recently played ids kept out of rotation; cleared once full
    rotation_capacity: int = 61

    @classmethod
    def from_env(cls) -> "AssetConfig":
        """Create configuration from environment variables.

        Returns:
            AssetConfig instance
        """
        return cls(
            assets_path=os.getenv("ASSETS_PATH", "./assets"),
            filename_pattern=os.getenv("ASSET_FILENAME_PATTERN", "{index:03d}.mp4"),
            catalog_size=int(os.getenv("CATALOG_SIZE", "145")),
            rotation_capacity=int(os.getenv("ROTATION_CAPACITY", "61")),
        )

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.catalog_size < 1:
            raise ValueError(f"Invalid catalog_size: {self.catalog_size}")

        if self.rotation_capacity < 1:
            raise ValueError(f"Invalid rotation_capacity: {self.rotation_capacity}")

        # A capacity >= catalog size would let the redraw loop run forever
        if self.rotation_capacity >= self.catalog_size:
            raise ValueError(
                f"rotation_capacity ({self.rotation_capacity}) must be smaller than "
                f"catalog_size ({self.catalog_size})"
            )

        if "{index" not in self.filename_pattern:
            raise ValueError(
                f"filename_pattern must contain an '{{index}}' field: {self.filename_pattern}"
            )


def get_config() -> AssetConfig:
    """Get asset configuration instance."""
    config = AssetConfig.from_env()
    config.validate()
    return config
