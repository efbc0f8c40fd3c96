"""
Pytest configuration and fixtures for asset_manager tests.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from asset_manager.config import AssetConfig


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> AssetConfig:
    """Create a small catalog configuration rooted in the temp directory."""
    return AssetConfig(
        assets_path=str(temp_dir),
        filename_pattern="{index:03d}.mp4",
        catalog_size=10,
        rotation_capacity=4,
    )


@pytest.fixture
def populated_assets(test_config: AssetConfig, temp_dir: Path) -> Path:
    """Create an (empty) media file for every id in the catalog."""
    for index in range(test_config.catalog_size):
        (temp_dir / f"{index:03d}.mp4").touch()
    return temp_dir
