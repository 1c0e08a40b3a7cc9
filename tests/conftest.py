"""Shared pytest fixtures for Maskworks tests."""

import base64
import io
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator
from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

# Keep the import-time global config from creating directories in the CWD.
os.environ.setdefault(
    "MASKWORKS_EXPORTS_DIR", str(Path(tempfile.gettempdir()) / "maskworks-exports")
)

from maskworks.core.config import MaskworksConfig  # noqa: E402
from maskworks.core.editor import EditorSession  # noqa: E402


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> MaskworksConfig:
    """Create a test configuration with a temporary exports directory.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        MaskworksConfig instance for testing
    """
    return MaskworksConfig(
        _env_file=None,
        exports_dir=str(temp_dir / "exports"),
        max_sessions=4,
    )


@pytest.fixture
def square_image() -> Image.Image:
    """1024x1024 mid-grey image (the standard generation size).

    Returns:
        RGBA PIL image
    """
    return Image.new("RGBA", (1024, 1024), (128, 128, 128, 255))


@pytest.fixture
def two_tone_image() -> Image.Image:
    """200x100 image: left half red, right half blue.

    Returns:
        RGBA PIL image
    """
    pixels = np.zeros((100, 200, 4), dtype=np.uint8)
    pixels[:, :100] = (220, 30, 30, 255)
    pixels[:, 100:] = (30, 30, 220, 255)
    return Image.fromarray(pixels)


@pytest.fixture
def standalone_session(test_config: MaskworksConfig, square_image: Image.Image) -> EditorSession:
    """Standalone editor with a 1024x1024 image loaded at 900x900.

    Returns:
        Ready EditorSession
    """
    session = EditorSession.standalone(test_config)
    session.load_image(square_image, container_width=1200, container_height=1200)
    return session


@pytest.fixture
def select_session(test_config: MaskworksConfig, two_tone_image: Image.Image) -> EditorSession:
    """Standalone editor with the two-tone image loaded at native size.

    Returns:
        Ready EditorSession with the select tool active
    """
    session = EditorSession.standalone(test_config)
    session.load_image(two_tone_image, container_width=200, container_height=100)
    session.set_tool("select")
    return session


@pytest.fixture
def data_url_factory() -> Callable[[Image.Image], str]:
    """Factory that encodes a PIL image as a PNG data URL.

    Returns:
        Callable taking an image and returning its data URL
    """

    def _to_data_url(image: Image.Image) -> str:
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    return _to_data_url


@pytest.fixture
def test_client(test_config: MaskworksConfig):
    """FastAPI TestClient bound to the test configuration.

    Yields:
        TestClient with the application lifespan running
    """
    from fastapi.testclient import TestClient

    from maskworks.api import main

    with patch.object(main, "config", test_config):
        with TestClient(main.app) as client:
            yield client
