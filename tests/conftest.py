"""Shared fixtures: per-test upload directories and clients."""

import io
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from src.app.config import Settings
from src.app.main import create_app
from src.app.services.upload_service import UploadHandler


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Encode a small solid-colour image in the requested Pillow format."""

    def _make(image_format: str = "JPEG", size: tuple[int, int] = (16, 16)) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", size, color="red").save(buffer, format=image_format)
        return buffer.getvalue()

    return _make


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    # Not created here: the handler bootstraps it.
    return tmp_path / "users_profiles_images"


@pytest.fixture
def settings(upload_dir: Path) -> Settings:
    return Settings(upload_dir=upload_dir, _env_file=None)


@pytest.fixture
def handler(settings: Settings) -> UploadHandler:
    return UploadHandler(settings)


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_app(settings)) as test_client:
        yield test_client
