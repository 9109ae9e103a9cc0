"""
Shared fixtures for the Sliceflow tests.
"""

import io

import pytest
from PIL import Image

from sliceflow.core.config import get_config


class FakeClock:
    """
    Manually advanced clock. sleep() moves time forward instead of waiting.
    """

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """
    Load only the packaged defaults, never the developer's user config.
    """
    monkeypatch.setenv("SLICEFLOW_CONFIG", str(tmp_path / "no_user_config.json"))
    get_config(reload=True)
    yield
    get_config(reload=True)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_image_bytes():
    """
    Factory producing encoded image bytes of a given size and format.
    """
    def _make(width: int, height: int, image_format: str = "PNG", **save_kwargs) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", (width, height), (200, 30, 30)).save(buffer, format=image_format, **save_kwargs)
        return buffer.getvalue()

    return _make


@pytest.fixture
def imagekit_url():
    return "https://ik.imagekit.io/acme/campaigns/spring.png"
