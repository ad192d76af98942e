import pytest

from tests.helpers import make_image_bytes


@pytest.fixture
def png_factory():
    return make_image_bytes


@pytest.fixture(autouse=True)
def _no_env_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
