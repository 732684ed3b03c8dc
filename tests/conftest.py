import pytest

from filesproxy.config import get_settings

ORIGIN = "https://origin.example"


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch, tmp_path):
    """Make sure settings come from the test environment only"""
    monkeypatch.setenv("FILESPROXY_ENV_FILE", str(tmp_path / "test.env"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def upload_dir(tmp_path):
    return tmp_path / "media"


@pytest.fixture()
def image_doc():
    return {
        "id": "1",
        "alt": "An image",
        "filename": "a.jpg",
        "url": "/api/media/file/a.jpg",
        "sizes": {
            "thumbnail": {"filename": "a-thumb.jpg", "url": "/api/media/file/a-thumb.jpg", "width": 200},
        },
    }
