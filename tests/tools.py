from pathlib import Path
from typing import Any

from pytest_httpx import HTTPXMock

from tests.conftest import ORIGIN


def media_doc(filename: str, *sizes: str, url: bool = True) -> dict[str, Any]:
    """Create an upload document for filename with the given size names (file name <stem>-<size><suffix>)"""
    stem, _, suffix = filename.rpartition(".")
    doc: dict[str, Any] = {"filename": filename, "sizes": {}}
    if url:
        doc["url"] = f"/api/media/file/{filename}"
    for size in sizes:
        size_filename = f"{stem}-{size}.{suffix}"
        doc["sizes"][size] = {"filename": size_filename, "url": f"/api/media/file/{size_filename}"}
    return doc


def mock_origin(httpx_mock: HTTPXMock, filename: str, status_code: int = 200) -> bytes:
    """Register the origin response for this file, returning the body that will be served"""
    content = f"<bytes of {filename}>".encode("utf-8")
    httpx_mock.add_response(url=f"{ORIGIN}/api/media/file/{filename}", status_code=status_code, content=content)
    return content


def requested_urls(httpx_mock: HTTPXMock) -> list[str]:
    return [str(request.url) for request in httpx_mock.get_requests()]


def files(directory: Path) -> set[str]:
    """Names of the (non-hidden) files in this directory"""
    if not directory.exists():
        return set()
    return {p.name for p in directory.iterdir() if not p.name.startswith(".")}
