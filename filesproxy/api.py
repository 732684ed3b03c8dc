"""
files-proxy development server.

Serves a JSON-backed media collection the way a CMS would: reading a document runs the collection's
after-read hooks, so missing files are fetched from the origin before they are served.
"""

import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse

from filesproxy.cache import CacheError
from filesproxy.config import get_settings
from filesproxy.hooks import files_proxy, run_after_read, upload_directory
from filesproxy.models import AppConfig, CollectionConfig, FilesProxyOptions

logger = logging.getLogger("filesproxy.api")


def load_documents(path: Path | None) -> list[dict[str, Any]]:
    if path is None:
        return []
    docs = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(docs, dict):
        docs = [docs]
    for i, doc in enumerate(docs):
        doc.setdefault("id", str(i))
    return docs


def build_config(options: FilesProxyOptions, client: httpx.AsyncClient | None = None) -> AppConfig:
    config = AppConfig(collections=[CollectionConfig(slug=options.media_collection_slug)])
    return files_proxy(options, client=client)(config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    options = FilesProxyOptions.from_settings(settings)
    kwargs = {} if settings.fetch_timeout is None else dict(timeout=settings.fetch_timeout)
    async with httpx.AsyncClient(**kwargs) as client:
        app.state.options = options
        app.state.config = build_config(options, client)
        app.state.documents = load_documents(settings.records_file)
        logger.info(f"Serving {len(app.state.documents)} {options.media_collection_slug} documents")
        yield


app = FastAPI(
    title="files-proxy",
    description=__doc__ if __doc__ else "",
    lifespan=lifespan,
)


def _collection(request: Request, slug: str) -> CollectionConfig:
    collection = request.app.state.config.get_collection(slug)
    if collection is None:
        raise HTTPException(status_code=404, detail=f"Collection {slug} does not exist")
    return collection


def _owns(doc: dict[str, Any], filename: str) -> bool:
    if doc.get("filename") == filename:
        return True
    sizes = doc.get("sizes")
    if not isinstance(sizes, dict):
        return False
    return any(isinstance(size, dict) and size.get("filename") == filename for size in sizes.values())


@app.get("/api/{slug}/{doc_id}")
async def read_document(request: Request, slug: str, doc_id: str):
    """Read a document, running the after-read hooks of its collection"""
    collection = _collection(request, slug)
    doc = next((d for d in request.app.state.documents if str(d.get("id")) == doc_id), None)
    if doc is None:
        raise HTTPException(status_code=404, detail=f"Document {doc_id} does not exist in {slug}")
    return await run_after_read(collection, doc, request=request)


@app.get("/api/{slug}/file/{filename}")
async def read_file(request: Request, slug: str, filename: str):
    """Serve an upload file (or one of its sizes), fetching it from the origin if needed"""
    collection = _collection(request, slug)
    doc = next((d for d in request.app.state.documents if _owns(d, filename)), None)
    if doc is None:
        raise HTTPException(status_code=404, detail=f"File {filename} does not exist in {slug}")
    await run_after_read(collection, doc, request=request)
    path = upload_directory(collection, request.app.state.options) / filename
    if not path.is_file():
        raise HTTPException(status_code=404, detail=f"File {filename} is not available")
    return FileResponse(path)


@app.exception_handler(CacheError)
async def cache_error_exception_handler(request: Request, exc: CacheError):
    return JSONResponse(
        status_code=502,
        content={"message": str(exc)},
    )
