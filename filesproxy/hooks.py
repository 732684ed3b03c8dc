"""
Read hooks that fetch missing upload files from the origin

The plugin installs an after-read hook on the media collection. Every time an upload document is read, the hook
checks that the file and all its sizes exist in the upload directory and fetches the missing ones from the origin.
"""

import logging
from pathlib import Path
from typing import Any, Callable

import httpx

from filesproxy.cache import PopulatingCache
from filesproxy.models import AfterReadHook, AppConfig, CollectionConfig, FilesProxyOptions, StoredFileRecord
from filesproxy.resolver import resolve_locators

logger = logging.getLogger("filesproxy.hooks")


def check_if_file_exists(
    upload_dir: Path,
    origin_url: str,
    *,
    raise_errors: bool = False,
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
) -> AfterReadHook:
    """
    Create an after-read hook that makes sure all files of a document exist in upload_dir.
    The hook returns the document it was given, unchanged.

    :param raise_errors: if True, the hook raises the first error after all files were attempted
                         (failing the read); otherwise errors are only logged
    :param client: shared httpx client; if None, each read opens its own
    """
    cache = PopulatingCache(origin_url, client=client, timeout=timeout)

    async def check_files(doc: dict[str, Any], **context) -> dict[str, Any]:
        if not (doc.get("url") and doc.get("filename")):
            return doc
        record = StoredFileRecord.from_doc(doc)
        locators = resolve_locators(record, upload_dir)
        result = await cache.populate(locators)
        if result.fetched:
            logger.info(f"Fetched {len(result.fetched)} of {len(locators)} files for {record.filename}")
        if result.errors and raise_errors:
            raise result.errors[0]
        return doc

    check_files.__qualname__ = check_files.__name__ = "check_if_file_exists"
    return check_files


async def passthrough_hook(doc: dict[str, Any], **context) -> dict[str, Any]:
    return doc


def upload_directory(collection: CollectionConfig, options: FilesProxyOptions) -> Path:
    if collection.upload and collection.upload.static_dir:
        return collection.upload.static_dir
    return options.media_directory / collection.slug


def files_proxy(options: FilesProxyOptions, client: httpx.AsyncClient | None = None) -> Callable[[AppConfig], AppConfig]:
    """
    Plugin: install the read hook on the media collection of an app config.

    If the plugin is disabled a no-op hook is installed instead, so the collection looks the same either way.
    If the config has no collection with the configured slug, it is returned unchanged.
    """

    def plugin(config: AppConfig) -> AppConfig:
        collection = config.get_collection(options.media_collection_slug)
        if collection is None:
            logger.warning(f"Collection {options.media_collection_slug!r} not found, not installing files proxy")
            return config

        if not options.enabled:
            hook = passthrough_hook
        else:
            upload_dir = upload_directory(collection, options)
            logger.info(f"Fetching missing {collection.slug} files from {options.origin_url} into {upload_dir}")
            hook = check_if_file_exists(upload_dir, options.origin_url, raise_errors=options.raise_errors, client=client)
        collection.hooks.after_read = [*collection.hooks.after_read, hook]
        return config

    return plugin


async def run_after_read(collection: CollectionConfig, doc: dict[str, Any], **context) -> dict[str, Any]:
    """Run the after-read hooks of a collection in order, passing the result of each to the next"""
    for hook in collection.hooks.after_read:
        doc = await hook(doc, collection=collection, **context)
    return doc
