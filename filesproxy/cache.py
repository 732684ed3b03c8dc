"""
Populating cache for upload files

A file's presence under its local path is the only thing that counts: if it exists it is a cache hit
(regardless of its size or content), if it doesn't it is fetched once from the origin and written to that path.
Writes go to a temporary file in the same directory which is renamed into place, so a failed fetch or write
never leaves a partial file under the final name.
"""

import asyncio
import contextlib
import logging
import os
import tempfile
import weakref
from pathlib import Path
from typing import Iterable

import httpx

from filesproxy.models import FileLocator

logger = logging.getLogger("filesproxy.cache")


def _file_mode() -> int:
    """Mode of a regular file created with open(): 0o666 minus the process umask"""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


# Permissions for fetched files; mkstemp would otherwise leave them readable by the owner only.
# Read once at import, os.umask can only be read by setting it, which is not safe from worker threads
FILE_MODE = _file_mode()


class CacheError(Exception):
    """Base class for errors that prevent a single file from being cached"""

    def __init__(self, locator: FileLocator, message: str):
        super().__init__(message)
        self.locator = locator


class FetchFailure(CacheError):
    """The origin could not be reached, returned an error status, or the body could not be read"""


class LocalWriteFailure(CacheError):
    """The file was fetched but could not be written to the local store"""


class ProbeFailure(CacheError):
    """Checking for the local file failed for another reason than the file not existing"""


# One lock per local path, so concurrent reads of the same record in this process fetch each file only once
_PATH_LOCKS: "weakref.WeakValueDictionary[Path, asyncio.Lock]" = weakref.WeakValueDictionary()


def path_lock(path: Path) -> asyncio.Lock:
    key = Path(os.path.abspath(path))
    lock = _PATH_LOCKS.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _PATH_LOCKS[key] = lock
    return lock


def stat_file(path: Path) -> os.stat_result:
    return os.stat(path)


def write_atomic(path: Path, data: bytes):
    """Write data to a temporary file next to path and rename it into place"""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".part")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp, FILE_MODE)
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp)
        raise


class PopulateResult:
    """Outcome of one populate pass"""

    def __init__(self):
        self.fetched: list[FileLocator] = []
        self.hits: list[FileLocator] = []
        self.errors: list[CacheError] = []

    @property
    def ok(self) -> bool:
        return not self.errors

    def __repr__(self):
        return f"<PopulateResult fetched={len(self.fetched)} hits={len(self.hits)} errors={len(self.errors)}>"


class PopulatingCache:
    def __init__(self, origin_url: str, client: httpx.AsyncClient | None = None, timeout: float | None = None):
        """
        :param origin_url: prefix for the remote locators, e.g. https://cms.example.com
        :param client: shared client to use for fetching. If None, a client is opened for each call
        :param timeout: request timeout in seconds, or None for the client's default
        """
        self.origin_url = origin_url.rstrip("/")
        self.client = client
        self.timeout = timeout

    def url(self, locator: FileLocator) -> str:
        return self.origin_url + locator.remote_locator

    async def populate(self, locators: Iterable[FileLocator]) -> PopulateResult:
        """
        Make sure all locators are present locally, fetching the missing ones concurrently.
        Failures are isolated per locator: they are logged and collected in the result, the other locators still complete.
        """
        locators = list(locators)
        if not locators:
            return PopulateResult()
        async with self._client() as client:
            outcomes = await asyncio.gather(
                *(self._ensure_present(client, locator) for locator in locators), return_exceptions=True
            )
        result = PopulateResult()
        for locator, outcome in zip(locators, outcomes):
            if isinstance(outcome, CacheError):
                logger.error(f"Could not cache {locator.name} file {locator.local_path}: {outcome}")
                result.errors.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            elif outcome:
                result.fetched.append(locator)
            else:
                result.hits.append(locator)
        return result

    async def ensure_present(self, locator: FileLocator) -> bool:
        """Make sure this file exists locally. Returns True if it was fetched, False if it was already there"""
        async with self._client() as client:
            return await self._ensure_present(client, locator)

    async def probe(self, locator: FileLocator) -> bool:
        """Is the file present? Raises ProbeFailure on errors other than not found"""
        try:
            await asyncio.to_thread(stat_file, locator.local_path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise ProbeFailure(locator, f"Cannot check {locator.local_path}: {e}") from e
        return True

    async def fetch(self, client: httpx.AsyncClient, locator: FileLocator) -> bytes:
        url = self.url(locator)
        kwargs = {} if self.timeout is None else dict(timeout=self.timeout)
        try:
            response = await client.get(url, follow_redirects=True, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchFailure(locator, f"Origin returned {e.response.status_code} for {url}") from e
        except httpx.HTTPError as e:
            raise FetchFailure(locator, f"Could not fetch {url}: {e!r}") from e
        return response.content

    async def _ensure_present(self, client: httpx.AsyncClient, locator: FileLocator) -> bool:
        async with path_lock(locator.local_path):
            if await self.probe(locator):
                logger.debug(f"Cache hit for {locator.local_path}")
                return False
            data = await self.fetch(client, locator)
            try:
                await asyncio.to_thread(write_atomic, locator.local_path, data)
            except OSError as e:
                raise LocalWriteFailure(locator, f"Cannot write {locator.local_path}: {e}") from e
            logger.info(f"Fetched {self.url(locator)} to {locator.local_path} ({len(data)} bytes)")
            return True

    @contextlib.asynccontextmanager
    async def _client(self):
        if self.client is not None:
            yield self.client
        else:
            async with httpx.AsyncClient() as client:
                yield client
