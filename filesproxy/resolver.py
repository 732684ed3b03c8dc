"""Expand stored-file records into the local files they imply."""

import logging
from pathlib import Path, PurePosixPath

from filesproxy.models import FileLocator, StoredFileRecord

logger = logging.getLogger("filesproxy.resolver")

ORIGINAL = "original"


def local_path(upload_dir: Path, filename: str) -> Path:
    """Join filename onto upload_dir, refusing names that would end up outside of it"""
    parts = PurePosixPath(filename.replace("\\", "/")).parts
    if not parts or filename.startswith(("/", "\\")) or ".." in parts or Path(filename).is_absolute():
        raise ValueError(f"Invalid upload filename: {filename!r}")
    return Path(upload_dir).joinpath(*parts)


def _locator(name: str, upload_dir: Path, filename: str, url: str) -> FileLocator | None:
    try:
        return FileLocator(name=name, local_path=local_path(upload_dir, filename), remote_locator=url)
    except ValueError as e:
        logger.warning(f"Skipping {name} file: {e}")
        return None


def resolve_locators(record: StoredFileRecord, upload_dir: Path) -> list[FileLocator]:
    """
    Return the locators for all files of this record: the primary file first, then each variant in order.
    Records without a remote url are not origin-backed and resolve to nothing.
    Files with a name outside of upload_dir are skipped, so they don't prevent the other files from being cached.
    """
    if not (record.url and record.filename):
        return []

    locators = [_locator(ORIGINAL, upload_dir, record.filename, record.url)]
    for variant in record.variants:
        if not (variant.url and variant.filename):
            logger.debug(f"Skipping variant {variant.name!r} of {record.filename}: no remote file")
            continue
        locators.append(_locator(variant.name, upload_dir, variant.filename, variant.url))
    return [locator for locator in locators if locator is not None]
