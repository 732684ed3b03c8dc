from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Self

from filesproxy.config import Settings

######################## STORED FILE RECORDS #########################


class FileVariant(BaseModel):
    """A derived rendition of an upload, e.g. a resized thumbnail."""

    name: str
    filename: str | None = None  # None if the framework skipped this size (e.g. the image was too small)
    url: str | None = None


class StoredFileRecord(BaseModel):
    """The part of an upload document that describes its physical files."""

    filename: str
    url: str | None = None
    variants: list[FileVariant] = Field(default_factory=list)

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> Self:
        """
        Build a record from a raw upload document.
        The `sizes` mapping ({name: {filename, url, ...}}) becomes an explicit ordered list of variants.
        A document without a filename is not origin-backed: it gets no url.
        """
        sizes = doc.get("sizes")
        variants = [
            FileVariant(name=name, filename=size.get("filename"), url=size.get("url"))
            for name, size in (sizes.items() if isinstance(sizes, Mapping) else [])
            if isinstance(size, Mapping)
        ]
        filename = doc.get("filename")
        if not filename:
            return cls(filename="", url=None, variants=variants)
        return cls(filename=filename, url=doc.get("url"), variants=variants)


class FileLocator(BaseModel):
    """A local path that must exist, and where to fetch it from if it doesn't."""

    model_config = ConfigDict(frozen=True)

    name: str
    local_path: Path
    remote_locator: str


######################## FRAMEWORK CONFIGURATION #########################

# An after-read hook receives the document (and framework context as keyword arguments) and returns the document
AfterReadHook = Callable[..., Awaitable[dict[str, Any]]]


class UploadConfig(BaseModel):
    static_dir: Path | None = None


class CollectionHooks(BaseModel):
    after_read: list[AfterReadHook] = Field(default_factory=list)


class CollectionConfig(BaseModel):
    slug: str
    upload: UploadConfig | None = None
    hooks: CollectionHooks = Field(default_factory=CollectionHooks)


class AppConfig(BaseModel):
    collections: list[CollectionConfig] = Field(default_factory=list)

    def get_collection(self, slug: str) -> Optional[CollectionConfig]:
        return next((c for c in self.collections if c.slug == slug), None)


class FilesProxyOptions(BaseModel):
    media_directory: Path
    origin_url: str
    media_collection_slug: str = "media"
    enabled: bool = True
    raise_errors: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> Self:
        return cls(
            media_directory=settings.media_directory,
            origin_url=settings.origin_url or "",
            media_collection_slug=settings.media_collection_slug,
            enabled=settings.enabled,
            raise_errors=settings.raise_errors,
        )
