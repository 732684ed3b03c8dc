"""
files-proxy configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the FILESPROXY_ENV_FILE environment variable
"""

import functools
from pathlib import Path
from typing import Annotated, Any

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "filesproxy_"


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(
            description="Location of a .env file (if used) relative to working directory",
        ),
    ] = Path(".env")

    media_directory: Annotated[
        Path,
        Field(
            description=(
                "Local root for cached uploads. Files of a collection are stored in <media_directory>/<collection slug> "
                "unless the collection sets its own static directory"
            ),
        ),
    ] = Path("media")

    origin_url: Annotated[
        str | None,
        Field(
            description="Origin server to fetch missing files from, e.g. https://cms.example.com (no trailing slash)",
        ),
    ] = None

    media_collection_slug: Annotated[
        str,
        Field(
            description="Slug of the upload collection whose files should be fetched on read",
        ),
    ] = "media"

    enabled: Annotated[
        bool,
        Field(
            description="Fetch missing files on read. If false, the read hook is still installed but does nothing",
        ),
    ] = True

    raise_errors: Annotated[
        bool,
        Field(
            description="Fail the read if a file could not be fetched. By default failures are logged and the read continues",
        ),
    ] = False

    fetch_timeout: Annotated[
        float | None,
        Field(
            description="Timeout in seconds for a single origin request. Default: the httpx default",
        ),
    ] = None

    records_file: Annotated[
        Path | None,
        Field(
            description="JSON file with the media documents served by the development server",
        ),
    ] = None

    @model_validator(mode="after")
    def strip_origin(self: Any) -> "Settings":
        if self.origin_url:
            self.origin_url = self.origin_url.rstrip("/")
        return self

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)


@functools.lru_cache()
def get_settings() -> Settings:
    # Read the env_file location first, then let the .env fill in whatever the environment does not set
    temp = Settings()
    load_dotenv(temp.env_file, override=False)
    return Settings()


def validate_settings():
    settings = get_settings()
    if not settings.enabled:
        return None
    if not settings.origin_url:
        return (
            "No origin_url is configured, so missing files cannot be fetched. "
            f"Set {ENV_PREFIX.upper()}ORIGIN_URL or disable the proxy with {ENV_PREFIX.upper()}ENABLED=false"
        )
    if not settings.origin_url.startswith(("http://", "https://")):
        return f"origin_url {settings.origin_url!r} should start with http:// or https://"


if __name__ == "__main__":
    # Echo the settings
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")
