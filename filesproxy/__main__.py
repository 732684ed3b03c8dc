"""
files-proxy: fetch missing upload files from an origin server
"""

import argparse
import asyncio
import inspect
import json
import logging
import sys
from pathlib import Path
from typing import Any

import httpx
import uvicorn
from uvicorn.config import LOGGING_CONFIG

from filesproxy.cache import PopulatingCache
from filesproxy.config import ENV_PREFIX, get_settings, validate_settings
from filesproxy.models import StoredFileRecord
from filesproxy.resolver import resolve_locators


def run(args):
    settings = get_settings()
    logging.info(f"Starting server at port {args.port}, debug={not args.nodebug}, origin={settings.origin_url}")
    if validate_settings():
        logging.warning(validate_settings())
    logging.info(
        "To change server config, create an .env file and/or set environment parameters,\n"
        f"{' ' * 26}see filesproxy/config.py for more information.\n"
        f"{' ' * 26}You can run `python -m filesproxy config` to see the current settings\n"
    )
    log_config = "logging.yml" if Path("logging.yml").exists() else LOGGING_CONFIG
    uvicorn.run("filesproxy.api:app", host="0.0.0.0", reload=not args.nodebug, port=int(args.port), log_config=log_config)


def read_documents(sources: list[str]) -> list[dict[str, Any]]:
    docs: list[dict[str, Any]] = []
    for source in sources:
        text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
        data = json.loads(text)
        docs.extend(data if isinstance(data, list) else [data])
    return docs


async def fetch(args) -> None:
    settings = get_settings()
    if not settings.origin_url:
        logging.error(f"No origin url configured, set {ENV_PREFIX.upper()}ORIGIN_URL")
        sys.exit(1)
    upload_dir = Path(args.directory) if args.directory else settings.media_directory / settings.media_collection_slug

    failed = False
    async with httpx.AsyncClient() as client:
        cache = PopulatingCache(settings.origin_url, client=client, timeout=settings.fetch_timeout)
        for doc in read_documents(args.records):
            record = StoredFileRecord.from_doc(doc)
            result = await cache.populate(resolve_locators(record, upload_dir))
            print(f"{record.filename}: fetched {len(result.fetched)}, present {len(result.hits)}, failed {len(result.errors)}")
            failed = failed or not result.ok
    if failed:
        sys.exit(1)


def show_config(_args):
    for k, v in get_settings().model_dump().items():
        if v is None:
            print(f"#{ENV_PREFIX.upper()}{k.upper()}=")
        else:
            print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m filesproxy")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("run", help="Run the development server")
    p.add_argument(
        "--no-debug",
        action="store_true",
        dest="nodebug",
        help="Disable debug mode (no auto reload)",
    )
    p.add_argument("-p", "--port", help="Port", default=5000)
    p.set_defaults(func=run)

    p = subparsers.add_parser("fetch", help="Fetch the missing files of one or more upload documents")
    p.add_argument("records", nargs="+", help="JSON file(s) with a document or a list of documents, or - for stdin")
    p.add_argument("-d", "--directory", help="Upload directory (default: <media_directory>/<media_collection_slug>)")
    p.set_defaults(func=fetch)

    p = subparsers.add_parser("config", help="Show the current settings")
    p.set_defaults(func=show_config)

    args = parser.parse_args()

    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if inspect.iscoroutinefunction(args.func):
        asyncio.run(args.func(args))
    else:
        args.func(args)


if __name__ == "__main__":
    main()
