"""Lazy media-fetch cache: fetch missing upload files from an origin server on read."""
