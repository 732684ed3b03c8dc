#!/usr/bin/env python

from setuptools import setup

setup(
    name="files-proxy",
    version="0.1.0",
    description="Lazy media-fetch cache: fetch missing upload files from an origin server on read",
    packages=["filesproxy"],
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.10",
    keywords=["cache", "media", "proxy"],
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Topic :: Internet :: WWW/HTTP",
    ],
    install_requires=[
        "fastapi",
        "httpx",
        "pydantic>=2",
        "pydantic-settings",
        "python-dotenv",
        "typing_extensions",
        "uvicorn",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
            "pytest-httpx",
            "mypy",
            "flake8",
        ]
    },
    entry_points={"console_scripts": ["filesproxy = filesproxy.__main__:main"]},
)
