#!/usr/bin/env python3

# SPDX-License-Identifier: MIT-0

"""
Setup configuration for the docingest package.

Crawls documentation sites and a structured policy feed into a vector index:
- Bounded-concurrency crawler with URL canonicalization
- Article extraction and HTML to Markdown conversion
- Policy feed parsing and Markdown formatting
- Batch upserts with per-document failure isolation
- Search helpers over the index
"""

from setuptools import find_packages, setup

setup(
    name="docingest",
    version="0.1.0",
    description="Documentation and policy ingestion into a vector index",
    packages=find_packages(where="lib"),
    package_dir={"": "lib"},
    python_requires=">=3.11",
    install_requires=[
        # Scraping dependencies
        "httpx>=0.27.0",
        "beautifulsoup4>=4.12.0",
        "markdownify>=0.13.0",
        "lxml>=5.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "docingest=docingest.cli:main",
        ],
    },
    author="Development Team",
    license="MIT-0",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)
