#!/usr/bin/env python3
"""
Setup configuration for ytplaylist
Keeps a local MP3 directory in sync with a YouTube playlist, with MusicBrainz metadata
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "yt-dlp>=2023.12.30",
    "mutagen>=1.47.0",
    "click>=8.1.7",
    "rich-click>=1.7.0",
    "pyyaml>=6.0.1",
    "tqdm>=4.66.1",
    "aiohttp>=3.9.1",
    "asyncio-throttle>=1.0.2",
    "Pillow>=10.0.0",
]

setup(
    name="ytplaylist",
    version="0.1.0",
    author="ytplaylist Team",
    description="Sync YouTube playlists to a local MP3 directory with MusicBrainz metadata",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/ytplaylist/ytplaylist",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "pytest-asyncio>=0.21.1",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ytplaylist=ytplaylist.cli:main",
        ],
    },
    keywords="youtube playlist sync download mp3 musicbrainz id3 cli",
    project_urls={
        "Bug Reports": "https://github.com/ytplaylist/ytplaylist/issues",
        "Source": "https://github.com/ytplaylist/ytplaylist",
    },
)
