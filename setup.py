#!/usr/bin/env python3
"""
Setup configuration for spot-reshuffle
Combine Spotify playlists and Liked Songs into one shuffled playlist
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "spotipy>=2.22.1",
    "aiohttp>=3.9.1",
    "asyncio-throttle>=1.0.2",
    "click>=8.1.7",
    "rich-click>=1.7.0",
    "rich>=13.0.0",
    "pyyaml>=6.0.1",
    "requests>=2.31.0",
    "tqdm>=4.66.1",
]

setup(
    name="spot-reshuffle",
    version="0.1.0",
    author="spot-reshuffle Team",
    description="Combine Spotify playlists and Liked Songs into one shuffled playlist",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["spot_reshuffle", "spot_reshuffle.*"]),
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
            "spot-reshuffle=spot_reshuffle.cli:main",
        ],
    },
    keywords="spotify playlist shuffle liked-songs cli",
)
