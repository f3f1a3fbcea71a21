"""
setup-kustomize Install Subsystem

Core Components:
- interfaces: Data structures and collaborator interfaces
- platform_key: Host OS/architecture detection
- version: Semantic-version cleaning and range matching
- github_source: Release listing and candidate collection
- assets: Per-era download URL templates
- cache: Filesystem tool cache
- files: Download and tar extraction transport
- installer: Acquisition pipeline
"""

from .assets import build_download_url, resolve_download
from .cache import ToolCache
from .files import HttpDownloader
from .github_source import GithubReleaseSource, query_latest_match
from .installer import KustomizeInstaller
from .interfaces import (
    Asset,
    Downloader,
    DownloadTarget,
    Release,
    ReleaseSource,
    ToolStore,
)
from .platform_key import PlatformKey, detect_platform
from .version import best_match, clean_tag, clean_version, is_explicit_version

__all__ = [
    # Interfaces
    "Asset",
    "Downloader",
    "DownloadTarget",
    "Release",
    "ReleaseSource",
    "ToolStore",
    # Components
    "GithubReleaseSource",
    "HttpDownloader",
    "KustomizeInstaller",
    "PlatformKey",
    "ToolCache",
    # Functions
    "best_match",
    "build_download_url",
    "clean_tag",
    "clean_version",
    "detect_platform",
    "is_explicit_version",
    "query_latest_match",
    "resolve_download",
]
