"""
Core Interfaces for the setup-kustomize install subsystem

This module defines the data structures and collaborator interfaces that the
acquisition pipeline is written against.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Asset:
    """Represents a downloadable asset from a release."""

    name: str
    """The filename of the asset"""

    browser_download_url: str
    """Direct URL to download the asset"""


@dataclass
class Release:
    """Represents a release record from the upstream release feed."""

    name: str
    """The raw release name/tag (e.g., 'kustomize/v3.5.4')"""

    assets: List[Asset] = field(default_factory=list)
    """Downloadable assets in the order the API returned them"""


@dataclass(frozen=True)
class DownloadTarget:
    """Where to fetch a concrete version from and how to unpack it."""

    url: str
    """Direct download URL for this platform"""

    archived: bool
    """Whether the URL points at a .tar.gz archive rather than a raw binary"""

    binary_name: str
    """File name of the binary, inside the archive when archived"""


class ReleaseSource(ABC):
    """
    Abstract base class for release feeds.

    A ReleaseSource lists the published releases of the tool.
    """

    @abstractmethod
    def get_releases(self) -> List[Release]:
        """
        Retrieve the published releases in a single listing call.

        Returns:
            List[Release]: Releases in the order the feed returned them.

        Raises:
            TransportError: If the feed cannot be reached or answers with an error.
        """


class ToolStore(ABC):
    """
    Abstract base class for the tool cache.

    Entries are keyed by tool name, exact version and architecture.
    """

    @abstractmethod
    def find(self, tool_name: str, version_spec: str, arch: str) -> Optional[str]:
        """
        Look up a cached tool directory.

        Returns:
            The directory holding the cached tool, or None when absent.
        """

    @abstractmethod
    def cache_file(
        self,
        source_file: str,
        target_file: str,
        tool_name: str,
        version: str,
        arch: str,
    ) -> str:
        """
        Store a single file in the cache under the given key.

        Returns:
            The cache directory containing `target_file`.
        """


class Downloader(ABC):
    """
    Abstract base class for the download and extraction transport.
    """

    @abstractmethod
    def download_tool(self, url: str) -> str:
        """
        Download `url` to a fresh temporary file.

        Returns:
            Path to the downloaded file.

        Raises:
            TransportError: On network or HTTP failure.
        """

    @abstractmethod
    def extract_tar(self, archive_path: str) -> str:
        """
        Unpack a gzipped tar archive into a fresh temporary directory.

        Returns:
            Path to the extraction directory.

        Raises:
            ExtractionError: If the archive is unreadable.
        """
