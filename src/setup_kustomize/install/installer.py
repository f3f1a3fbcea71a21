"""
Kustomize acquisition pipeline.

Resolves a version specifier against the tool cache and the upstream release
listing, downloads and caches the binary when needed, and registers the cached
directory on the search path.
"""

import os
from typing import Any, Callable, Dict, Optional

from setup_kustomize.config import get_tool_cache_dir
from setup_kustomize.constants import (
    KUSTOMIZE_RELEASES_URL,
    MSG_DOWNLOAD_FAILED,
    MSG_VERSION_NOT_FOUND,
    TOOL_DISPLAY_NAME,
    TOOL_NAME,
)
from setup_kustomize.env_utils import add_path
from setup_kustomize.exceptions import (
    ExtractionError,
    TransportError,
    UnresolvedVersionError,
)
from setup_kustomize.log_utils import logger

from .assets import resolve_download
from .cache import ToolCache
from .files import HttpDownloader
from .github_source import GithubReleaseSource, query_latest_match
from .interfaces import Downloader, ReleaseSource, ToolStore
from .platform_key import PlatformKey, detect_platform
from .version import clean_version


class KustomizeInstaller:
    """
    Ensures a kustomize binary matching a version specifier is available.

    The flow is strictly sequential: cache lookup, optional release listing,
    second cache lookup, optional download and extraction, cache store. At most
    one listing call and one download happen per call to get_kustomize().
    """

    def __init__(
        self,
        platform_key: PlatformKey,
        cache: ToolStore,
        source: ReleaseSource,
        downloader: Downloader,
        register_path: Callable[[str], None] = add_path,
    ):
        self.platform_key = platform_key
        self.cache = cache
        self.source = source
        self.downloader = downloader
        self.register_path = register_path

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        platform_key: Optional[PlatformKey] = None,
    ) -> "KustomizeInstaller":
        """Wire the default collaborators from a loaded configuration."""
        return cls(
            platform_key=platform_key or detect_platform(),
            cache=ToolCache(get_tool_cache_dir(config)),
            source=GithubReleaseSource(
                config.get("RELEASES_URL") or KUSTOMIZE_RELEASES_URL, config
            ),
            downloader=HttpDownloader(config=config),
        )

    def resolve_version(self, version_spec: str) -> str:
        """
        Turn a specifier into a concrete version.

        Exact versions are returned cleaned without touching the network;
        ranges are resolved against the release listing.

        Raises:
            UnresolvedVersionError: If the range cannot be parsed or no published
                release satisfies it.
        """
        explicit = clean_version(version_spec)
        if explicit is not None:
            return explicit

        try:
            version = query_latest_match(version_spec, self.platform_key, self.source)
        except UnresolvedVersionError as e:
            # An unparsable range matches nothing
            raise self._not_found(version_spec, details=e.details) from e
        if not version:
            raise self._not_found(version_spec)
        return version

    def _not_found(
        self, version_spec: str, details: Optional[str] = None
    ) -> UnresolvedVersionError:
        return UnresolvedVersionError(
            MSG_VERSION_NOT_FOUND.format(
                tool=TOOL_DISPLAY_NAME,
                spec=version_spec,
                os_id=self.platform_key.os_id,
                arch=self.platform_key.arch,
            ),
            version_spec=version_spec,
            os_id=self.platform_key.os_id,
            arch=self.platform_key.arch,
            details=details,
        )

    def get_kustomize(self, version_spec: str) -> str:
        """
        Return a cached directory holding kustomize for `version_spec`.

        Downloads and caches the binary when neither the specifier nor the
        version it resolves to is already cached.
        """
        arch = self.platform_key.arch
        tool_path = self.cache.find(TOOL_NAME, version_spec, arch)
        if tool_path:
            logger.info(f"Found {TOOL_DISPLAY_NAME} {version_spec} in cache: {tool_path}")
            return tool_path

        version = self.resolve_version(version_spec)
        if version != clean_version(version_spec):
            logger.info(f"Resolved {TOOL_DISPLAY_NAME} '{version_spec}' to {version}")
            tool_path = self.cache.find(TOOL_NAME, version, arch)
            if tool_path:
                logger.info(f"Found {TOOL_DISPLAY_NAME} {version} in cache: {tool_path}")
                return tool_path

        return self.acquire(version)

    def acquire(self, version: str) -> str:
        """
        Download, unpack when archived, and cache one concrete version.

        Raises:
            UnsupportedPlatformError: If no binary is published for this platform.
            TransportError: If the download fails; the message names the version.
            ExtractionError: If the archive is unreadable or lacks the binary.
        """
        target = resolve_download(version, self.platform_key)
        logger.info(f"Downloading {TOOL_DISPLAY_NAME} {version} from {target.url}")

        try:
            download_path = self.downloader.download_tool(target.url)
        except TransportError as e:
            logger.debug(f"Download of {target.url} failed: {e}")
            raise TransportError(
                MSG_DOWNLOAD_FAILED.format(version=version),
                url=target.url,
                status_code=e.status_code,
                version=version,
                details=str(e),
            ) from e

        binary_path = download_path
        if target.archived:
            extract_dir = self.downloader.extract_tar(download_path)
            binary_path = os.path.join(extract_dir, target.binary_name)
            if not os.path.isfile(binary_path):
                raise ExtractionError(
                    f"Archive for version {version} does not contain {target.binary_name}",
                    archive_path=download_path,
                )

        return self.cache.cache_file(
            binary_path, target.binary_name, TOOL_NAME, version, self.platform_key.arch
        )

    def install(self, version_spec: str) -> str:
        """
        Make kustomize for `version_spec` available on the search path.

        Returns:
            The directory that was registered.
        """
        tool_path = self.get_kustomize(version_spec)
        self.register_path(tool_path)
        logger.info(f"Added {tool_path} to PATH")
        return tool_path
