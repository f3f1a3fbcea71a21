"""
Tool Cache for the setup-kustomize install subsystem

Cached tools live under `<root>/<tool>/<version>/<arch>/` with a sibling
`<arch>.complete` marker written only once the entry is fully populated, the
same layout the GitHub Actions runner uses for its hosted tool cache.
"""

import os
import shutil
from typing import List, Optional

from setup_kustomize.constants import CACHE_COMPLETE_SUFFIX, EXECUTABLE_PERMISSIONS
from setup_kustomize.exceptions import ConfigurationError, UnresolvedVersionError
from setup_kustomize.log_utils import logger

from .interfaces import ToolStore
from .version import best_match, clean_version, is_explicit_version


class ToolCache(ToolStore):
    """
    Filesystem tool cache keyed by tool name, exact version and architecture.
    """

    def __init__(self, cache_dir: str):
        """
        Initialize the ToolCache.

        Parameters:
            cache_dir (str): Root directory of the tool cache; created if missing.
        """
        self.cache_dir = cache_dir
        self._ensure_cache_dir_exists()

    def _ensure_cache_dir_exists(self) -> None:
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Could not create tool cache directory {self.cache_dir}",
                details=str(e),
            ) from e

    def _tool_path(self, tool_name: str, version: str, arch: str) -> str:
        return os.path.join(self.cache_dir, tool_name, version, arch)

    def find(self, tool_name: str, version_spec: str, arch: str) -> Optional[str]:
        """
        Find a cached tool directory.

        A range specifier is first resolved against the versions already in the
        cache; an unparsable range is treated as a miss.

        Returns:
            The cached directory, or None on a miss.
        """
        if not tool_name:
            raise ValueError("tool_name parameter is required")
        if not version_spec:
            raise ValueError("version_spec parameter is required")

        if not is_explicit_version(version_spec):
            local_versions = self.find_all_versions(tool_name, arch)
            try:
                match = best_match(local_versions, version_spec)
            except UnresolvedVersionError as e:
                logger.debug(f"Skipping cache lookup for '{version_spec}': {e}")
                return None
            if match is None:
                return None
            version_spec = match

        version = clean_version(version_spec)
        if version is None:
            return None
        cache_path = self._tool_path(tool_name, version, arch)
        if os.path.isdir(cache_path) and os.path.exists(
            f"{cache_path}{CACHE_COMPLETE_SUFFIX}"
        ):
            logger.debug(f"Found tool in cache {tool_name} {version} {arch}")
            return cache_path
        logger.debug(f"Unable to locate tool {tool_name} {version} {arch} in cache")
        return None

    def find_all_versions(self, tool_name: str, arch: str) -> List[str]:
        """Return every complete cached version of a tool for one architecture."""
        tool_dir = os.path.join(self.cache_dir, tool_name)
        if not os.path.isdir(tool_dir):
            return []

        versions = []
        for child in sorted(os.listdir(tool_dir)):
            version = clean_version(child)
            if version is None:
                continue
            if os.path.exists(
                f"{self._tool_path(tool_name, version, arch)}{CACHE_COMPLETE_SUFFIX}"
            ):
                versions.append(version)
        return versions

    def cache_file(
        self,
        source_file: str,
        target_file: str,
        tool_name: str,
        version: str,
        arch: str,
    ) -> str:
        """
        Copy a single binary into the cache and mark the entry complete.

        Any previous entry for the same key is replaced.

        Returns:
            The cache directory holding `target_file`.
        """
        if not os.path.isfile(source_file):
            raise FileNotFoundError(f"Source file does not exist: {source_file}")

        cleaned = clean_version(version) or version
        dest_dir = self._create_tool_path(tool_name, cleaned, arch)
        dest_file = os.path.join(dest_dir, target_file)
        logger.debug(f"Caching {source_file} as {dest_file}")
        shutil.copyfile(source_file, dest_file)
        if os.name != "nt":
            os.chmod(dest_file, EXECUTABLE_PERMISSIONS)

        self._complete_tool_path(tool_name, cleaned, arch)
        return dest_dir

    def _create_tool_path(self, tool_name: str, version: str, arch: str) -> str:
        folder_path = self._tool_path(tool_name, version, arch)
        marker_path = f"{folder_path}{CACHE_COMPLETE_SUFFIX}"
        if os.path.exists(marker_path):
            os.remove(marker_path)
        if os.path.isdir(folder_path):
            shutil.rmtree(folder_path)
        os.makedirs(folder_path)
        return folder_path

    def _complete_tool_path(self, tool_name: str, version: str, arch: str) -> None:
        marker_path = f"{self._tool_path(tool_name, version, arch)}{CACHE_COMPLETE_SUFFIX}"
        with open(marker_path, "w", encoding="utf-8"):
            pass
        logger.debug("Finished caching tool")
