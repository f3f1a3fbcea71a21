"""
GitHub Release Source

This module lists kustomize releases from the GitHub API and turns the ones
that ship an asset for the host platform into candidate versions.
"""

from typing import Any, Dict, Iterable, List, Optional, Set

import requests  # type: ignore[import-untyped]

from setup_kustomize.constants import KUSTOMIZE_RELEASES_URL
from setup_kustomize.exceptions import TransportError
from setup_kustomize.log_utils import logger
from setup_kustomize.utils import make_github_api_request

from .interfaces import Asset, Release, ReleaseSource
from .platform_key import PlatformKey
from .version import best_match, clean_tag, parse_range


class GithubReleaseSource(ReleaseSource):
    """
    Lists releases from a GitHub releases endpoint.

    The listing is a single request with the API's default page size; older
    releases beyond the first page are not visible to range resolution.
    """

    def __init__(
        self,
        releases_url: str = KUSTOMIZE_RELEASES_URL,
        config: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the GitHub release source.

        Parameters:
            releases_url (str): The GitHub API URL for fetching releases.
            config (Dict[str, Any] | None): Configuration dictionary for tokens and settings.
        """
        self.releases_url = releases_url
        self.config = config or {}

    def get_releases(self) -> List[Release]:
        """
        Fetch and parse the release listing.

        Malformed entries are skipped with a warning; a payload that is not a
        list is treated as a transport failure.

        Returns:
            List[Release]: Parsed releases in API order.

        Raises:
            TransportError: If the request fails or the payload is not a JSON list.
        """
        releases_data = self._fetch_from_api()
        if not isinstance(releases_data, list):
            raise TransportError(
                "Invalid releases data received from GitHub API",
                url=self.releases_url,
                details=f"expected a list, got {type(releases_data).__name__}",
            )

        releases: List[Release] = []
        for release_data in releases_data:
            if not isinstance(release_data, dict):
                logger.warning(
                    "Skipping malformed release entry from %s: expected dict, got %s",
                    self.releases_url,
                    type(release_data).__name__,
                )
                continue
            try:
                releases.append(create_release_from_github_data(release_data))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(
                    "Skipping malformed release entry from %s: %s",
                    self.releases_url,
                    exc,
                )
        logger.debug("Fetched %d releases from %s", len(releases), self.releases_url)
        return releases

    def _fetch_from_api(self) -> Any:
        try:
            response = make_github_api_request(
                self.releases_url,
                self.config.get("GITHUB_TOKEN"),
                allow_env_token=self.config.get("ALLOW_ENV_TOKEN", True),
            )
            return response.json()
        except requests.HTTPError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            raise TransportError(
                f"Error fetching releases from {self.releases_url}",
                url=self.releases_url,
                status_code=status_code,
                details=str(exc),
            ) from exc
        except (requests.RequestException, ValueError) as exc:
            raise TransportError(
                f"Error fetching releases from {self.releases_url}",
                url=self.releases_url,
                details=str(exc),
            ) from exc


def create_release_from_github_data(release_data: Dict[str, Any]) -> Release:
    """
    Create a Release from GitHub API release data.

    The release `name` is preferred; `tag_name` is used when the name is empty.

    Raises:
        KeyError: If neither a name nor a tag is present.
        TypeError: If `assets` is present but not a list.
    """
    name = release_data.get("name") or release_data["tag_name"]
    assets_data = release_data.get("assets") or []
    if not isinstance(assets_data, list):
        raise TypeError(f"assets must be a list, got {type(assets_data).__name__}")
    return Release(
        name=str(name),
        assets=[
            create_asset_from_github_data(asset_data)
            for asset_data in assets_data
            if isinstance(asset_data, dict)
        ],
    )


def create_asset_from_github_data(asset_data: Dict[str, Any]) -> Asset:
    """Create an Asset from GitHub API asset data."""
    return Asset(
        name=str(asset_data.get("name", "")),
        browser_download_url=str(asset_data.get("browser_download_url", "")),
    )


def collect_candidate_versions(
    releases: Iterable[Release], asset_fragment: str
) -> Set[str]:
    """
    Collect the versions of releases that publish an asset for the platform.

    A release counts when any asset file name contains `asset_fragment`; its
    name is cleaned into a semantic version and unparsable names are dropped.
    """
    versions: Set[str] = set()
    for release in releases:
        if not any(asset_fragment in asset.name for asset in release.assets):
            continue
        version = clean_tag(release.name)
        if version is not None:
            versions.add(version)
        else:
            logger.debug(f"Ignoring release without a semantic version: {release.name}")
    return versions


def query_latest_match(
    version_range: str, platform_key: PlatformKey, source: ReleaseSource
) -> Optional[str]:
    """
    Resolve a range to the highest published version with an asset for this platform.

    The host OS is validated before the listing is requested. An unknown
    architecture is not rejected here: it is matched literally against asset
    names.

    Returns:
        The resolved version, or None when no release satisfies the range.

    Raises:
        UnsupportedPlatformError: If the host OS is not one the tool publishes for.
        UnresolvedVersionError: If the range expression cannot be parsed.
        TransportError: If the release listing cannot be fetched.
    """
    platform_key.require_supported_os()
    parse_range(version_range)
    releases = source.get_releases()
    candidates = collect_candidate_versions(releases, platform_key.asset_fragment)
    return best_match(candidates, version_range)
