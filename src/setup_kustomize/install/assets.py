"""
Download URL resolution for kustomize release assets.

Upstream changed its tagging and asset naming twice, so each release era has
its own URL template. A template is a pure function of (version, os token,
arch token); the era is picked from the version alone.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import semantic_version

from setup_kustomize.constants import (
    ARCH_TOKENS,
    ARCHIVED_RELEASES_SINCE,
    DOWNLOADABLE_ARCHES,
    KUSTOMIZE_DOWNLOAD_BASE,
    MSG_UNEXPECTED_ARCH,
    MSG_UNEXPECTED_OS,
    OS_TOKENS,
    PREFIXED_TAGS_SINCE,
    TAR_GZ_EXTENSION,
    TOOL_NAME,
    WINDOWS_EXE_SUFFIX,
    WINDOWS_OS_ID,
)
from setup_kustomize.exceptions import (
    UnresolvedVersionError,
    UnsupportedPlatformError,
)

from .interfaces import DownloadTarget
from .platform_key import PlatformKey
from .version import clean_version


def _archived_url(version: str, os_token: str, arch_token: str) -> str:
    return (
        f"{KUSTOMIZE_DOWNLOAD_BASE}/kustomize/v{version}/"
        f"kustomize_v{version}_{os_token}_{arch_token}{TAR_GZ_EXTENSION}"
    )


def _prefixed_url(version: str, os_token: str, arch_token: str) -> str:
    return (
        f"{KUSTOMIZE_DOWNLOAD_BASE}/kustomize/v{version}/"
        f"kustomize_kustomize.v{version}_{os_token}_{arch_token}"
    )


def _legacy_url(version: str, os_token: str, arch_token: str) -> str:
    return (
        f"{KUSTOMIZE_DOWNLOAD_BASE}/v{version}/"
        f"kustomize_{version}_{os_token}_{arch_token}"
    )


@dataclass(frozen=True)
class UrlTemplate:
    """URL scheme of one release era."""

    era: str
    min_version: Optional[semantic_version.Version]
    archived: bool
    build: Callable[[str, str, str], str]

    def covers(self, version: semantic_version.Version) -> bool:
        return self.min_version is None or version >= self.min_version


# Newest first; the first template that covers a version wins.
URL_TEMPLATES: Tuple[UrlTemplate, ...] = (
    UrlTemplate(
        era="archived",
        min_version=semantic_version.Version(ARCHIVED_RELEASES_SINCE),
        archived=True,
        build=_archived_url,
    ),
    UrlTemplate(
        era="prefixed",
        min_version=semantic_version.Version(PREFIXED_TAGS_SINCE),
        archived=False,
        build=_prefixed_url,
    ),
    UrlTemplate(era="legacy", min_version=None, archived=False, build=_legacy_url),
)

_WINDOWS_SINCE = semantic_version.Version(PREFIXED_TAGS_SINCE)


def select_template(version: semantic_version.Version) -> UrlTemplate:
    """Return the URL template of the era `version` was published in."""
    for template in URL_TEMPLATES:
        if template.covers(version):
            return template
    raise AssertionError("the legacy template covers every version")


def _os_token(platform_key: PlatformKey, version: semantic_version.Version) -> str:
    os_token = OS_TOKENS.get(platform_key.os_id)
    # Windows binaries are only published after 3.2.1
    if os_token is None or (
        platform_key.os_id == WINDOWS_OS_ID and version <= _WINDOWS_SINCE
    ):
        raise UnsupportedPlatformError(
            MSG_UNEXPECTED_OS.format(os_id=platform_key.os_id),
            os_id=platform_key.os_id,
            arch=platform_key.arch,
            version=str(version),
        )
    return os_token


def _arch_token(platform_key: PlatformKey, version: semantic_version.Version) -> str:
    if platform_key.arch not in DOWNLOADABLE_ARCHES:
        raise UnsupportedPlatformError(
            MSG_UNEXPECTED_ARCH.format(arch=platform_key.arch),
            os_id=platform_key.os_id,
            arch=platform_key.arch,
            version=str(version),
        )
    return ARCH_TOKENS[platform_key.arch]


def resolve_download(version: str, platform_key: PlatformKey) -> DownloadTarget:
    """
    Work out where to download `version` from for this platform.

    Raises:
        UnresolvedVersionError: If `version` is not a valid semantic version.
        UnsupportedPlatformError: If no binary is published for the OS or
            architecture (stricter than release matching: a release can exist
            without a downloadable binary for this platform).
    """
    cleaned = clean_version(version)
    if cleaned is None:
        raise UnresolvedVersionError(
            f"Invalid version '{version}'", version_spec=version
        )
    parsed = semantic_version.Version(cleaned)

    template = select_template(parsed)
    os_token = _os_token(platform_key, parsed)
    arch_token = _arch_token(platform_key, parsed)
    url = template.build(cleaned, os_token, arch_token)

    is_windows = platform_key.os_id == WINDOWS_OS_ID
    if is_windows and not template.archived:
        url = f"{url}{WINDOWS_EXE_SUFFIX}"
    binary_name = f"{TOOL_NAME}{WINDOWS_EXE_SUFFIX}" if is_windows else TOOL_NAME

    return DownloadTarget(url=url, archived=template.archived, binary_name=binary_name)


def build_download_url(version: str, platform_key: PlatformKey) -> str:
    """Return the download URL for `version` on this platform."""
    return resolve_download(version, platform_key).url
