"""
Version Matching for the setup-kustomize install subsystem

This module cleans release tags into semantic versions and picks the highest
version that satisfies an npm-style range expression.
"""

import re
from typing import Iterable, List, Optional

import semantic_version

from setup_kustomize.exceptions import UnresolvedVersionError
from setup_kustomize.log_utils import logger

# Version at the end of a prefixed tag such as "kustomize/v3.5.4"
TAG_VERSION_RX = re.compile(
    r"(?:^|[^0-9A-Za-z.])v?"
    r"(\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)$"
)


def _parse(value: str) -> Optional[semantic_version.Version]:
    try:
        return semantic_version.Version(value)
    except ValueError:
        return None


def clean_version(value: Optional[str]) -> Optional[str]:
    """
    Strictly clean a version string.

    Surrounding whitespace and any leading `=` or `v` characters are removed;
    what remains must be a complete semantic version.

    Returns:
        The normalized version (e.g. "3.5.0" for " v3.5.0"), or None.
    """
    if value is None:
        return None
    trimmed = value.strip().lstrip("=v")
    if not trimmed:
        return None
    parsed = _parse(trimmed)
    return str(parsed) if parsed is not None else None


def clean_tag(name: Optional[str]) -> Optional[str]:
    """
    Extract a semantic version from a release name or tag.

    Accepts everything clean_version() accepts plus prefixed forms where the
    version is the trailing component, e.g. "kustomize/v3.5.4" or
    "kustomize v3.5.4".

    Returns:
        The version string, or None when the name carries no valid version.
    """
    cleaned = clean_version(name)
    if cleaned is not None or not name:
        return cleaned

    match = TAG_VERSION_RX.search(name.strip())
    if not match:
        return None
    parsed = _parse(match.group(1))
    return str(parsed) if parsed is not None else None


def is_explicit_version(version_spec: str) -> bool:
    """Return True when the specifier pins one exact version rather than a range."""
    return clean_version(version_spec) is not None


def parse_range(version_range: str) -> semantic_version.NpmSpec:
    """
    Parse an npm-style range expression (`^1.2.0`, `~3.5`, `>=3.2 <4`, `3.x`).

    Raises:
        UnresolvedVersionError: If the expression is not a valid range.
    """
    try:
        return semantic_version.NpmSpec(version_range.strip())
    except ValueError as e:
        raise UnresolvedVersionError(
            f"Invalid version range '{version_range}'",
            version_spec=version_range,
            details=str(e),
        ) from e


def sort_versions(versions: Iterable[str]) -> List[str]:
    """Sort version strings ascending by semantic-version precedence."""
    return sorted(set(versions), key=semantic_version.Version)


def best_match(candidates: Iterable[str], version_range: str) -> Optional[str]:
    """
    Return the highest candidate that satisfies the range.

    Candidates must already be valid semantic versions. Pre-release versions
    only match ranges that name a pre-release on the same major.minor.patch,
    following npm semantics.

    Parameters:
        candidates: Version strings to evaluate; duplicates are ignored.
        version_range: npm-style range expression.

    Returns:
        The highest satisfying version, or None when nothing satisfies.
    """
    spec = parse_range(version_range)
    versions = sort_versions(candidates)
    logger.debug(f"evaluating {len(versions)} versions")

    match = None
    for potential in reversed(versions):
        if spec.match(semantic_version.Version(potential)):
            match = potential
            break

    if match:
        logger.debug(f"matched: {match}")
    else:
        logger.debug("match not found")
    return match
