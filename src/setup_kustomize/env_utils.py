"""
Runner environment helpers.

Thin plumbing for the GitHub Actions runner: action inputs, search-path
registration and workflow annotations.
"""

from __future__ import annotations

import os
from typing import Optional

from setup_kustomize.constants import (
    GITHUB_ACTIONS_ENV_VAR,
    GITHUB_PATH_ENV_VAR,
)
from setup_kustomize.exceptions import ConfigurationError
from setup_kustomize.log_utils import logger


def is_github_actions() -> bool:
    """
    Check if the current process runs inside a GitHub Actions job.
    """
    return os.environ.get(GITHUB_ACTIONS_ENV_VAR, "").lower() == "true"


def get_input(name: str) -> Optional[str]:
    """
    Read an action input the way the runner exposes it.

    The runner publishes `with:` inputs as `INPUT_<NAME>` with the name
    upper-cased and spaces replaced by underscores (dashes are kept).

    Returns:
        The trimmed value, or None when the input is unset or blank.
    """
    env_name = f"INPUT_{name.replace(' ', '_').upper()}"
    value = os.environ.get(env_name, "").strip()
    return value or None


def add_path(directory: str) -> None:
    """
    Register a directory on the executable search path.

    The directory is prepended to PATH for the current process and, when the
    runner provides a GITHUB_PATH file, appended to it so later steps see it.
    """
    current = os.environ.get("PATH", "")
    os.environ["PATH"] = (
        f"{directory}{os.pathsep}{current}" if current else directory
    )

    github_path = os.environ.get(GITHUB_PATH_ENV_VAR)
    if github_path:
        # Text mode already translates "\n" to the platform line ending
        try:
            with open(github_path, "a", encoding="utf-8") as f:
                f.write(f"{directory}\n")
        except OSError as e:
            raise ConfigurationError(
                f"Could not append to {GITHUB_PATH_ENV_VAR} file {github_path}",
                details=str(e),
            ) from e
    logger.debug(f"Added {directory} to PATH")


def _escape_annotation(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def annotate_error(message: str) -> None:
    """
    Emit an `::error::` workflow command when running under GitHub Actions.
    """
    if is_github_actions():
        print(f"::error::{_escape_annotation(message)}", flush=True)
