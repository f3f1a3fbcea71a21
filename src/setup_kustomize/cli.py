# src/setup_kustomize/cli.py

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from setup_kustomize import config as config_module
from setup_kustomize import log_utils
from setup_kustomize.constants import APP_NAME, TOOL_DISPLAY_NAME, VERSION_INPUT_NAME
from setup_kustomize.env_utils import annotate_error, get_input
from setup_kustomize.exceptions import SetupKustomizeError
from setup_kustomize.install import KustomizeInstaller


def get_setup_kustomize_version() -> str:
    """
    Retrieve the installed setup-kustomize package version.

    Returns:
        version (str): The installed version string, or "unknown" if it cannot be determined.
    """
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version(APP_NAME)
    except PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the setup-kustomize CLI."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=f"{APP_NAME} - install a {TOOL_DISPLAY_NAME} release and add it to PATH",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Configuration file to load (defaults to the user config directory)",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    subparsers = parser.add_subparsers(dest="command")

    install_parser = subparsers.add_parser(
        "install",
        help=f"Install {TOOL_DISPLAY_NAME} and add it to PATH (default command)",
    )
    install_parser.add_argument(
        "version_spec",
        nargs="?",
        metavar="VERSION",
        help=(
            "Exact version or semver range (e.g. 3.5.4, ^3.5.0, 3.x). "
            f"Defaults to the '{VERSION_INPUT_NAME}' action input."
        ),
    )
    install_parser.add_argument(
        "--no-path",
        action="store_true",
        help="Only download and cache; do not register the directory on PATH",
    )

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Print the version a specifier resolves to, without downloading",
    )
    resolve_parser.add_argument("version_spec", metavar="VERSION")

    subparsers.add_parser("version", help=f"Display {APP_NAME} version")
    return parser


def _load_config(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Load configuration and apply logging settings from it and the command line.

    The command line level wins over the configured LOG_LEVEL.
    """
    config = config_module.load_config(args.config)

    level_name = args.log_level or config.get("LOG_LEVEL")
    if level_name:
        log_utils.set_log_level(level_name)
    if config.get("LOG_DIR"):
        log_utils.add_file_logging(
            Path(config["LOG_DIR"]), level_name=level_name or "INFO"
        )
    return config


def _run_install(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    version_spec = getattr(args, "version_spec", None) or get_input(VERSION_INPUT_NAME)
    if not version_spec:
        raise SetupKustomizeError(
            f"No {TOOL_DISPLAY_NAME} version given. Pass VERSION or set the "
            f"'{VERSION_INPUT_NAME}' input."
        )

    installer = KustomizeInstaller.from_config(config)
    if getattr(args, "no_path", False):
        tool_path = installer.get_kustomize(version_spec)
    else:
        tool_path = installer.install(version_spec)
    print(tool_path)


def _run_resolve(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    installer = KustomizeInstaller.from_config(config)
    print(installer.resolve_version(args.version_spec))


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the setup-kustomize command-line interface.

    Without a subcommand the install command runs, which is how the action
    invokes it. Any SetupKustomizeError ends the run with exit status 1 after
    being logged (and annotated when running under GitHub Actions).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"{APP_NAME} {get_setup_kustomize_version()}")
        return

    try:
        config = _load_config(args)
        if args.command == "resolve":
            _run_resolve(args, config)
        else:
            _run_install(args, config)
    except SetupKustomizeError as e:
        log_utils.logger.error(str(e))
        annotate_error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
