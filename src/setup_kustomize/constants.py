"""
Constants and configuration values for setup-kustomize.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

APP_NAME = "setup-kustomize"

# Tool identity
TOOL_NAME = "kustomize"
TOOL_DISPLAY_NAME = "Kustomize"

# GitHub URLs
GITHUB_API_BASE = "https://api.github.com/repos"
KUSTOMIZE_REPO = "kubernetes-sigs/kustomize"
KUSTOMIZE_RELEASES_URL = f"{GITHUB_API_BASE}/{KUSTOMIZE_REPO}/releases"
KUSTOMIZE_DOWNLOAD_BASE = f"https://github.com/{KUSTOMIZE_REPO}/releases/download"

# Release era boundaries (upstream changed tag and asset naming at these versions)
ARCHIVED_RELEASES_SINCE = "3.3.0"
PREFIXED_TAGS_SINCE = "3.2.1"

# Host vocabulary -> release asset vocabulary
SUPPORTED_OS_IDS = ("linux", "darwin", "win32")
OS_TOKENS = {"linux": "linux", "darwin": "darwin", "win32": "windows"}
ARCH_TOKENS = {"x64": "amd64"}
DOWNLOADABLE_ARCHES = ("x64",)
WINDOWS_OS_ID = "win32"
WINDOWS_EXE_SUFFIX = ".exe"
TAR_GZ_EXTENSION = ".tar.gz"

# Network timeouts and delays (in seconds)
GITHUB_API_TIMEOUT = 10
API_CALL_DELAY = 0.1  # Small delay to be respectful to GitHub API

# Download configuration defaults
DEFAULT_CONNECT_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 0.3
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CHUNK_SIZE = 8192

# Windows-specific retry settings
WINDOWS_MAX_REPLACE_RETRIES = 3
WINDOWS_INITIAL_RETRY_DELAY = 1.0  # seconds

EXECUTABLE_PERMISSIONS = 0o755

# Tool cache layout
CACHE_COMPLETE_SUFFIX = ".complete"
TOOL_CACHE_DIR_NAME = "tool-cache"
TEMP_DIR_NAME = "tmp"

# Logging configuration
LOGGER_NAME = "setup_kustomize"
LOG_FILE_NAME = "setup-kustomize.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Configuration file names
CONFIG_FILE_NAME = "setup-kustomize.yaml"

# Environment variable names
LOG_LEVEL_ENV_VAR = "SETUP_KUSTOMIZE_LOG_LEVEL"
GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"
GITHUB_ACTIONS_ENV_VAR = "GITHUB_ACTIONS"
GITHUB_PATH_ENV_VAR = "GITHUB_PATH"
RUNNER_DEBUG_ENV_VAR = "RUNNER_DEBUG"
RUNNER_TEMP_ENV_VAR = "RUNNER_TEMP"
RUNNER_TOOL_CACHE_ENV_VAR = "RUNNER_TOOL_CACHE"
VERSION_INPUT_NAME = "kustomize-version"

# Messages
MSG_VERSION_NOT_FOUND = (
    "Unable to find {tool} version '{spec}' for platform {os_id} and architecture {arch}."
)
MSG_DOWNLOAD_FAILED = "Failed to download version {version}"
MSG_UNEXPECTED_OS = "Unexpected OS '{os_id}'"
MSG_UNEXPECTED_ARCH = "Unexpected Arch '{arch}'"
