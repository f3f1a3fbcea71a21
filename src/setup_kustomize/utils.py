# src/setup_kustomize/utils.py
import gc  # For Windows file operation retries
import importlib.metadata
import os
import platform
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from setup_kustomize.constants import (
    API_CALL_DELAY,
    APP_NAME,
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    GITHUB_API_TIMEOUT,
    GITHUB_TOKEN_ENV_VAR,
    WINDOWS_INITIAL_RETRY_DELAY,
    WINDOWS_MAX_REPLACE_RETRIES,
)
from setup_kustomize.exceptions import TransportError
from setup_kustomize.log_utils import logger

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `setup-kustomize/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(APP_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"{APP_NAME}/{app_version}"

    return _USER_AGENT_CACHE


def get_effective_github_token(
    github_token: Optional[str], allow_env_token: bool = True
) -> Optional[str]:
    """
    Determine the GitHub token to use, preferring the explicit argument over the environment.

    Parameters:
        github_token (Optional[str]): Explicit token to use; leading and trailing whitespace are ignored.
        allow_env_token (bool): If True, fall back to the `GITHUB_TOKEN` environment variable when no explicit token is provided.

    Returns:
        Optional[str]: The chosen token with surrounding whitespace removed, or `None` if no token is available.
    """
    candidate = (github_token or "").strip()
    if candidate:
        return candidate
    if not allow_env_token:
        return None
    env_token = os.environ.get(GITHUB_TOKEN_ENV_VAR)
    return env_token.strip() if env_token else None


def _parse_rate_limit_header(header_value: Any) -> Optional[int]:
    """
    Parse an HTTP rate-limit header value into an integer remaining count.

    Returns:
        Optional[int]: The parsed integer value if successful, `None` otherwise.
    """
    try:
        if isinstance(header_value, str) and header_value.isdigit():
            return int(header_value)
        elif isinstance(header_value, (int, float)):
            return int(header_value)
    except (ValueError, TypeError):
        pass
    return None


def make_github_api_request(
    url: str,
    github_token: Optional[str] = None,
    allow_env_token: bool = True,
    params: Optional[Dict[str, Any]] = None,
    timeout: Optional[int] = None,
    _is_retry: bool = False,
) -> requests.Response:
    """
    Perform a GitHub API GET request with optional token authentication.

    A 401 answer to an authenticated request is retried once without
    authentication. A 403 with an exhausted rate limit is re-raised with a
    message naming the reset time.

    Parameters:
        url (str): GitHub API URL to request.
        github_token (Optional[str]): Explicit GitHub token to prefer for Authorization.
        allow_env_token (bool): If True, allow falling back to the GITHUB_TOKEN environment variable.
        params (Optional[Dict[str, Any]]): Query parameters to include in the request.
        timeout (Optional[int]): Request timeout in seconds; the module default is used when omitted.

    Returns:
        requests.Response: The HTTP response returned by GitHub.

    Raises:
        requests.HTTPError: For HTTP error responses.
        requests.RequestException: For lower-level network or request errors.
    """
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": get_user_agent(),
    }

    effective_token = get_effective_github_token(github_token, allow_env_token)
    if effective_token:
        headers["Authorization"] = f"token {effective_token}"
        logger.debug("Using GitHub token for API authentication")
    else:
        logger.debug("No GitHub token available - using unauthenticated API requests")

    try:
        actual_timeout = timeout or GITHUB_API_TIMEOUT
        logger.debug(f"Making GitHub API request: {url}")
        response = requests.get(
            url, timeout=actual_timeout, headers=headers, params=params
        )
        response.raise_for_status()
    except requests.HTTPError as e:
        if (
            not _is_retry
            and e.response is not None
            and e.response.status_code == 401
            and effective_token
        ):
            logger.warning(
                f"GitHub token authentication failed for {url}. Retrying without authentication."
            )
            return make_github_api_request(
                url,
                github_token=None,
                allow_env_token=False,
                params=params,
                timeout=timeout,
                _is_retry=True,
            )
        elif e.response is not None and e.response.status_code == 403:
            remaining = _parse_rate_limit_header(
                e.response.headers.get("X-RateLimit-Remaining")
            )
            if remaining == 0:
                reset_time = e.response.headers.get("X-RateLimit-Reset")
                reset_time_str = (
                    datetime.fromtimestamp(int(reset_time), timezone.utc).strftime(
                        "%Y-%m-%d %H:%M:%S UTC"
                    )
                    if reset_time
                    else "unknown"
                )
                error_msg = (
                    f"GitHub API rate limit exceeded. Resets at {reset_time_str}. "
                    f"Set {GITHUB_TOKEN_ENV_VAR} environment variable for higher rate limits."
                )
            else:
                error_msg = "GitHub API access forbidden"
            logger.error(error_msg)
            raise requests.HTTPError(error_msg, response=e.response) from None
        else:
            raise
    finally:
        # Small delay to be respectful to GitHub API, even on errors
        time.sleep(API_CALL_DELAY)

    resp_headers = getattr(response, "headers", None) or {}
    remaining = _parse_rate_limit_header(resp_headers.get("X-RateLimit-Remaining"))
    if remaining is not None:
        logger.debug(f"GitHub API rate-limit remaining: {remaining}")
        if remaining <= 10:
            logger.warning(
                f"GitHub API rate limit running low: {remaining} requests remaining"
            )

    return response


def _remove_quietly(path: str) -> None:
    if os.path.exists(path):
        try:
            os.remove(path)
        except (IOError, OSError) as e_rm:
            logger.warning(f"Error removing temporary file {path}: {e_rm}")


def _replace_file(temp_path: str, download_path: str) -> None:
    """
    Move the finished temp file into place.

    On Windows a PermissionError from a lingering file handle is retried with
    exponential backoff before giving up.
    """
    if platform.system() != "Windows":
        os.replace(temp_path, download_path)
        return

    retry_delay = WINDOWS_INITIAL_RETRY_DELAY
    for i in range(WINDOWS_MAX_REPLACE_RETRIES):
        try:
            # Force garbage collection to release file handles before attempting move
            gc.collect()
            os.replace(temp_path, download_path)
            return
        except PermissionError as e_perm:
            if i == WINDOWS_MAX_REPLACE_RETRIES - 1:
                raise
            logger.debug(
                f"File access error (PermissionError) on Windows for {download_path}, retrying in {retry_delay}s: {e_perm}"
            )
            time.sleep(retry_delay)
            retry_delay *= 2


def download_file_with_retry(
    url: str,
    download_path: str,
    retries: int = DEFAULT_CONNECT_RETRIES,
) -> str:
    """
    Stream a remote file to disk and atomically install it at `download_path`.

    Connection errors and retryable status codes are retried by urllib3 with
    exponential backoff. The body is written to a temporary sibling file that
    replaces the destination only after the transfer completed.

    Parameters:
        url (str): The HTTP(S) URL of the remote file to download.
        download_path (str): Final filesystem path where the downloaded file will be installed.
        retries (int): Connect/read/status retry budget for the HTTP adapter.

    Returns:
        str: `download_path`, once the file is in place.

    Raises:
        TransportError: When the request fails or the file cannot be written.
    """
    temp_path = f"{download_path}.tmp.{os.getpid()}.{int(time.time() * 1000)}"
    session = requests.Session()
    response = None
    try:
        logger.debug(
            f"Attempting to download file from URL: {url} to temp path: {temp_path}"
        )
        start_time = time.time()
        retry_strategy: Retry = Retry(
            total=retries,
            connect=retries,
            read=retries,
            status=retries,
            backoff_factor=DEFAULT_BACKOFF_FACTOR,
            status_forcelist=[408, 429, 500, 502, 503, 504],
            allowed_methods=frozenset({"GET", "HEAD"}),
            raise_on_status=False,
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers["User-Agent"] = get_user_agent()

        response = session.get(url, stream=True, timeout=DEFAULT_REQUEST_TIMEOUT)
        logger.debug(
            f"Received HTTP response status code: {response.status_code} for URL: {url}"
        )
        # Status-based retries have already been applied by urllib3's Retry;
        # raise_for_status surfaces the final HTTP error, if any.
        response.raise_for_status()

        downloaded_bytes = 0
        parent_dir = os.path.dirname(download_path)
        if parent_dir:
            os.makedirs(parent_dir, exist_ok=True)
        with open(temp_path, "wb") as file:
            for chunk in response.iter_content(chunk_size=DEFAULT_CHUNK_SIZE):
                if chunk:
                    file.write(chunk)
                    downloaded_bytes += len(chunk)

        _replace_file(temp_path, download_path)

        elapsed = time.time() - start_time
        logger.debug("Download elapsed time: %.2fs for %s", elapsed, url)
        file_size_mb = downloaded_bytes / (1024 * 1024)
        if file_size_mb >= 1.0:
            logger.info(
                f"Downloaded: {os.path.basename(url)} ({file_size_mb:.1f} MB)"
            )
        else:
            logger.info(f"Downloaded: {os.path.basename(url)} ({downloaded_bytes} bytes)")
        return download_path

    except requests.HTTPError as e_http:
        status_code = e_http.response.status_code if e_http.response is not None else None
        raise TransportError(
            f"HTTP error downloading {url}",
            url=url,
            status_code=status_code,
            details=str(e_http),
        ) from e_http
    except requests.exceptions.RequestException as e_req:
        raise TransportError(
            f"Network error downloading {url}", url=url, details=str(e_req)
        ) from e_req
    except (IOError, OSError) as e_io:
        raise TransportError(
            f"File I/O error while downloading {url}", url=url, details=str(e_io)
        ) from e_io
    finally:
        _remove_quietly(temp_path)
        if response is not None:
            response.close()
        session.close()
