"""
Download and extraction transport for the setup-kustomize install subsystem

Downloads go to uniquely named files under the run's temp directory and
archives are unpacked into uniquely named sibling directories. Both are left
for the runner (or the OS) to clean up once the binary has been cached.
"""

import os
import shutil
import tarfile
import uuid
from typing import Any, Dict, Optional

from setup_kustomize.config import get_temp_dir
from setup_kustomize.constants import DEFAULT_CONNECT_RETRIES
from setup_kustomize.exceptions import ExtractionError
from setup_kustomize.log_utils import logger
from setup_kustomize.utils import download_file_with_retry

from .interfaces import Downloader


def _is_within_base(real_base_dir: str, candidate: str) -> bool:
    """
    Determine whether the candidate path resides within the given base directory.
    """
    try:
        return os.path.commonpath([real_base_dir, candidate]) == real_base_dir
    except ValueError:
        return False


def is_safe_archive_member(member_name: str) -> bool:
    """
    Determine whether an archive member name is safe to extract.

    Returns:
        `True` if the member name contains no absolute paths, parent-directory
        references, or null bytes, `False` otherwise.
    """
    if not member_name or member_name.startswith("/") or member_name.startswith("\\"):
        return False
    normalized = os.path.normpath(member_name)
    if os.path.isabs(normalized):
        return False
    if normalized == ".." or normalized.startswith(f"..{os.sep}"):
        return False
    if os.altsep and normalized.startswith(f"..{os.altsep}"):
        return False
    if "\x00" in normalized:
        return False
    return True


def safe_extract_path(extract_dir: str, file_path: str) -> str:
    """
    Resolve a safe absolute extraction path and prevent directory traversal.

    Raises:
        ValueError: If the resolved path is outside extract_dir.
    """
    real_extract_dir = os.path.realpath(extract_dir)
    normalized_path = os.path.realpath(os.path.join(real_extract_dir, file_path))

    if not _is_within_base(real_extract_dir, normalized_path):
        raise ValueError(
            f"Unsafe extraction path '{file_path}' is outside base '{extract_dir}'"
        )
    return normalized_path


def extract_tar_archive(archive_path: str, extract_dir: str) -> str:
    """
    Unpack the regular files and directories of a (compressed) tar archive.

    Links, devices and members that would land outside `extract_dir` are
    skipped. The executable bits of regular files are preserved.

    Returns:
        `extract_dir`.

    Raises:
        ExtractionError: If the archive cannot be opened or read.
    """
    os.makedirs(extract_dir, exist_ok=True)
    try:
        with tarfile.open(archive_path, "r:*") as tar_ref:
            for member in tar_ref.getmembers():
                if not is_safe_archive_member(member.name):
                    logger.warning(
                        "Skipping unsafe archive member %s (possible traversal)",
                        member.name,
                    )
                    continue
                try:
                    target_path = safe_extract_path(extract_dir, member.name)
                except ValueError as e:
                    logger.warning(f"Skipping unsafe extraction path: {e}")
                    continue

                if member.isdir():
                    os.makedirs(target_path, exist_ok=True)
                    continue
                if not member.isfile():
                    logger.debug(f"Skipping non-regular archive member {member.name}")
                    continue

                os.makedirs(os.path.dirname(target_path), exist_ok=True)
                source = tar_ref.extractfile(member)
                if source is None:
                    continue
                with source, open(target_path, "wb") as target:
                    shutil.copyfileobj(source, target)
                if os.name != "nt":
                    os.chmod(target_path, member.mode & 0o777)
                logger.debug(f"Extracted {member.name} to {target_path}")
    except (tarfile.TarError, EOFError, OSError) as e:
        raise ExtractionError(
            f"Error extracting archive {archive_path}",
            archive_path=archive_path,
            details=str(e),
        ) from e
    return extract_dir


class HttpDownloader(Downloader):
    """
    Downloads release assets over HTTP(S) and unpacks tar archives.
    """

    def __init__(
        self,
        temp_dir: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        """
        Parameters:
            temp_dir (str | None): Directory for downloads and extractions;
                derived from the configuration when None.
            config (Dict[str, Any] | None): Configuration dictionary.
        """
        self.config = config or {}
        self.temp_dir = temp_dir or get_temp_dir(self.config)
        self.retries = int(self.config.get("DOWNLOAD_RETRIES", DEFAULT_CONNECT_RETRIES))

    def _unique_path(self) -> str:
        return os.path.join(self.temp_dir, str(uuid.uuid4()))

    def download_tool(self, url: str) -> str:
        logger.debug(f"Downloading {url}")
        return download_file_with_retry(url, self._unique_path(), retries=self.retries)

    def extract_tar(self, archive_path: str) -> str:
        extract_dir = self._unique_path()
        logger.debug(f"Extracting {archive_path} to {extract_dir}")
        return extract_tar_archive(archive_path, extract_dir)
