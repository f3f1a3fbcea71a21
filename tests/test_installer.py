"""
Tests for the acquisition pipeline: cache lookups, version resolution,
download, extraction and path registration.
"""

import os
from unittest.mock import MagicMock

import pytest

from setup_kustomize.exceptions import (
    ErrorKind,
    ExtractionError,
    TransportError,
    UnresolvedVersionError,
    UnsupportedPlatformError,
)
from setup_kustomize.install.cache import ToolCache
from setup_kustomize.install.files import extract_tar_archive
from setup_kustomize.install.installer import KustomizeInstaller
from setup_kustomize.install.interfaces import Downloader, ReleaseSource, ToolStore
from setup_kustomize.install.platform_key import PlatformKey

ARCHIVE_URL = (
    "https://github.com/kubernetes-sigs/kustomize/releases/download/"
    "kustomize/v3.5.4/kustomize_v3.5.4_linux_amd64.tar.gz"
)


class FakeDownloader(Downloader):
    """Serves canned payloads keyed by URL and extracts with the real extractor."""

    def __init__(self, work_dir, payloads):
        self.work_dir = work_dir
        self.payloads = payloads
        self.downloaded = []

    def download_tool(self, url):
        self.downloaded.append(url)
        payload = self.payloads.get(url)
        if isinstance(payload, Exception):
            raise payload
        if payload is None:
            raise TransportError(f"HTTP error downloading {url}", url=url, status_code=404)
        path = os.path.join(self.work_dir, f"download-{len(self.downloaded)}")
        with open(path, "wb") as f:
            f.write(payload)
        return path

    def extract_tar(self, archive_path):
        return extract_tar_archive(archive_path, f"{archive_path}-extracted")


@pytest.fixture
def mock_cache(mocker):
    cache = mocker.MagicMock(spec=ToolStore)
    cache.find.return_value = None
    return cache


@pytest.fixture
def mock_source(mocker, sample_releases):
    source = mocker.MagicMock(spec=ReleaseSource)
    source.get_releases.return_value = sample_releases
    return source


@pytest.fixture
def tool_cache(tmp_path):
    return ToolCache(str(tmp_path / "tool-cache"))


@pytest.fixture
def archive_bytes(make_tarball):
    archive = make_tarball({"kustomize": b"kustomize-3.5.4"}, name="k354.tar.gz")
    return archive.read_bytes()


@pytest.fixture
def downloader(tmp_path, archive_bytes):
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    return FakeDownloader(str(work_dir), {ARCHIVE_URL: archive_bytes})


def _installer(platform_key, cache, source, downloader, register_path=None):
    return KustomizeInstaller(
        platform_key=platform_key,
        cache=cache,
        source=source,
        downloader=downloader,
        register_path=register_path or MagicMock(),
    )


@pytest.mark.unit
class TestResolveVersion:
    def test_exact_version_skips_listing(self, linux_x64, mock_cache, mock_source):
        installer = _installer(linux_x64, mock_cache, mock_source, MagicMock())

        assert installer.resolve_version("v3.5.4") == "3.5.4"
        mock_source.get_releases.assert_not_called()

    def test_range_uses_listing(self, linux_x64, mock_cache, mock_source):
        installer = _installer(linux_x64, mock_cache, mock_source, MagicMock())

        assert installer.resolve_version("^3.3.0") == "3.5.4"
        mock_source.get_releases.assert_called_once()

    def test_range_without_match(self, linux_x64, mock_cache, mock_source):
        installer = _installer(linux_x64, mock_cache, mock_source, MagicMock())

        with pytest.raises(UnresolvedVersionError) as exc_info:
            installer.resolve_version("^9.0.0")

        assert str(exc_info.value) == (
            "Unable to find Kustomize version '^9.0.0' for platform linux "
            "and architecture x64."
        )
        assert exc_info.value.kind is ErrorKind.UNRESOLVED_VERSION

    def test_unparsable_specifier_reports_not_found(
        self, linux_x64, mock_cache, mock_source
    ):
        installer = _installer(linux_x64, mock_cache, mock_source, MagicMock())

        with pytest.raises(UnresolvedVersionError) as exc_info:
            installer.resolve_version("latest")

        assert exc_info.value.message == (
            "Unable to find Kustomize version 'latest' for platform linux "
            "and architecture x64."
        )
        assert exc_info.value.version_spec == "latest"
        assert exc_info.value.details
        mock_source.get_releases.assert_not_called()

    def test_unparsable_specifier_fails_install(self, linux_x64, tool_cache, mock_source):
        register = MagicMock()
        installer = _installer(linux_x64, tool_cache, mock_source, MagicMock(), register)

        with pytest.raises(UnresolvedVersionError, match="Unable to find Kustomize version 'latest'"):
            installer.install("latest")
        register.assert_not_called()

    def test_unsupported_os_rejected_before_listing(self, mock_cache, mock_source):
        installer = _installer(
            PlatformKey("freebsd", "x64"), mock_cache, mock_source, MagicMock()
        )

        with pytest.raises(UnsupportedPlatformError, match="Unexpected OS 'freebsd'"):
            installer.resolve_version("3.x")
        mock_source.get_releases.assert_not_called()


@pytest.mark.unit
class TestGetKustomize:
    def test_first_cache_hit_short_circuits(
        self, linux_x64, mock_cache, mock_source, downloader
    ):
        mock_cache.find.return_value = "/cache/kustomize/3.5.4/x64"
        installer = _installer(linux_x64, mock_cache, mock_source, downloader)

        assert installer.get_kustomize("3.5.4") == "/cache/kustomize/3.5.4/x64"
        mock_cache.find.assert_called_once_with("kustomize", "3.5.4", "x64")
        mock_source.get_releases.assert_not_called()
        assert downloader.downloaded == []

    def test_second_cache_hit_after_resolution(
        self, linux_x64, mock_cache, mock_source, downloader
    ):
        mock_cache.find.side_effect = [None, "/cache/kustomize/3.5.4/x64"]
        installer = _installer(linux_x64, mock_cache, mock_source, downloader)

        assert installer.get_kustomize("^3.3.0") == "/cache/kustomize/3.5.4/x64"
        assert mock_cache.find.call_args_list[1].args == ("kustomize", "3.5.4", "x64")
        assert downloader.downloaded == []

    def test_exact_version_miss_looks_up_cache_once(
        self, linux_x64, mock_cache, mock_source, downloader
    ):
        mock_cache.cache_file.return_value = "/cache/kustomize/3.5.4/x64"
        installer = _installer(linux_x64, mock_cache, mock_source, downloader)

        installer.get_kustomize("3.5.4")

        mock_cache.find.assert_called_once()
        mock_source.get_releases.assert_not_called()
        assert downloader.downloaded == [ARCHIVE_URL]

    def test_archived_binary_is_extracted_and_cached(
        self, linux_x64, tool_cache, mock_source, downloader
    ):
        installer = _installer(linux_x64, tool_cache, mock_source, downloader)

        tool_path = installer.get_kustomize("^3.3.0")

        assert tool_path == os.path.join(tool_cache.cache_dir, "kustomize", "3.5.4", "x64")
        with open(os.path.join(tool_path, "kustomize"), "rb") as f:
            assert f.read() == b"kustomize-3.5.4"
        assert os.path.exists(f"{tool_path}.complete")

    def test_raw_binary_is_cached_without_extraction(
        self, linux_x64, tool_cache, mock_source, tmp_path
    ):
        url = (
            "https://github.com/kubernetes-sigs/kustomize/releases/download/"
            "v2.0.3/kustomize_2.0.3_linux_amd64"
        )
        raw = FakeDownloader(str(tmp_path), {url: b"kustomize-2.0.3"})
        raw.extract_tar = MagicMock()
        installer = _installer(linux_x64, tool_cache, mock_source, raw)

        tool_path = installer.get_kustomize("2.0.3")

        raw.extract_tar.assert_not_called()
        with open(os.path.join(tool_path, "kustomize"), "rb") as f:
            assert f.read() == b"kustomize-2.0.3"

    def test_windows_binary_keeps_exe_name(
        self, tool_cache, mock_source, tmp_path, make_tarball
    ):
        url = (
            "https://github.com/kubernetes-sigs/kustomize/releases/download/"
            "kustomize/v3.5.4/kustomize_v3.5.4_windows_amd64.tar.gz"
        )
        archive = make_tarball({"kustomize.exe": b"MZ"}, name="win.tar.gz")
        windows = PlatformKey("win32", "x64")
        fake = FakeDownloader(str(tmp_path), {url: archive.read_bytes()})
        installer = _installer(windows, tool_cache, mock_source, fake)

        tool_path = installer.get_kustomize("^3.5.0")

        assert os.path.isfile(os.path.join(tool_path, "kustomize.exe"))
        assert fake.downloaded == [url]

    def test_windows_before_first_windows_release(
        self, tool_cache, mock_source, downloader
    ):
        installer = _installer(
            PlatformKey("win32", "x64"), tool_cache, mock_source, downloader
        )

        with pytest.raises(UnsupportedPlatformError):
            installer.get_kustomize("2.0.3")
        assert downloader.downloaded == []

    def test_second_call_is_served_from_cache(
        self, linux_x64, tool_cache, mock_source, downloader
    ):
        installer = _installer(linux_x64, tool_cache, mock_source, downloader)

        first = installer.get_kustomize("3.5.4")
        second = installer.get_kustomize("3.5.4")
        third = installer.get_kustomize("~3.5.0")

        assert first == second == third
        assert downloader.downloaded == [ARCHIVE_URL]
        mock_source.get_releases.assert_not_called()

    def test_download_failure_names_version(
        self, linux_x64, tool_cache, mock_source, tmp_path
    ):
        failing = FakeDownloader(str(tmp_path), {})
        installer = _installer(linux_x64, tool_cache, mock_source, failing)

        with pytest.raises(TransportError) as exc_info:
            installer.get_kustomize("3.5.0")

        assert exc_info.value.message == "Failed to download version 3.5.0"
        assert str(exc_info.value).startswith("Failed to download version 3.5.0: ")
        assert exc_info.value.version == "3.5.0"
        assert exc_info.value.status_code == 404
        assert tool_cache.find_all_versions("kustomize", "x64") == []

    def test_archive_without_binary(
        self, linux_x64, tool_cache, mock_source, tmp_path, make_tarball
    ):
        archive = make_tarball({"README.md": b"docs"}, name="empty.tar.gz")
        broken = FakeDownloader(str(tmp_path), {ARCHIVE_URL: archive.read_bytes()})
        installer = _installer(linux_x64, tool_cache, mock_source, broken)

        with pytest.raises(ExtractionError, match="does not contain kustomize"):
            installer.get_kustomize("3.5.4")
        assert tool_cache.find("kustomize", "3.5.4", "x64") is None

    def test_unsupported_arch_for_download(self, tool_cache, mock_source, downloader):
        arm = PlatformKey("linux", "arm64")
        installer = _installer(arm, tool_cache, mock_source, downloader)

        # The listing has a linux_arm64 asset for 3.3.0 but nothing is downloadable
        with pytest.raises(UnsupportedPlatformError, match="Unexpected Arch 'arm64'"):
            installer.get_kustomize("^3.3.0")
        assert downloader.downloaded == []


@pytest.mark.unit
def test_install_registers_path(linux_x64, mock_cache, mock_source, downloader):
    mock_cache.find.return_value = "/cache/kustomize/3.5.4/x64"
    register = MagicMock()
    installer = _installer(linux_x64, mock_cache, mock_source, downloader, register)

    assert installer.install("3.5.4") == "/cache/kustomize/3.5.4/x64"
    register.assert_called_once_with("/cache/kustomize/3.5.4/x64")


@pytest.mark.unit
def test_failed_install_does_not_register(linux_x64, mock_cache, mock_source):
    register = MagicMock()
    installer = _installer(linux_x64, mock_cache, mock_source, MagicMock(), register)

    with pytest.raises(UnresolvedVersionError):
        installer.install("^9.0.0")
    register.assert_not_called()


@pytest.mark.integration
def test_from_config_uses_configured_locations(tmp_path):
    config = {
        "TOOL_CACHE_DIR": str(tmp_path / "tools"),
        "TEMP_DIR": str(tmp_path / "temp"),
        "RELEASES_URL": "https://api.example.com/releases",
        "DOWNLOAD_RETRIES": 5,
    }

    installer = KustomizeInstaller.from_config(config, PlatformKey("linux", "x64"))

    assert installer.cache.cache_dir == str(tmp_path / "tools")
    assert installer.source.releases_url == "https://api.example.com/releases"
    assert installer.downloader.temp_dir == str(tmp_path / "temp")
    assert installer.downloader.retries == 5
