import io
import tarfile
import time
from pathlib import Path

import platformdirs
import pytest
import requests

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used to group tests."""
    config.addinivalue_line("markers", "unit: fast isolated unit tests")
    config.addinivalue_line("markers", "integration: tests spanning several modules")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point every user directory and runner variable at a fresh temp layout.

    platformdirs lookups return temp paths, runner variables that would redirect
    the tool cache or PATH registration are removed, and the config module's
    default file location is moved into the temp config directory.
    """
    base = tmp_path_factory.mktemp("setup-kustomize")
    cache_dir = base / "cache"
    config_dir = base / "config"
    for path in (cache_dir, config_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CACHE_HOME", str(cache_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    for name in (
        "RUNNER_TOOL_CACHE",
        "RUNNER_TEMP",
        "RUNNER_DEBUG",
        "GITHUB_PATH",
        "GITHUB_ACTIONS",
        "GITHUB_TOKEN",
        "INPUT_KUSTOMIZE-VERSION",
        "SETUP_KUSTOMIZE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )

    import setup_kustomize.config as config_module

    monkeypatch.setattr(config_module, "CONFIG_DIR", str(config_dir))
    monkeypatch.setattr(
        config_module,
        "CONFIG_FILE",
        str(Path(config_dir) / "setup-kustomize.yaml"),
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.head = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _mock_time_sleep(monkeypatch):
    """
    Make time.sleep instant for all tests to prevent delays.
    """
    monkeypatch.setattr(time, "sleep", lambda *_args, **_kwargs: None)


def _asset(name):
    return {
        "name": name,
        "browser_download_url": f"https://github.com/kubernetes-sigs/kustomize/releases/download/{name}",
    }


@pytest.fixture
def sample_release_data():
    """Fixture providing GitHub release data spanning the kustomize naming eras."""
    return [
        {
            "name": "kustomize/v3.5.4",
            "tag_name": "kustomize/v3.5.4",
            "assets": [
                _asset("kustomize_v3.5.4_darwin_amd64.tar.gz"),
                _asset("kustomize_v3.5.4_linux_amd64.tar.gz"),
                _asset("kustomize_v3.5.4_windows_amd64.tar.gz"),
            ],
        },
        {
            "name": "api/v0.3.2",
            "tag_name": "api/v0.3.2",
            "assets": [],
        },
        {
            "name": "kustomize/v3.3.0",
            "tag_name": "kustomize/v3.3.0",
            "assets": [
                _asset("kustomize_v3.3.0_linux_amd64.tar.gz"),
                _asset("kustomize_v3.3.0_linux_arm64.tar.gz"),
            ],
        },
        {
            "name": "kustomize/v3.2.1",
            "tag_name": "kustomize/v3.2.1",
            "assets": [
                _asset("kustomize_kustomize.v3.2.1_darwin_amd64"),
                _asset("kustomize_kustomize.v3.2.1_linux_amd64"),
            ],
        },
        {
            "name": "v2.0.3",
            "tag_name": "v2.0.3",
            "assets": [
                _asset("kustomize_2.0.3_darwin_amd64"),
                _asset("kustomize_2.0.3_linux_amd64"),
                _asset("kustomize_2.0.3_windows_amd64.exe"),
            ],
        },
        {
            "name": "v1.0.11",
            "tag_name": "v1.0.11",
            "assets": [_asset("kustomize_1.0.11_linux_amd64")],
        },
    ]


@pytest.fixture
def sample_releases(sample_release_data):
    """Fixture providing the sample releases parsed into Release objects."""
    from setup_kustomize.install.github_source import create_release_from_github_data

    return [create_release_from_github_data(data) for data in sample_release_data]


@pytest.fixture
def linux_x64():
    from setup_kustomize.install.platform_key import PlatformKey

    return PlatformKey(os_id="linux", arch="x64")


@pytest.fixture
def make_tarball(tmp_path):
    """
    Provide a factory that writes a .tar.gz holding the given {name: bytes} members.
    """

    def _make(members, name="archive.tar.gz", mode=0o755):
        archive_path = tmp_path / name
        with tarfile.open(archive_path, "w:gz") as tar:
            for member_name, data in members.items():
                info = tarfile.TarInfo(member_name)
                info.size = len(data)
                info.mode = mode
                tar.addfile(info, io.BytesIO(data))
        return archive_path

    return _make
