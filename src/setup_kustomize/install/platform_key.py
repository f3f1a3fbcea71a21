"""
Host platform detection.

The host is described in the same vocabulary Node.js uses (`linux`, `darwin`,
`win32`; `x64`, `arm64`), which is also what the runner tool cache keys on.
Release asset names use the tool's own vocabulary, exposed by PlatformKey.
"""

import platform
from dataclasses import dataclass
from typing import Optional

from setup_kustomize.constants import (
    ARCH_TOKENS,
    MSG_UNEXPECTED_OS,
    OS_TOKENS,
    SUPPORTED_OS_IDS,
)
from setup_kustomize.exceptions import UnsupportedPlatformError

_SYSTEM_TO_OS_ID = {
    "linux": "linux",
    "darwin": "darwin",
    "windows": "win32",
}

_MACHINE_TO_ARCH = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "ia32",
    "i686": "ia32",
    "x86": "ia32",
    "armv7l": "arm",
    "ppc64le": "ppc64",
    "s390x": "s390x",
}


@dataclass(frozen=True)
class PlatformKey:
    """Operating system and CPU architecture of the host."""

    os_id: str
    arch: str

    @property
    def is_supported_os(self) -> bool:
        return self.os_id in SUPPORTED_OS_IDS

    def require_supported_os(self) -> None:
        """Raise UnsupportedPlatformError unless the OS is one the tool publishes for."""
        if not self.is_supported_os:
            raise UnsupportedPlatformError(
                MSG_UNEXPECTED_OS.format(os_id=self.os_id),
                os_id=self.os_id,
                arch=self.arch,
            )

    @property
    def release_os(self) -> str:
        """Operating system as spelled in release asset names (`win32` -> `windows`)."""
        return OS_TOKENS.get(self.os_id, self.os_id)

    @property
    def release_arch(self) -> str:
        """Architecture as spelled in release asset names; unknown values pass through."""
        return ARCH_TOKENS.get(self.arch, self.arch)

    @property
    def asset_fragment(self) -> str:
        """Substring that identifies this platform's assets, e.g. `linux_amd64`."""
        return f"{self.release_os}_{self.release_arch}"

    def __str__(self) -> str:
        return f"{self.os_id}/{self.arch}"


def detect_platform(
    system: Optional[str] = None, machine: Optional[str] = None
) -> PlatformKey:
    """
    Build the PlatformKey for the running host.

    Unknown systems and machines are lower-cased and kept as-is; whether they
    are usable is decided when a release or download is resolved.
    """
    system_name = (system if system is not None else platform.system()).lower()
    machine_name = (machine if machine is not None else platform.machine()).lower()
    return PlatformKey(
        os_id=_SYSTEM_TO_OS_ID.get(system_name, system_name),
        arch=_MACHINE_TO_ARCH.get(machine_name, machine_name),
    )
