"""
Version Manager Module - Resolves package versions from upstream, overlays and the local system
"""

import logging
import shlex
from pathlib import Path
from typing import NamedTuple

from nompac.common.errors import NotInstalledError, ParseError

logger = logging.getLogger(__name__)


class VersionToken(NamedTuple):
    """pkgver/pkgrel pair, compared only for equality as "pkgver-pkgrel"."""
    pkgver: str
    pkgrel: str

    def __str__(self):
        return f"{self.pkgver}-{self.pkgrel}"


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_pkgbuild_version(content: str) -> VersionToken:
    """
    Extract the version from PKGBUILD text.

    Only literal ``pkgver=``/``pkgrel=`` assignments at the start of a line are
    recognized; the first occurrence of each wins.

    Raises:
        ParseError: if either assignment is missing
    """
    pkgver = None
    pkgrel = None

    for line in content.splitlines():
        if pkgver is None and line.startswith("pkgver="):
            pkgver = _strip_quotes(line.split("=", 1)[1].strip())
        elif pkgrel is None and line.startswith("pkgrel="):
            pkgrel = _strip_quotes(line.split("=", 1)[1].strip())

    if not pkgver or not pkgrel:
        raise ParseError("Could not extract pkgver and pkgrel from PKGBUILD")

    return VersionToken(pkgver, pkgrel)


def is_up_to_date(installed, candidate) -> bool:
    return str(installed).strip() == str(candidate).strip()


class VersionManager:
    """Handles package version lookup for upstream, overlay and installed packages"""

    def __init__(self, upstream_client, shell_executor):
        self.upstream_client = upstream_client
        self.shell_executor = shell_executor

    def version_from_upstream(self, package_name: str) -> VersionToken:
        """Version of the official package (NetworkError / ParseError on failure)"""
        content = self.upstream_client.get_pkgbuild(package_name)
        try:
            return parse_pkgbuild_version(content)
        except ParseError as e:
            raise ParseError(f"Upstream PKGBUILD of {package_name}: {e}") from None

    def version_from_overlay(self, overlay_dir, package_name: str) -> VersionToken:
        """Version of a locally maintained package. A missing PKGBUILD raises OSError."""
        pkgbuild = Path(overlay_dir) / package_name / "PKGBUILD"
        content = pkgbuild.read_text()
        try:
            return parse_pkgbuild_version(content)
        except ParseError as e:
            raise ParseError(f"{pkgbuild}: {e}") from None

    def version_installed(self, package_name: str) -> VersionToken:
        """Version recorded in the pacman database"""
        result = self.shell_executor.run_captured(f"pacman -Q {shlex.quote(package_name)}")
        fields = result.stdout.split()

        if not result.ok or len(fields) < 2:
            raise NotInstalledError(f"No version found for package {package_name}")

        version = fields[1]
        if "-" not in version:
            raise ParseError(f"Unexpected version '{version}' for installed package {package_name}")

        pkgver, pkgrel = version.rsplit("-", 1)
        logger.debug(f"Installed version of {package_name}: {version}")
        return VersionToken(pkgver, pkgrel)
