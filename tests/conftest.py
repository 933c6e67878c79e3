"""
Shared test fixtures.
"""

import textwrap
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from nompac.common.config_loader import Settings
from nompac.common.shell_executor import CommandResult


def make_result(returncode=0, stdout="", stderr="", command="cmd"):
    """Create a CommandResult for mocked shell calls."""
    return CommandResult(command, returncode, stdout, stderr)


@pytest.fixture
def executor():
    """ShellExecutor mock; every call succeeds with empty output by default."""
    mock = MagicMock()
    mock.run_captured.return_value = make_result()
    mock.run_streamed.return_value = make_result()
    mock.run_interactive.return_value = make_result()
    return mock


@pytest.fixture
def pkgbuild_text() -> str:
    return textwrap.dedent("""\
        # Maintainer: Someone <someone@example.org>
        pkgname=foo
        pkgver=1.2.3
        pkgrel=2
        arch=('x86_64')
        source=(
            "https://example.org/foo-${pkgver}.tar.gz"
            "fix-build.patch"
        )
        sha256sums=('SKIP'
                    'SKIP')

        prepare() {
            cd "foo-${pkgver}"
            patch -Np1 -i ../fix-build.patch
        }

        build() {
            cd "foo-${pkgver}"
            make
        }
    """)


@pytest.fixture
def make_settings(tmp_path: Path):
    """Factory for Settings rooted in tmp_path."""

    def _make(**overrides):
        repo_dir = tmp_path / "repo"
        values = dict(
            name="test",
            build_dir=tmp_path / "build",
            patch_dir=tmp_path / "patches",
            overlay_dir=tmp_path / "overlays",
            local_repo=repo_dir / "nomispaz.db.tar.zst",
            local_repo_dir=repo_dir,
            pacconfig=tmp_path / "pacman.conf",
            mirrorlist=tmp_path / "mirrorlist",
            cache_keep=None,
        )
        values.update(overrides)
        return Settings(**values)

    return _make
