"""
Tests for SystemUpdater orchestration with every collaborator mocked.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from nompac.build.source_manager import BuildJob
from nompac.build.version_manager import VersionToken
from nompac.common.config_loader import BootloaderSettings, SnapshotDate
from nompac.common.errors import CommandError, NetworkError, NotInstalledError
from nompac.common.file_patcher import ConfigEdit
from nompac.common.shell_executor import CommandResult
from nompac.orchestrator.system_updater import SystemUpdater


def _result(returncode=0, stdout=""):
    return CommandResult("cmd", returncode, stdout, "")


@pytest.fixture
def updater_factory(make_settings, executor):
    """Build a SystemUpdater whose build collaborators are mocks."""

    def _make(**overrides):
        updater = SystemUpdater(make_settings(**overrides), shell_executor=executor,
                                upstream_client=MagicMock())
        updater.version_manager = MagicMock()
        updater.source_manager = MagicMock()
        updater.local_builder = MagicMock()
        updater.artifact_manager = MagicMock()
        updater.reconciler = MagicMock()
        updater.reconciler.explicit_packages.return_value = []
        updater.local_builder.build.return_value = _result()
        return updater

    return _make


def _job(package="foo", source_dir=Path("/tmp/src/foo")):
    return BuildJob(package, VersionToken("2.0", "1"), source_dir)


class TestPatchedPackages:

    def test_up_to_date_package_is_skipped(self, updater_factory):
        updater = updater_factory(patches={"foo": ["a.patch"]})
        updater.version_manager.version_from_upstream.return_value = VersionToken("2.0", "1")
        updater.version_manager.version_installed.return_value = VersionToken("2.0", "1")

        updater.build_patched_packages()

        updater.source_manager.prepare_patched.assert_not_called()
        updater.local_builder.build.assert_not_called()
        assert updater.tracker.get_summary()["skipped"] == 1

    def test_outdated_package_is_built_and_published(self, updater_factory):
        updater = updater_factory(patches={"foo": ["a.patch"]})
        updater.version_manager.version_from_upstream.return_value = VersionToken("2.0", "1")
        updater.version_manager.version_installed.return_value = VersionToken("1.0", "1")
        job = _job()
        updater.source_manager.prepare_patched.return_value = job
        updater.artifact_manager.publish.return_value = [Path("/repo/foo-2.0-1-x86_64.pkg.tar.zst")]

        updater.build_patched_packages()

        updater.local_builder.build.assert_called_once_with(job.source_dir)
        updater.artifact_manager.publish.assert_called_once_with(
            job.source_dir, updater.settings.local_repo_dir, updater.settings.local_repo
        )
        updater.artifact_manager.cleanup.assert_called_once_with(job)
        assert updater.tracker.get_summary()["patched_success"] == 1

    def test_not_installed_package_is_built(self, updater_factory):
        updater = updater_factory(patches={"foo": []})
        updater.version_manager.version_from_upstream.return_value = VersionToken("2.0", "1")
        updater.version_manager.version_installed.side_effect = NotInstalledError("foo")
        updater.source_manager.prepare_patched.return_value = _job()
        updater.artifact_manager.publish.return_value = [Path("/repo/foo.pkg.tar.zst")]

        updater.build_patched_packages()

        updater.local_builder.build.assert_called_once()

    def test_one_failure_does_not_abort_the_rest(self, updater_factory):
        updater = updater_factory(patches={"bad": [], "good": []})
        updater.version_manager.version_from_upstream.side_effect = [
            NetworkError("404"),
            VersionToken("2.0", "1"),
        ]
        updater.version_manager.version_installed.return_value = VersionToken("1.0", "1")
        updater.source_manager.prepare_patched.return_value = _job("good")
        updater.artifact_manager.publish.return_value = [Path("/repo/good.pkg.tar.zst")]

        updater.build_patched_packages()

        summary = updater.tracker.get_summary()
        assert summary["patched_failed"] == 1
        assert summary["patched_success"] == 1
        updater.source_manager.prepare_patched.assert_called_once_with("good", VersionToken("2.0", "1"))


class TestBuildAndPublish:

    def test_failed_build_is_not_published(self, updater_factory):
        updater = updater_factory()
        updater.local_builder.build.return_value = _result(returncode=4)

        assert not updater.build_and_publish(_job(), is_overlay=True)

        updater.artifact_manager.publish.assert_not_called()
        updater.artifact_manager.cleanup.assert_not_called()
        assert updater.tracker.get_summary()["overlay_failed"] == 1

    def test_nothing_published_counts_as_failure(self, updater_factory):
        updater = updater_factory()
        updater.artifact_manager.publish.return_value = []

        assert not updater.build_and_publish(_job(), is_overlay=False)
        assert updater.tracker.get_summary()["patched_failed"] == 1

    def test_cleanup_failure_keeps_package_built(self, updater_factory):
        updater = updater_factory()
        updater.artifact_manager.publish.return_value = [Path("/repo/foo.pkg.tar.zst")]
        updater.artifact_manager.cleanup.side_effect = PermissionError("read-only")

        assert updater.build_and_publish(_job(), is_overlay=False)

        summary = updater.tracker.get_summary()
        assert summary["patched_success"] == 1
        assert summary["patched_failed"] == 0

    def test_cleanup_can_be_disabled(self, updater_factory):
        updater = updater_factory(cleanup=False)
        updater.artifact_manager.publish.return_value = [Path("/repo/foo.pkg.tar.zst")]

        assert updater.build_and_publish(_job(), is_overlay=False)
        updater.artifact_manager.cleanup.assert_not_called()


class TestOverlayPackages:

    def test_outdated_overlay_is_built(self, updater_factory):
        updater = updater_factory(overlays=["mytool"])
        updater.version_manager.version_from_overlay.return_value = VersionToken("0.4", "1")
        updater.version_manager.version_installed.return_value = VersionToken("0.3", "1")
        updater.source_manager.prepare_overlay.return_value = _job("mytool")
        updater.artifact_manager.publish.return_value = [Path("/repo/mytool.pkg.tar.zst")]

        updater.build_overlay_packages()

        updater.version_manager.version_from_overlay.assert_called_once_with(
            updater.settings.overlay_dir, "mytool"
        )
        assert updater.tracker.get_summary()["overlay_success"] == 1

    def test_missing_overlay_is_recorded(self, updater_factory):
        updater = updater_factory(overlays=["ghost"])
        updater.version_manager.version_from_overlay.side_effect = FileNotFoundError("PKGBUILD")

        updater.build_overlay_packages()

        assert updater.tracker.get_summary()["overlay_failed"] == 1


class TestMaintenance:

    def test_remove_orphans(self, updater_factory, executor):
        executor.run_captured.return_value = _result(stdout="libfoo\nlibbar\n")
        updater_factory().remove_orphans()
        executor.run_streamed.assert_called_once_with("sudo pacman -Rns libfoo libbar")

    def test_no_orphans(self, updater_factory, executor):
        executor.run_captured.return_value = _result(returncode=1)
        updater_factory().remove_orphans()
        executor.run_streamed.assert_not_called()

    def test_trim_cache(self, updater_factory, executor):
        updater_factory(cache_keep=2).trim_cache()
        executor.run_streamed.assert_called_once_with("sudo paccache -rk2")

    def test_trim_cache_disabled(self, updater_factory, executor):
        updater_factory(cache_keep=None).trim_cache()
        executor.run_streamed.assert_not_called()

    def test_bootloader(self, updater_factory, executor):
        updater = updater_factory(bootloader=BootloaderSettings(enabled=True, commands=("a", "b")))
        updater.rebuild_bootloader()
        executor.run_streamed.assert_called_once_with(["a", "b"])

    def test_config_edit_failure_is_logged(self, updater_factory, tmp_path: Path):
        missing = ConfigEdit(tmp_path / "nothere", [("a", "b")])
        present = tmp_path / "present"
        present.write_text("a\n")

        updater = updater_factory(configs=[missing, ConfigEdit(present, [("a", "b")])])
        updater.apply_config_edits()

        assert present.read_text() == "b\n"


class TestRun:

    def test_full_run(self, updater_factory):
        updater = updater_factory(
            packages={"base": ["vim", "git"]},
            snapshot=SnapshotDate("2024", "01", "15"),
        )
        updater.settings.mirrorlist.write_text("Server = https://archive.archlinux.org/repos/old/$repo/os/$arch\n")
        updater.reconciler.explicit_packages.return_value = ["git", "nano"]

        assert updater.run() == 0

        diff = updater.reconciler.apply.call_args[0][0]
        assert diff.to_install == ["vim"]
        assert diff.to_remove == ["nano"]
        assert "2024/01/15" in updater.settings.mirrorlist.read_text()
        assert (updater.settings.build_dir / "src").is_dir()

    def test_run_without_local_repo_skips_builds(self, updater_factory):
        updater = updater_factory(local_repo_dir=None, patches={"foo": []}, overlays=["bar"])

        assert updater.run() == 0

        updater.version_manager.version_from_upstream.assert_not_called()
        updater.version_manager.version_from_overlay.assert_not_called()
        updater.reconciler.apply.assert_called_once()

    def test_failed_package_query_skips_reconciliation(self, updater_factory, executor):
        updater = updater_factory(packages={"base": ["vim"]}, cache_keep=2)
        updater.reconciler.explicit_packages.side_effect = CommandError(_result(returncode=1))

        assert updater.run() == 0

        updater.reconciler.apply.assert_not_called()
        executor.run_streamed.assert_any_call("sudo paccache -rk2")

    def test_matching_packages_still_upgrade(self, updater_factory, caplog):
        updater = updater_factory(local_repo_dir=None, packages={"base": ["vim"]})
        updater.reconciler.explicit_packages.return_value = ["vim"]

        with caplog.at_level("INFO"):
            updater.run()

        assert updater.reconciler.apply.call_args[0][0].empty
        assert "nothing to install or remove" in caplog.text
