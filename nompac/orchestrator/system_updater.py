"""
System Updater Module - Main orchestrator for one nompac run
"""

import logging
import shlex
from typing import Optional

from nompac.build.artifact_manager import ArtifactManager
from nompac.build.build_tracker import BuildTracker
from nompac.build.local_builder import LocalBuilder
from nompac.build.source_manager import BuildJob, SourceManager
from nompac.build.version_manager import VersionManager, VersionToken, is_up_to_date
from nompac.common.errors import CommandError, NompacError, NotInstalledError
from nompac.common.file_patcher import apply_config_edit
from nompac.common.shell_executor import ShellExecutor
from nompac.repo.database_manager import DatabaseManager
from nompac.repo.pacman_config import PacmanConfigEditor
from nompac.repo.reconciler import Reconciler, diff_packages, pin_snapshot
from nompac.upstream_client import UpstreamClient

logger = logging.getLogger(__name__)


def _banner(title: str):
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


class SystemUpdater:
    """Sequences config → builds → repository → pacman → maintenance"""

    def __init__(self, settings, shell_executor: Optional[ShellExecutor] = None,
                 upstream_client: Optional[UpstreamClient] = None, initiate: bool = False):
        self.settings = settings
        self.initiate = initiate
        self.shell_executor = shell_executor or ShellExecutor()
        self.upstream_client = upstream_client or UpstreamClient(timeout=settings.http_timeout)
        self.tracker = BuildTracker()

        self._init_modules()

    def _init_modules(self):
        self.version_manager = VersionManager(self.upstream_client, self.shell_executor)
        self.source_manager = SourceManager(self.settings, self.upstream_client)
        self.local_builder = LocalBuilder(self.shell_executor)
        self.database_manager = DatabaseManager(self.shell_executor)
        self.artifact_manager = ArtifactManager(self.database_manager, self.settings.package_glob)
        self.reconciler = Reconciler(self.shell_executor, self.settings.pacconfig, self.settings.diffprog)
        self.pacman_config = PacmanConfigEditor(self.settings)

    def print_settings(self):
        s = self.settings
        print("Used settings:")
        print(f"Used config file: {s.config_path}")
        print(f"Local build directory: {s.build_dir}")
        print(f"Local repository: {s.local_repo_dir if s.local_builds_enabled else 'none'}")
        print(f"Patch directory: {s.patch_dir}")
        print(f"Overlay directory: {s.overlay_dir}")
        print(f"pacman.conf location: {s.pacconfig}")
        print(f"Package groups: {', '.join(s.package_groups)}")
        print(f"Snapshot date: {s.snapshot or 'none'}")

    # ------------------------------------------------------------------
    # Version lookup
    # ------------------------------------------------------------------

    def _installed_version(self, package: str) -> Optional[VersionToken]:
        try:
            return self.version_manager.version_installed(package)
        except NotInstalledError as e:
            logger.warning(f"⚠️ Package version of installed package {package} couldn't be determined: {e}")
            return None

    # ------------------------------------------------------------------
    # Local builds
    # ------------------------------------------------------------------

    def build_patched_packages(self):
        _banner("BUILDING PATCHED UPSTREAM PACKAGES")
        for package in self.settings.patches:
            try:
                self.process_patched_package(package)
            except Exception as e:
                logger.error(f"❌ Failed to process patched package {package}: {e}")
                self.tracker.record_failed_package(package, str(e))

    def process_patched_package(self, package: str):
        """Rebuild ``package`` with its patches if upstream moved past the installed version"""
        upstream = self.version_manager.version_from_upstream(package)
        installed = self._installed_version(package)

        if installed is not None and is_up_to_date(installed, upstream):
            logger.info(f"✅ Package {package} already up to date ({upstream})", extra={'success': True})
            self.tracker.record_skipped_package(package, str(upstream))
            return

        logger.info(f"ℹ️ {package}: installed {installed or 'none'} vs upstream {upstream}")
        job = self.source_manager.prepare_patched(package, upstream)
        self.build_and_publish(job, is_overlay=False)

    def build_overlay_packages(self):
        _banner("BUILDING PACKAGES FROM OVERLAY")
        for package in self.settings.overlays:
            try:
                self.process_overlay_package(package)
            except Exception as e:
                logger.error(f"❌ Failed to process overlay package {package}: {e}")
                self.tracker.record_failed_package(package, str(e), is_overlay=True)

    def process_overlay_package(self, package: str):
        """Rebuild an overlay package if its PKGBUILD differs from the installed version"""
        overlay = self.version_manager.version_from_overlay(self.settings.overlay_dir, package)
        installed = self._installed_version(package)

        if installed is not None and is_up_to_date(installed, overlay):
            logger.info(f"✅ Package {package} already up to date ({overlay})", extra={'success': True})
            self.tracker.record_skipped_package(package, str(overlay))
            return

        logger.info(f"ℹ️ {package}: installed {installed or 'none'} vs overlay {overlay}")
        job = self.source_manager.prepare_overlay(package, overlay)
        self.build_and_publish(job, is_overlay=True)

    def build_and_publish(self, job: BuildJob, is_overlay: bool) -> bool:
        """
        Build the job, publish its archives to the local repository and clean up.

        A failed build keeps its tree in place for inspection.

        Returns:
            True if at least one package was published
        """
        result = self.local_builder.build(job.source_dir)
        if not result.ok:
            self.tracker.record_failed_package(
                job.package, f"makepkg exited with code {result.returncode}", is_overlay
            )
            return False

        published = self.artifact_manager.publish(
            job.source_dir, self.settings.local_repo_dir, self.settings.local_repo
        )
        if not published:
            self.tracker.record_failed_package(job.package, "no package published", is_overlay)
            return False

        self.tracker.record_built_package(job.package, str(job.version), is_overlay)

        if self.settings.cleanup:
            try:
                self.artifact_manager.cleanup(job)
            except OSError as e:
                logger.warning(f"⚠️ Failed to clean up {job.source_dir}: {e}")
        return True

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def remove_orphans(self):
        result = self.shell_executor.run_captured("pacman -Qtdq")
        orphans = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        if not orphans:
            logger.info("ℹ️ No orphaned packages found")
            return

        logger.info(f"Removing {len(orphans)} orphaned package(s): {' '.join(orphans)}")
        self.shell_executor.run_streamed(f"sudo pacman -Rns {' '.join(map(shlex.quote, orphans))}")

    def trim_cache(self):
        if self.settings.cache_keep is None:
            return
        self.shell_executor.run_streamed(f"sudo paccache -rk{self.settings.cache_keep}")

    def rebuild_bootloader(self):
        if not self.settings.bootloader.enabled:
            return
        logger.info("Rebuilding bootloader")
        self.shell_executor.run_streamed(list(self.settings.bootloader.commands))

    def run_maintenance(self):
        _banner("SYSTEM MAINTENANCE")
        self.remove_orphans()
        self.trim_cache()
        self.rebuild_bootloader()

    def apply_config_edits(self):
        if not self.settings.configs:
            return
        _banner("APPLYING CONFIG FILE CHANGES")
        for edit in self.settings.configs:
            try:
                apply_config_edit(edit, self.shell_executor)
            except (NompacError, OSError) as e:
                logger.error(f"❌ Failed to apply changes to {edit.path}: {e}")

    # ------------------------------------------------------------------
    # Main entry
    # ------------------------------------------------------------------

    def print_summary(self):
        summary = self.tracker.get_summary()

        _banner("📊 BUILD SUMMARY")
        print(f"Duration: {summary['elapsed']:.1f}s")
        print(f"Patched packages: {summary['patched_success']} (failed: {summary['patched_failed']})")
        print(f"Overlay packages: {summary['overlay_success']} (failed: {summary['overlay_failed']})")
        print(f"Skipped:          {summary['skipped']}")

        if self.tracker.built_packages:
            print("\n📦 Built packages:")
            for pkg in self.tracker.built_packages:
                print(f"  - {pkg}")

        if self.tracker.failed_packages:
            print("\n❌ Failed packages:")
            for pkg in self.tracker.failed_packages:
                print(f"  - {pkg}")

    def run(self) -> int:
        """
        Execute one full run.

        EXECUTION PHASES:
        1. Optional pacman.conf initiation
        2. Package diff against explicitly installed packages
        3. Patched and overlay builds (only with an enabled local repository)
        4. Snapshot pinning, pacman reconciliation
        5. Maintenance and config file changes

        RETURNS: Exit code (always 0, failures are logged)
        """
        _banner("🚀 NOMPAC SYSTEM UPDATE")
        self.print_settings()

        if self.initiate:
            try:
                self.pacman_config.initiate()
            except OSError as e:
                logger.error(f"❌ Failed to initiate {self.settings.pacconfig}: {e}")

        try:
            installed = self.reconciler.explicit_packages()
        except CommandError as e:
            logger.error(f"❌ Could not list explicitly installed packages, skipping reconciliation: {e}")
            diff = None
        else:
            diff = diff_packages(self.settings.desired_packages(), installed)
            if diff.empty:
                logger.info("ℹ️ Installed packages match the configuration, nothing to install or remove")

        if self.settings.local_builds_enabled:
            (self.settings.build_dir / "src").mkdir(parents=True, exist_ok=True)
            self.build_patched_packages()
            self.build_overlay_packages()

        _banner("SYSTEM UPDATE")
        if self.settings.snapshot is not None:
            try:
                pin_snapshot(self.settings.mirrorlist, self.settings.snapshot, self.settings.mirror_policy)
            except OSError as e:
                logger.error(f"❌ Failed to pin snapshot in {self.settings.mirrorlist}: {e}")

        if diff is not None:
            self.reconciler.apply(diff)

        self.run_maintenance()
        self.apply_config_edits()
        self.print_summary()

        return 0
