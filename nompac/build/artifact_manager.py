"""
Artifact manager - publishes built packages to the local repository
"""

import shutil
import logging
from pathlib import Path
from typing import List

from nompac import config

logger = logging.getLogger(__name__)


class ArtifactManager:
    """Manages package artifacts and the transient build tree"""

    def __init__(self, database_manager, package_glob: str = config.PACKAGE_GLOB):
        self.database_manager = database_manager
        self.package_glob = package_glob

    def find_packages(self, source_dir) -> List[Path]:
        """All package archives below ``source_dir``"""
        return sorted(p for p in Path(source_dir).rglob(self.package_glob) if p.is_file())

    def publish(self, source_dir, repo_dir, db_path) -> List[Path]:
        """
        Copy every built package into the repository directory and register it.

        A package that cannot be copied or registered is logged and skipped;
        the remaining packages are still published.

        Returns:
            Paths of the published packages inside ``repo_dir``
        """
        repo_dir = Path(repo_dir)
        published = []

        packages = self.find_packages(source_dir)
        if not packages:
            logger.warning(f"⚠️ No {self.package_glob} files found in {source_dir}")
            return published

        for pkg_file in packages:
            dest = repo_dir / pkg_file.name
            try:
                shutil.copy2(pkg_file, dest)
            except OSError as e:
                logger.error(f"❌ Failed to copy {pkg_file.name} to {repo_dir}: {e}")
                continue

            result = self.database_manager.add_package(db_path, dest)
            if not result.ok:
                continue

            logger.info(f"📦 Published {pkg_file.name}")
            published.append(dest)

        return published

    def cleanup_directory(self, directory):
        """Clean up a directory"""
        if Path(directory).exists():
            shutil.rmtree(directory, ignore_errors=True)
            logger.info(f"Cleaned directory: {directory}")

    def cleanup(self, job):
        """Remove the build tree (and downloaded tarball) of a finished job"""
        self.cleanup_directory(job.source_dir)
        if job.tarball is not None and Path(job.tarball).exists():
            Path(job.tarball).unlink()
