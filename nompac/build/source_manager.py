"""
Source Manager Module - Prepares build directories for patched and overlay packages
"""

import shutil
import tarfile
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from nompac.build.pkgbuild_patcher import apply_patches_to_pkgbuild
from nompac.build.version_manager import VersionToken
from nompac.upstream_client import gitlab_project_name

logger = logging.getLogger(__name__)


@dataclass
class BuildJob:
    """One package that has to be built in this run"""
    package: str
    version: VersionToken
    source_dir: Path
    patches: List[str] = field(default_factory=list)
    tarball: Optional[Path] = None


class SourceManager:
    """Downloads, extracts, patches and stages package sources under build_dir/src"""

    def __init__(self, settings, upstream_client):
        self.settings = settings
        self.upstream_client = upstream_client

    @property
    def src_root(self) -> Path:
        return self.settings.build_dir / "src"

    def prepare_patched(self, package: str, version: VersionToken) -> BuildJob:
        """
        Fetch the upstream packaging sources of ``version`` and apply the
        configured patches.

        Returns:
            BuildJob pointing at build_dir/src/<project>-<version>
        """
        project = gitlab_project_name(package)
        tarball = self.settings.build_dir / f"{project}-{version}.tar.gz"

        self.upstream_client.download_tarball(package, str(version), tarball)
        self.extract(tarball, self.src_root)

        source_dir = self.src_root / f"{project}-{version}"
        if not (source_dir / "PKGBUILD").is_file():
            raise FileNotFoundError(f"No PKGBUILD in extracted sources: {source_dir}")

        job = BuildJob(
            package=package,
            version=version,
            source_dir=source_dir,
            patches=list(self.settings.patches.get(package, [])),
            tarball=tarball,
        )
        self.apply_patches(job)
        return job

    def apply_patches(self, job: BuildJob):
        """Copy each patch next to the PKGBUILD, then reference it in the PKGBUILD"""
        patch_dir = self.settings.patch_dir / job.package
        pkgbuild = job.source_dir / "PKGBUILD"

        for patch in job.patches:
            shutil.copy2(patch_dir / patch, job.source_dir / patch)
            apply_patches_to_pkgbuild(pkgbuild, [patch], job.package)

    def prepare_overlay(self, package: str, version: VersionToken) -> BuildJob:
        """Copy the overlay directory of ``package`` to build_dir/src/<package>"""
        overlay = self.settings.overlay_dir / package
        destination = self.src_root / package

        shutil.copytree(overlay, destination, dirs_exist_ok=True)
        logger.info(f"Copied overlay {overlay} -> {destination}")

        return BuildJob(package=package, version=version, source_dir=destination)

    @staticmethod
    def extract(tarball, destination):
        """Extract a .tar.gz archive"""
        destination = Path(destination)
        destination.mkdir(parents=True, exist_ok=True)
        with tarfile.open(tarball, "r:gz") as tar:
            tar.extractall(destination, filter="data")
        logger.debug(f"Extracted {tarball} -> {destination}")
