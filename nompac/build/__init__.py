"""
Build module for package building operations
"""

from .artifact_manager import ArtifactManager
from .build_tracker import BuildTracker
from .local_builder import LocalBuilder
from .pkgbuild_patcher import add_patch, apply_patches_to_pkgbuild, split_sections
from .source_manager import BuildJob, SourceManager
from .version_manager import VersionManager, VersionToken, parse_pkgbuild_version

__all__ = [
    'ArtifactManager',
    'BuildTracker',
    'LocalBuilder',
    'add_patch',
    'apply_patches_to_pkgbuild',
    'split_sections',
    'BuildJob',
    'SourceManager',
    'VersionManager',
    'VersionToken',
    'parse_pkgbuild_version',
]
