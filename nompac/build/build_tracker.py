"""
Build Tracker Module - Tracks build progress and statistics
"""

import time
from typing import Dict


class BuildTracker:
    """Tracks built, skipped and failed packages of one run"""

    def __init__(self):
        self.built_packages = []
        self.skipped_packages = []
        self.failed_packages = []

        self.stats = {
            "patched_success": 0,
            "overlay_success": 0,
            "patched_failed": 0,
            "overlay_failed": 0,
        }

        self.start_time = time.time()

    def record_built_package(self, pkg_name: str, version: str, is_overlay: bool = False):
        """Record a successfully built package"""
        self.built_packages.append(f"{pkg_name} ({version})")
        if is_overlay:
            self.stats["overlay_success"] += 1
        else:
            self.stats["patched_success"] += 1

    def record_failed_package(self, pkg_name: str, reason: str, is_overlay: bool = False):
        """Record a failed package build"""
        self.failed_packages.append(f"{pkg_name}: {reason}")
        if is_overlay:
            self.stats["overlay_failed"] += 1
        else:
            self.stats["patched_failed"] += 1

    def record_skipped_package(self, pkg_name: str, version: str):
        """Record a skipped package (already up-to-date)"""
        self.skipped_packages.append(f"{pkg_name} ({version})")

    def get_elapsed_time(self) -> float:
        return time.time() - self.start_time

    def get_summary(self) -> Dict:
        """Get build summary statistics"""
        return {
            "elapsed": self.get_elapsed_time(),
            **self.stats,
            "total_built": self.stats["patched_success"] + self.stats["overlay_success"],
            "total_failed": self.stats["patched_failed"] + self.stats["overlay_failed"],
            "skipped": len(self.skipped_packages),
        }
