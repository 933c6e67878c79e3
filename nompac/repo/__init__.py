"""
Repository and pacman management modules package
"""

from .database_manager import DatabaseManager
from .pacman_config import PacmanConfigEditor
from .reconciler import PackageDiff, Reconciler, diff_packages, pin_snapshot

__all__ = [
    'DatabaseManager',
    'PacmanConfigEditor',
    'PackageDiff',
    'Reconciler',
    'diff_packages',
    'pin_snapshot',
]
