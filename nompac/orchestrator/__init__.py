"""
Orchestrator modules package
"""

from .system_updater import SystemUpdater

__all__ = ['SystemUpdater']
