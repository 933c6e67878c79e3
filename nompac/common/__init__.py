"""
Common modules shared by the build, repository and orchestrator packages
"""

from .config_loader import ConfigLoader, Settings, SnapshotDate, resolve_home
from .errors import (
    CommandError,
    ConfigError,
    NetworkError,
    NompacError,
    NotInstalledError,
    ParseError,
)
from .file_patcher import ConfigEdit, OnMissingMatch, modify_file, replace_line
from .logging_utils import setup_logging
from .shell_executor import CommandResult, LineChannel, ShellExecutor

__all__ = [
    'ConfigLoader',
    'Settings',
    'SnapshotDate',
    'resolve_home',
    'CommandError',
    'ConfigError',
    'NetworkError',
    'NompacError',
    'NotInstalledError',
    'ParseError',
    'ConfigEdit',
    'OnMissingMatch',
    'modify_file',
    'replace_line',
    'setup_logging',
    'CommandResult',
    'LineChannel',
    'ShellExecutor',
]
