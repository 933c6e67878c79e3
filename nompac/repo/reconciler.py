"""
Reconciler Module - Brings the explicitly installed package set in line with the config
"""

import logging
import shlex
from dataclasses import dataclass, field
from typing import Iterable, List

from nompac import config
from nompac.common.errors import CommandError
from nompac.common.file_patcher import OnMissingMatch, modify_file

logger = logging.getLogger(__name__)


def snapshot_server_line(snapshot) -> str:
    return config.ARCHIVE_MIRROR_LINE.format(year=snapshot.year, month=snapshot.month, day=snapshot.day)


def pin_snapshot(mirrorlist, snapshot, policy: OnMissingMatch = OnMissingMatch.NOOP_IF_PRESENT) -> bool:
    """
    Point the archive.archlinux.org server line of the mirror list at ``snapshot``.

    Returns:
        True if the mirror list was rewritten
    """
    changed = modify_file(mirrorlist, config.ARCHIVE_MIRROR_PATTERN, snapshot_server_line(snapshot), policy)
    if changed:
        logger.info(f"Pinned {mirrorlist} to snapshot {snapshot}")
    else:
        logger.info(f"ℹ️ {mirrorlist} already pinned to snapshot {snapshot}")
    return changed


@dataclass(frozen=True)
class PackageDiff:
    to_install: List[str] = field(default_factory=list)
    to_remove: List[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.to_install and not self.to_remove


def diff_packages(desired: Iterable[str], installed: Iterable[str]) -> PackageDiff:
    """
    Pure set difference between desired and explicitly installed packages.

    ``to_install`` follows the (sorted) desired order, ``to_remove`` keeps the
    order of the installed list as returned by pacman.
    """
    desired = sorted(desired)
    installed = list(installed)
    desired_set = set(desired)
    installed_set = set(installed)

    to_remove = [pkg for pkg in installed if pkg not in desired_set]
    to_install = [pkg for pkg in desired if pkg not in installed_set]

    return PackageDiff(to_install=to_install, to_remove=to_remove)


class Reconciler:
    """Issues the pacman commands for a PackageDiff"""

    def __init__(self, shell_executor, pacconfig, diffprog: str):
        self.shell_executor = shell_executor
        self.pacconfig = str(pacconfig)
        self.diffprog = diffprog

    def explicit_packages(self) -> List[str]:
        """
        Names of all explicitly installed packages.

        Raises:
            CommandError: if pacman cannot be queried
        """
        result = self.shell_executor.run_captured("pacman -Qeq")
        if not result.ok:
            raise CommandError(result)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def apply(self, diff: PackageDiff):
        """Remove, install/upgrade, then review .pacnew files"""
        config_arg = f"--config {shlex.quote(self.pacconfig)}"

        if diff.to_remove:
            print("Removing the following packages since they don't exist in the config file:")
            print(" ".join(diff.to_remove))
            self.shell_executor.run_streamed(
                f"sudo pacman -Rsn {' '.join(map(shlex.quote, diff.to_remove))}"
            )

        if diff.to_install:
            print("Installing the following packages:")
            print(" ".join(diff.to_install))
            cmd = f"sudo pacman -Syu {' '.join(map(shlex.quote, diff.to_install))} {config_arg}"
        else:
            print("Starting system update.")
            cmd = f"sudo pacman -Syu {config_arg}"
        self.shell_executor.run_streamed(cmd)

        self.review_pacnew()

    def review_pacnew(self):
        self.shell_executor.run_interactive(f"sudo DIFFPROG={shlex.quote(self.diffprog)} pacdiff")
