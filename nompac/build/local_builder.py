"""
Local Builder Module - Runs makepkg for a prepared source directory
"""

import logging
from pathlib import Path

from nompac import config
from nompac.common.shell_executor import CommandResult, ShellExecutor

logger = logging.getLogger(__name__)


class LocalBuilder:
    """Handles local package building operations"""

    def __init__(self, shell_executor: ShellExecutor):
        self.shell_executor = shell_executor

    def build(self, source_dir) -> CommandResult:
        """
        Refresh checksums and build the package in ``source_dir``.

        Output is streamed to the console while makepkg runs. makepkg skips
        PGP checks and always rebuilds (-C cleans, -r removes makedepends).
        """
        source_dir = Path(source_dir)
        logger.info(f"📦 Building package in {source_dir}")

        result = self.shell_executor.run_streamed(
            [config.UPDPKGSUMS_COMMAND, config.MAKEPKG_COMMAND],
            cwd=source_dir,
        )

        if result.ok:
            logger.info(f"✅ Build finished in {source_dir}", extra={'success': True})
        else:
            logger.error(f"❌ Build failed with exit code {result.returncode} in {source_dir}")

        return result
