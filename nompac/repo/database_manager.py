"""
Database manager for local repository database operations
"""

import shlex
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages the repo-add database of the local repository"""

    def __init__(self, shell_executor):
        self.shell_executor = shell_executor

    def add_package(self, db_path, package_path):
        """Register (or update) one package archive in the database"""
        cmd = f"repo-add {shlex.quote(str(db_path))} {shlex.quote(str(package_path))}"
        result = self.shell_executor.run_captured(cmd)

        if result.ok:
            logger.info(f"Registered {Path(package_path).name} in {Path(db_path).name}")
        else:
            logger.error(f"repo-add failed for {Path(package_path).name}: {result.stderr.strip()}")
        return result

    def initialize(self, db_path) -> bool:
        """Create the repository directory and an empty database"""
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        result = self.shell_executor.run_captured(f"repo-add {shlex.quote(str(db_path))}")
        if result.ok and db_path.is_file():
            logger.info(f"✅ Database created: {db_path}")
            return True

        logger.error(f"repo-add could not create {db_path}: {result.stderr.strip()}")
        return False
