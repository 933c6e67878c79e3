"""
Pacman config module - points pacman.conf at the managed mirror list and local repository
"""

import logging
from pathlib import Path
from typing import List

from nompac import config
from nompac.common.file_patcher import OnMissingMatch, modify_file

logger = logging.getLogger(__name__)


def repo_stanza(repo_name: str, repo_dir) -> List[str]:
    return [
        f"[{repo_name}]",
        f"SigLevel = {config.REPO_SIGLEVEL}",
        f"Server = file://{repo_dir}",
        "",
    ]


def insert_repo_stanza(content: str, repo_name: str, repo_dir) -> str:
    """
    Insert the local repository before the first official repository so its
    packages take precedence. Content that already has the section is returned
    unchanged.
    """
    lines = content.splitlines()
    header = f"[{repo_name}]"
    if any(line.strip() == header for line in lines):
        return content

    stanza = repo_stanza(repo_name, repo_dir)
    for index, line in enumerate(lines):
        if line.rstrip().endswith(tuple(config.REPO_ANCHORS)):
            lines[index:index] = stanza
            break
    else:
        lines.append("")
        lines.extend(stanza[:-1])

    return "\n".join(lines) + "\n"


class PacmanConfigEditor:
    """Rewrites the pacman.conf used by nompac (only with --initiate yes)"""

    def __init__(self, settings):
        self.settings = settings

    def initiate(self):
        """Point Include lines at the managed mirror list and add the local repository"""
        pacconfig = Path(self.settings.pacconfig)

        modify_file(
            pacconfig,
            config.MIRRORLIST_INCLUDE_PATTERN,
            f"Include = {self.settings.mirrorlist}",
            OnMissingMatch.APPEND_IF_ABSENT,
        )

        if not self.settings.local_builds_enabled:
            logger.info("ℹ️ Local repository disabled, not adding it to pacman.conf")
            return

        content = pacconfig.read_text()
        modified = insert_repo_stanza(content, self.settings.repo_name, self.settings.local_repo_dir)
        if modified != content:
            pacconfig.write_text(modified)
            logger.info(f"✅ Added [{self.settings.repo_name}] to {pacconfig}")
        else:
            logger.info(f"ℹ️ [{self.settings.repo_name}] already configured in {pacconfig}")
