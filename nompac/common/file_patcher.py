"""
File Patcher Module - Line replacement and literal substitutions in config files
"""

import os
import re
import shlex
import tempfile
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Tuple

from nompac.common.errors import CommandError

logger = logging.getLogger(__name__)


class OnMissingMatch(Enum):
    """What replace_line does when the pattern does not match"""
    REPLACE_ONLY = "replace_only"
    APPEND_IF_ABSENT = "append_if_absent"
    # like APPEND_IF_ABSENT, but leave the file alone if the exact line exists
    NOOP_IF_PRESENT = "noop_if_present"


@dataclass(frozen=True)
class ConfigEdit:
    """Literal (orig -> changed) substitutions for one file"""
    path: Path
    changes: List[Tuple[str, str]] = field(default_factory=list)
    sudo: bool = False


def replace_line(content: str, pattern: str, replacement: str,
                 policy: OnMissingMatch = OnMissingMatch.APPEND_IF_ABSENT) -> str:
    """
    Replace every line matching ``pattern`` with ``replacement``.

    The pattern is compiled with re.MULTILINE; the replacement is inserted
    literally (no backreferences), so ``$repo`` survives untouched.
    """
    if policy is OnMissingMatch.NOOP_IF_PRESENT and replacement in content.splitlines():
        return content

    regex = re.compile(pattern, re.MULTILINE)
    if regex.search(content):
        return regex.sub(lambda _match: replacement, content)

    if policy is OnMissingMatch.REPLACE_ONLY:
        logger.warning(f"⚠️ Pattern not found, nothing replaced: {pattern}")
        return content

    if content and not content.endswith("\n"):
        content += "\n"
    return content + replacement + "\n"


def modify_file(filename, pattern: str, replacement: str,
                policy: OnMissingMatch = OnMissingMatch.APPEND_IF_ABSENT) -> bool:
    """Apply replace_line to a file in place. Returns True if the file changed."""
    path = Path(filename)
    content = path.read_text()
    modified = replace_line(content, pattern, replacement, policy)

    if modified == content:
        logger.debug(f"No change needed in {path}")
        return False

    path.write_text(modified)
    logger.info(f"Updated {path}")
    return True


def apply_literal_changes(content: str, changes: List[Tuple[str, str]], label: str = "") -> str:
    for orig, changed in changes:
        if orig in content:
            content = content.replace(orig, changed)
        elif changed in content:
            logger.debug(f"Change already applied in {label}: {changed!r}")
        else:
            logger.warning(f"⚠️ Text not found in {label}: {orig!r}")
    return content


def apply_config_edit(edit: ConfigEdit, shell_executor) -> bool:
    """
    Apply one ConfigEdit. Files flagged with ``sudo`` are read with
    `sudo cat` and written back through a temporary file and `sudo cp`.

    Returns:
        True if the file content changed
    """
    path = Path(edit.path)

    if edit.sudo:
        result = shell_executor.run_captured(f"sudo cat {shlex.quote(str(path))}")
        if not result.ok:
            raise CommandError(result)
        content = result.stdout
    else:
        content = path.read_text()

    modified = apply_literal_changes(content, edit.changes, label=str(path))
    if modified == content:
        logger.info(f"ℹ️ {path} already up to date")
        return False

    if edit.sudo:
        fd, tmp_name = tempfile.mkstemp(prefix="nompac-")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(modified)
            result = shell_executor.run_captured(
                f"sudo cp {shlex.quote(tmp_name)} {shlex.quote(str(path))}"
            )
            if not result.ok:
                raise CommandError(result)
        finally:
            os.unlink(tmp_name)
    else:
        path.write_text(modified)

    logger.info(f"✅ Applied {len(edit.changes)} change(s) to {path}")
    return True
