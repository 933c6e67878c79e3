"""
PKGBUILD Patcher Module - Adds patch files to the source array and prepare() of a PKGBUILD

The PKGBUILD is split into tagged sections (SOURCE, PREPARE, OTHER). Only the
plain ``source=(...)`` array and the ``prepare()`` function are touched; every
other line is written back unchanged.
"""

import re
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from nompac import config
from nompac.common.errors import ParseError

logger = logging.getLogger(__name__)

SOURCE_START = re.compile(r"^\s*source=\(")
PREPARE_START = re.compile(r"^\s*prepare\s*\(\s*\)")


class SectionKind(Enum):
    SOURCE = "source"
    PREPARE = "prepare"
    OTHER = "other"


@dataclass
class RecipeSection:
    kind: SectionKind
    lines: List[str]


def _section_start(line: str) -> Optional[SectionKind]:
    if SOURCE_START.match(line):
        return SectionKind.SOURCE
    if PREPARE_START.match(line):
        return SectionKind.PREPARE
    return None


def _closes(kind: SectionKind, line: str, is_first: bool) -> bool:
    stripped = line.strip()
    if kind is SectionKind.SOURCE:
        return stripped.endswith(")")
    if is_first:
        # prepare() { ...; }
        return stripped.endswith("}")
    return stripped == "}"


def split_sections(content: str) -> List[RecipeSection]:
    """
    Split PKGBUILD text into tagged sections.

    A SOURCE section runs from ``source=(`` to the first line ending in ``)``.
    A PREPARE section runs from the ``prepare()`` header to the first line that
    is only ``}``.

    Raises:
        ParseError: if a SOURCE or PREPARE section is never closed
    """
    lines = content.splitlines()
    sections: List[RecipeSection] = []
    other: List[str] = []
    i = 0

    while i < len(lines):
        kind = _section_start(lines[i])
        if kind is None:
            other.append(lines[i])
            i += 1
            continue

        if other:
            sections.append(RecipeSection(SectionKind.OTHER, other))
            other = []

        end = i
        while not _closes(kind, lines[end], is_first=(end == i)):
            end += 1
            if end == len(lines):
                raise ParseError(f"Unterminated {kind.value} section starting at line {i + 1}")

        sections.append(RecipeSection(kind, lines[i:end + 1]))
        i = end + 1

    if other:
        sections.append(RecipeSection(SectionKind.OTHER, other))

    return sections


def patch_command(patch: str) -> str:
    return config.PATCH_COMMAND.format(patch=patch)


def _add_to_source(section: RecipeSection, patch: str):
    entry = f'"{patch}"'
    if len(section.lines) == 1:
        line = section.lines[0]
        close = line.rfind(")")
        prefix = line[:close].rstrip()
        separator = "" if prefix.endswith("(") else " "
        section.lines[0] = f"{prefix}{separator}{entry}{line[close:]}"
    else:
        section.lines.insert(len(section.lines) - 1, f"    {entry}")


def _add_to_prepare(section: RecipeSection, patch: str):
    if len(section.lines) == 1:
        line = section.lines[0]
        close = line.rfind("}")
        prefix = line[:close].rstrip()
        if not prefix.endswith((";", "{")):
            prefix += ";"
        section.lines[0] = f"{prefix} {patch_command(patch).strip()}; {line[close:]}"
    else:
        section.lines.insert(len(section.lines) - 1, patch_command(patch))


def synthetic_prepare(package_name: str, patch: str) -> str:
    return (
        "\nprepare() {\n"
        f'    cd {package_name}-"${{pkgver}}"\n'
        f"{patch_command(patch)}\n"
        "}\n"
    )


def add_patch(content: str, patch: str, package_name: str) -> str:
    """
    Return PKGBUILD text that lists ``patch`` in its sources and applies it in
    prepare(). A prepare() function is appended when the PKGBUILD has none.
    """
    sections = split_sections(content)

    if not any(s.kind is SectionKind.SOURCE for s in sections):
        logger.warning(f"⚠️ No source array found in PKGBUILD of {package_name}, {patch} not listed")

    has_prepare = False
    for section in sections:
        if section.kind is SectionKind.SOURCE:
            _add_to_source(section, patch)
        elif section.kind is SectionKind.PREPARE:
            _add_to_prepare(section, patch)
            has_prepare = True

    modified = "".join(f"{line}\n" for s in sections for line in s.lines)

    if not has_prepare:
        modified += synthetic_prepare(package_name, patch)

    return modified


def apply_patches_to_pkgbuild(pkgbuild_path, patches: List[str], package_name: str):
    """Rewrite the PKGBUILD once per patch, in order"""
    pkgbuild_path = Path(pkgbuild_path)
    for patch in patches:
        content = pkgbuild_path.read_text()
        pkgbuild_path.write_text(add_patch(content, patch, package_name))
        logger.info(f"Added {patch} to {pkgbuild_path}")
