"""
Tests for the PKGBUILD patcher: section detection and patch insertion.
"""

import textwrap
from pathlib import Path

import pytest

from nompac.build.pkgbuild_patcher import (
    SectionKind,
    add_patch,
    apply_patches_to_pkgbuild,
    split_sections,
)
from nompac.common.errors import ParseError

PATCH_LINE_A = '    patch -Np1 -i "${srcdir}/a.patch"'
PATCH_LINE_B = '    patch -Np1 -i "${srcdir}/b.patch"'


class TestSplitSections:
    """Tests for split_sections()."""

    def test_kinds(self, pkgbuild_text):
        kinds = [s.kind for s in split_sections(pkgbuild_text)]
        assert kinds == [
            SectionKind.OTHER,
            SectionKind.SOURCE,
            SectionKind.OTHER,
            SectionKind.PREPARE,
            SectionKind.OTHER,
        ]

    def test_sections_cover_every_line(self, pkgbuild_text):
        lines = [line for s in split_sections(pkgbuild_text) for line in s.lines]
        assert lines == pkgbuild_text.splitlines()

    def test_prepare_ends_at_closing_brace_only(self):
        content = textwrap.dedent("""\
            prepare() {
                cd ${srcdir}
                echo "${pkgver}"
            }
        """)
        sections = split_sections(content)
        assert len(sections) == 1
        assert sections[0].kind is SectionKind.PREPARE
        assert sections[0].lines[-1] == "}"

    def test_arch_specific_source_is_other(self):
        content = 'source_x86_64=("bin.tar.gz")\n'
        assert split_sections(content)[0].kind is SectionKind.OTHER

    def test_unterminated_source(self):
        with pytest.raises(ParseError):
            split_sections('source=(\n    "a.tar.gz"\n')

    def test_unterminated_prepare(self):
        with pytest.raises(ParseError):
            split_sections("prepare() {\n    make\n")


class TestAddPatch:
    """Tests for add_patch()."""

    def test_existing_prepare(self, pkgbuild_text):
        result = add_patch(pkgbuild_text, "a.patch", "foo")
        lines = result.splitlines()
        original = pkgbuild_text.splitlines()

        assert len(lines) == len(original) + 2
        assert lines.count('    "a.patch"') == 1
        assert lines.count(PATCH_LINE_A) == 1

        # inserted right before the closing line of each region
        source_entry = lines.index('    "a.patch"')
        assert lines[source_entry + 1] == ")"
        patch_line = lines.index(PATCH_LINE_A)
        assert lines[patch_line + 1] == "}"
        assert lines[patch_line - 1].strip() == "patch -Np1 -i ../fix-build.patch"

    def test_other_lines_unchanged(self, pkgbuild_text):
        result = add_patch(pkgbuild_text, "a.patch", "foo")
        remaining = [l for l in result.splitlines() if l not in ('    "a.patch"', PATCH_LINE_A)]
        assert remaining == pkgbuild_text.splitlines()

    def test_without_prepare_appends_block(self):
        content = 'pkgname=bar\npkgver=1\npkgrel=1\nsource=("x")\n'
        result = add_patch(content, "a.patch", "bar")

        assert result == (
            'pkgname=bar\npkgver=1\npkgrel=1\nsource=("x" "a.patch")\n'
            '\nprepare() {\n'
            '    cd bar-"${pkgver}"\n'
            f'{PATCH_LINE_A}\n'
            '}\n'
        )

    def test_empty_one_line_source(self):
        result = add_patch("source=()\nprepare() {\n}\n", "a.patch", "bar")
        assert result.splitlines()[0] == 'source=("a.patch")'

    def test_one_line_prepare(self):
        content = 'source=("x")\nprepare() { cd src; }\n'
        result = add_patch(content, "a.patch", "bar")
        assert result.splitlines()[1] == 'prepare() { cd src; patch -Np1 -i "${srcdir}/a.patch"; }'

    def test_two_patches_keep_order(self, pkgbuild_text):
        result = add_patch(pkgbuild_text, "a.patch", "foo")
        result = add_patch(result, "b.patch", "foo")
        lines = result.splitlines()

        assert lines.index('    "a.patch"') < lines.index('    "b.patch"')
        assert lines.index(PATCH_LINE_A) < lines.index(PATCH_LINE_B)
        assert lines[lines.index(PATCH_LINE_B) + 1] == "}"

    def test_two_patches_without_prepare_share_one_block(self):
        content = 'pkgver=1\npkgrel=1\nsource=(\n    "x"\n)\n'
        result = add_patch(content, "a.patch", "bar")
        result = add_patch(result, "b.patch", "bar")

        assert result.count("prepare() {") == 1
        lines = result.splitlines()
        assert lines[3:7] == ['    "x"', '    "a.patch"', '    "b.patch"', ")"]
        assert lines[-3:] == [PATCH_LINE_A, PATCH_LINE_B, "}"]

    def test_malformed_recipe_is_rejected(self):
        with pytest.raises(ParseError):
            add_patch("source=(\n    'x'\n", "a.patch", "bar")


class TestApplyPatchesToPkgbuild:

    def test_rewrites_file_in_order(self, tmp_path: Path, pkgbuild_text):
        pkgbuild = tmp_path / "PKGBUILD"
        pkgbuild.write_text(pkgbuild_text)

        apply_patches_to_pkgbuild(pkgbuild, ["a.patch", "b.patch"], "foo")

        lines = pkgbuild.read_text().splitlines()
        assert lines.index(PATCH_LINE_A) < lines.index(PATCH_LINE_B)
        assert lines.count('    "b.patch"') == 1
