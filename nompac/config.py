"""
Default configuration for nompac
=================================================================================
PURPOSE: Centralized defaults for the system updater.
         These values are used whenever the user configuration file does not
         override them.

USAGE: Imported by the config loader and the build/repo modules.

ORGANIZATION:
1. Locations
2. Upstream packaging URLs
3. Build settings
4. Repository settings
5. Pacman / maintenance settings
"""

# ==============================================================================
# 1. LOCATIONS
# ==============================================================================

# DEFAULT_CONFIG_PATH: Configuration file read when --config is not given
DEFAULT_CONFIG_PATH = "~/.config/nompac/configs/config.json"

# CONFIG_REQUIRED_KEYS: Keys that must be present in the configuration file
CONFIG_REQUIRED_KEYS = [
    "name",
    "build_dir",
    "patch_dir",
    "overlay_dir",
    "local_repo",
    "packages",
    "pacconfig",
    "mirrorlist",
]

# ==============================================================================
# 2. UPSTREAM PACKAGING URLS
# ==============================================================================
# Arch Linux keeps every official PKGBUILD in its own GitLab project.

UPSTREAM_PKGBUILD_URL = (
    "https://gitlab.archlinux.org/archlinux/packaging/packages/{project}/-/raw/main/PKGBUILD"
)
UPSTREAM_TARBALL_URL = (
    "https://gitlab.archlinux.org/archlinux/packaging/packages/{project}"
    "/-/archive/{version}/{project}-{version}.tar.gz"
)

# HTTP_TIMEOUT: Seconds before an upstream request is abandoned
HTTP_TIMEOUT = 30

# ==============================================================================
# 3. BUILD SETTINGS
# ==============================================================================

# Checksums are refreshed before every build because patches change the sources
UPDPKGSUMS_COMMAND = "updpkgsums"
MAKEPKG_COMMAND = "makepkg -cCsr --skippgpcheck"

# PACKAGE_GLOB: Archives produced by makepkg that get published
PACKAGE_GLOB = "*.pkg.tar.zst"

# CLEANUP_AFTER_PUBLISH: Remove the build tree after a successful publish
CLEANUP_AFTER_PUBLISH = True

# PATCH_COMMAND: Line inserted into prepare() for every patch
PATCH_COMMAND = '    patch -Np1 -i "${{srcdir}}/{patch}"'

# ==============================================================================
# 4. REPOSITORY SETTINGS
# ==============================================================================

# LOCAL_REPO_SUFFIX: Only repo-add databases with this suffix are accepted
LOCAL_REPO_SUFFIX = ".db.tar.zst"

# REPO_ANCHORS: The local repository stanza is inserted before the first of these
REPO_ANCHORS = [
    "[core-testing]",
    "[core]",
    "[extra-testing]",
    "[extra]",
    "[multilib]",
]

REPO_SIGLEVEL = "Optional TrustAll"

# ==============================================================================
# 5. PACMAN / MAINTENANCE SETTINGS
# ==============================================================================

ARCHIVE_MIRROR_PATTERN = r"^.*archive\.archlinux\.org.*$"
ARCHIVE_MIRROR_LINE = "Server = https://archive.archlinux.org/repos/{year}/{month}/{day}/$repo/os/$arch"

# Commented-out Include lines are left alone
MIRRORLIST_INCLUDE_PATTERN = r"^\s*Include\s*=.*mirrorlist.*$"

# DIFFPROG: Program pacdiff uses to review .pacnew files
DIFFPROG = "nvim -d"

# CACHE_KEEP: Package versions kept by paccache (None disables trimming)
CACHE_KEEP = 2

BOOTLOADER_COMMANDS = [
    "sudo grub-install --target=x86_64-efi --efi-directory=/boot --bootloader-id=GRUB",
    "sudo grub-mkconfig -o /boot/grub/grub.cfg",
]
