"""
Config Loader Module - Handles configuration loading and validation
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import yaml

from nompac import config
from nompac.common.errors import ConfigError
from nompac.common.file_patcher import ConfigEdit, OnMissingMatch

logger = logging.getLogger(__name__)


def resolve_home(path: str, home: str) -> str:
    """Rewrite a leading ``~`` or ``$HOME`` with the given home directory"""
    stripped = path.strip()
    if stripped.startswith("~"):
        return home + stripped[1:]
    if stripped.startswith("$HOME"):
        return home + stripped[len("$HOME"):]
    return path


@dataclass(frozen=True)
class SnapshotDate:
    """Date of an archive.archlinux.org snapshot"""
    year: str
    month: str
    day: str

    @classmethod
    def parse(cls, value) -> Optional["SnapshotDate"]:
        """Parse ``YYYY_MM_DD``; ``none`` or an empty value means no snapshot"""
        if value is None:
            return None
        # YAML 1.1 reads an unquoted 2024_01_15 as the integer 20240115
        if isinstance(value, int) and not isinstance(value, bool):
            digits = f"{value:08d}"
            if value < 0 or len(digits) != 8:
                raise ConfigError(f"Invalid snapshot date '{value}', expected YYYY_MM_DD or none")
            return cls(digits[:4], digits[4:6], digits[6:])
        value = str(value).strip()
        if not value or value.lower() == "none":
            return None

        parts = value.split("_")
        if len(parts) != 3 or not all(part.isdigit() for part in parts):
            raise ConfigError(f"Invalid snapshot date '{value}', expected YYYY_MM_DD or none")
        return cls(*parts)

    def __str__(self):
        return f"{self.year}_{self.month}_{self.day}"


@dataclass(frozen=True)
class BootloaderSettings:
    enabled: bool = False
    commands: Tuple[str, ...] = tuple(config.BOOTLOADER_COMMANDS)


@dataclass(frozen=True)
class Settings:
    """Settings for one run. Built once by ConfigLoader, never mutated."""
    name: str
    build_dir: Path
    patch_dir: Path
    overlay_dir: Path
    local_repo: Path
    local_repo_dir: Optional[Path]
    pacconfig: Path
    mirrorlist: Path
    packages: Dict[str, List[str]] = field(default_factory=dict)
    flat_packages: List[str] = field(default_factory=list)
    patches: Dict[str, List[str]] = field(default_factory=dict)
    overlays: List[str] = field(default_factory=list)
    package_groups: List[str] = field(default_factory=lambda: ["all"])
    snapshot: Optional[SnapshotDate] = None
    imports: List[Path] = field(default_factory=list)
    configs: List[ConfigEdit] = field(default_factory=list)
    cleanup: bool = config.CLEANUP_AFTER_PUBLISH
    package_glob: str = config.PACKAGE_GLOB
    mirror_policy: OnMissingMatch = OnMissingMatch.NOOP_IF_PRESENT
    diffprog: str = config.DIFFPROG
    cache_keep: Optional[int] = config.CACHE_KEEP
    http_timeout: float = config.HTTP_TIMEOUT
    bootloader: BootloaderSettings = field(default_factory=BootloaderSettings)
    config_path: Optional[Path] = None

    @property
    def repo_name(self) -> str:
        name = self.local_repo.name
        if name.endswith(config.LOCAL_REPO_SUFFIX):
            return name[:-len(config.LOCAL_REPO_SUFFIX)]
        return name

    @property
    def local_builds_enabled(self) -> bool:
        return self.local_repo_dir is not None

    def desired_packages(self) -> List[str]:
        """Lower-cased, sorted package names of the selected groups plus the flat list"""
        names = {pkg.lower() for pkg in self.flat_packages}
        select_all = "all" in self.package_groups
        for group, packages in self.packages.items():
            if select_all or group in self.package_groups:
                names.update(pkg.lower() for pkg in packages)
        return sorted(names)


def _string_list(value, key: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return list(value)


def _merge_mapping(target: Dict[str, List[str]], mapping, key: str):
    if not isinstance(mapping, dict):
        raise ConfigError(f"'{key}' entries must be mappings of name -> list")
    for name, items in mapping.items():
        target.setdefault(str(name), []).extend(_string_list(items, f"{key}.{name}"))


def normalize_packages(value) -> Tuple[Dict[str, List[str]], List[str]]:
    """
    Accept the three shapes `packages` has had over time:
    a mapping group -> names, a list of such mappings, or a flat list of names.

    Returns:
        (groups, flat_packages)
    """
    groups: Dict[str, List[str]] = {}
    flat: List[str] = []

    if value is None:
        return groups, flat
    if isinstance(value, dict):
        _merge_mapping(groups, value, "packages")
    elif isinstance(value, list):
        for item in value:
            if isinstance(item, str):
                flat.append(item)
            else:
                _merge_mapping(groups, item, "packages")
    else:
        raise ConfigError("'packages' must be a mapping or a list")

    return groups, flat


def normalize_patches(value) -> Dict[str, List[str]]:
    patches: Dict[str, List[str]] = {}
    if value is None:
        return patches
    if isinstance(value, dict):
        _merge_mapping(patches, value, "patches")
    elif isinstance(value, list):
        for item in value:
            _merge_mapping(patches, item, "patches")
    else:
        raise ConfigError("'patches' must be a mapping or a list of mappings")
    return patches


class ConfigLoader:
    """Handles configuration loading and validation"""

    def __init__(self, home=None, repo_initializer: Optional[Callable[[Path], bool]] = None):
        """
        Args:
            home: Home directory used for ``~``/``$HOME`` (default: Path.home())
            repo_initializer: Called with the database path when the local
                repository is missing and should be created (``--initiate yes``)
        """
        self.home = str(home) if home is not None else str(Path.home())
        self.repo_initializer = repo_initializer

    def resolve(self, path) -> Path:
        return Path(resolve_home(str(path), self.home))

    @staticmethod
    def read_file(path: Path) -> dict:
        """Read a JSON (*.json) or YAML (anything else) config file"""
        try:
            text = path.read_text()
        except OSError as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e

        try:
            if path.suffix == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Errors in the structure of config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at the top level")
        return data

    def load(self, config_path, snapshot: str = "none", pacconfig: str = "none",
             package_groups: str = "none") -> Settings:
        """
        Load settings from ``config_path`` and apply command line overrides.
        An override equal to ``none`` keeps the value from the file.

        Raises:
            ConfigError: on any missing or malformed setting
        """
        path = self.resolve(config_path)
        data = self.read_file(path)

        missing = [key for key in config.CONFIG_REQUIRED_KEYS if key not in data]
        if missing:
            raise ConfigError(f"Missing required keys in {path}: {', '.join(missing)}")

        groups, flat = normalize_packages(data.get("packages"))
        overlays = _string_list(data.get("overlays"), "overlays")

        imports = []
        for fragment in _string_list(data.get("imports"), "imports"):
            fragment_path = self.resolve(fragment)
            if not fragment_path.is_absolute():
                fragment_path = path.parent / fragment_path
            imports.append(fragment_path)
            self._merge_fragment(fragment_path, groups, flat, overlays)

        if package_groups == "none":
            package_groups = data.get("packagegroups", data.get("package_groups", "all"))
        groups_selected = [g.strip() for g in str(package_groups).split(",") if g.strip()]

        if snapshot == "none":
            snapshot = data.get("snapshot")

        if pacconfig == "none":
            pacconfig = data["pacconfig"]

        local_repo = self.resolve(data["local_repo"])

        settings = Settings(
            name=str(data["name"]),
            build_dir=self.resolve(data["build_dir"]),
            patch_dir=self.resolve(data["patch_dir"]),
            overlay_dir=self.resolve(data["overlay_dir"]),
            local_repo=local_repo,
            local_repo_dir=self._resolve_local_repo(local_repo),
            pacconfig=self.resolve(pacconfig),
            mirrorlist=self.resolve(data["mirrorlist"]),
            packages=groups,
            flat_packages=flat,
            patches=normalize_patches(data.get("patches")),
            overlays=overlays,
            package_groups=groups_selected,
            snapshot=SnapshotDate.parse(snapshot),
            imports=imports,
            configs=self._parse_configs(data.get("configs")),
            cleanup=self._parse_flag(data.get("cleanup", config.CLEANUP_AFTER_PUBLISH), "cleanup"),
            package_glob=str(data.get("package_glob", config.PACKAGE_GLOB)),
            mirror_policy=self._parse_policy(data.get("mirror_policy", OnMissingMatch.NOOP_IF_PRESENT.value)),
            diffprog=str(data.get("diffprog", config.DIFFPROG)),
            cache_keep=self._parse_cache_keep(data.get("cache_keep", config.CACHE_KEEP)),
            http_timeout=self._parse_timeout(data.get("http_timeout", config.HTTP_TIMEOUT)),
            bootloader=self._parse_bootloader(data.get("bootloader")),
            config_path=path,
        )

        logger.debug(f"CONFIG_LOADED path={path} groups={groups_selected} imports={len(imports)}")
        return settings

    def _merge_fragment(self, fragment_path: Path, groups, flat, overlays):
        data = self.read_file(fragment_path)
        if "imports" in data:
            raise ConfigError(f"Imported fragment {fragment_path} may not import other files")

        fragment_groups, fragment_flat = normalize_packages(data.get("packages"))
        for group, packages in fragment_groups.items():
            groups.setdefault(group, []).extend(packages)
        flat.extend(fragment_flat)
        overlays.extend(_string_list(data.get("overlays"), "overlays"))
        logger.info(f"Imported {fragment_path}")

    def _resolve_local_repo(self, local_repo: Path) -> Optional[Path]:
        """Directory of the local repository, or None if local builds are disabled"""
        if not local_repo.name.endswith(config.LOCAL_REPO_SUFFIX):
            logger.warning(
                f"⚠️ No {config.LOCAL_REPO_SUFFIX} file for the local repository specified "
                f"--> no local builds are possible."
            )
            return None

        if local_repo.is_file():
            return local_repo.parent

        if self.repo_initializer is None:
            logger.warning(
                f"⚠️ Repository database {local_repo} doesn't exist --> no local builds are possible. "
                f"To create it restart with -i yes"
            )
            return None

        logger.info(f"Repository database {local_repo} doesn't exist. It will be created")
        if self.repo_initializer(local_repo):
            return local_repo.parent

        logger.error(f"❌ Failed to create repository database {local_repo}")
        return None

    def _parse_configs(self, value) -> List[ConfigEdit]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ConfigError("'configs' must be a list")

        edits = []
        for entry in value:
            if not isinstance(entry, dict) or "path" not in entry:
                raise ConfigError("every 'configs' entry needs a 'path'")
            changes = []
            for change in entry.get("changes", []):
                if not isinstance(change, dict) or "orig" not in change or "changed" not in change:
                    raise ConfigError(f"changes for {entry['path']} need 'orig' and 'changed'")
                changes.append((str(change["orig"]), str(change["changed"])))
            edits.append(ConfigEdit(
                path=self.resolve(entry["path"]),
                changes=changes,
                sudo=self._parse_flag(entry.get("sudo", False), "sudo"),
            ))
        return edits

    @staticmethod
    def _parse_policy(value) -> OnMissingMatch:
        try:
            return OnMissingMatch(value)
        except ValueError:
            choices = ", ".join(p.value for p in OnMissingMatch)
            raise ConfigError(f"Invalid mirror_policy '{value}', expected one of: {choices}") from None

    @staticmethod
    def _parse_flag(value, key: str) -> bool:
        if not isinstance(value, bool):
            raise ConfigError(f"'{key}' must be true or false")
        return value

    @staticmethod
    def _parse_cache_keep(value) -> Optional[int]:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError("'cache_keep' must be a non-negative integer or null")
        return value

    @staticmethod
    def _parse_timeout(value) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigError("'http_timeout' must be a positive number of seconds")
        return float(value)

    @staticmethod
    def _parse_bootloader(value) -> BootloaderSettings:
        if value is None:
            return BootloaderSettings()
        if not isinstance(value, dict):
            raise ConfigError("'bootloader' must be a mapping")
        commands = value.get("commands", config.BOOTLOADER_COMMANDS)
        return BootloaderSettings(
            enabled=ConfigLoader._parse_flag(value.get("enabled", False), "bootloader.enabled"),
            commands=tuple(_string_list(commands, "bootloader.commands")),
        )
