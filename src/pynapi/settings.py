"""Tool settings: defaults, an optional JSON config file, and env overrides."""

import json
import os
from pathlib import Path
from typing import Any, Optional, TypeAlias, TypedDict

from pynapi.util import error, is_protected_entry

DEFAULT_DIST_URL = "https://nodejs.org/dist"
DEFAULT_NAPI_VERSION = 5
DEFAULT_C_STANDARD = "99"
DEFAULT_BUILD_DIR = Path("build")
DEFAULT_LIBS_DIR = Path("libs")
DEFAULT_NODE = "node"
CONFIG_FILE_ENV = "PYNAPI_CONFIG_FILE"


class Settings(TypedDict):
    dist_url: str
    napi_version: int
    c_standard: str
    build_dir: Path
    libs_dir: Path
    node: str
    config_path: Optional[Path]


StringValidationResult: TypeAlias = tuple[int, Optional[str]]
IntValidationResult: TypeAlias = tuple[int, Optional[int]]
DirValidationResult: TypeAlias = tuple[int, Optional[Path]]


class SettingsManager:
    def __init__(
        self,
        dist_url: str = DEFAULT_DIST_URL,
        napi_version: int = DEFAULT_NAPI_VERSION,
        c_standard: str = DEFAULT_C_STANDARD,
        build_dir: Path = DEFAULT_BUILD_DIR,
        libs_dir: Path = DEFAULT_LIBS_DIR,
        node: str = DEFAULT_NODE,
        config_path: Optional[Path] = None,
    ):
        self._dist_url = dist_url
        self._napi_version = napi_version
        self._c_standard = c_standard
        self._build_dir = build_dir
        self._libs_dir = libs_dir
        self._node = node
        self._config_path = config_path

    @property
    def dist_url(self) -> str:
        return self._dist_url

    @property
    def napi_version(self) -> int:
        return self._napi_version

    @property
    def c_standard(self) -> str:
        return self._c_standard

    @property
    def build_dir(self) -> Path:
        return self._build_dir

    @property
    def libs_dir(self) -> Path:
        return self._libs_dir

    @property
    def node(self) -> str:
        return self._node

    @property
    def config_path(self) -> Optional[Path]:
        return self._config_path

    def set_dist_url(self, value: str) -> None:
        self._dist_url = value.rstrip("/")

    def set_napi_version(self, value: int) -> None:
        self._napi_version = value

    def set_c_standard(self, value: str) -> None:
        self._c_standard = value

    def set_build_dir(self, value: Path) -> None:
        self._build_dir = value

    def set_libs_dir(self, value: Path) -> None:
        self._libs_dir = value

    def set_node(self, value: str) -> None:
        self._node = value

    def set_config_path(self, value: Optional[Path]) -> None:
        self._config_path = value

    def to_dict(self) -> Settings:
        return {
            "dist_url": self._dist_url,
            "napi_version": self._napi_version,
            "c_standard": self._c_standard,
            "build_dir": self._build_dir,
            "libs_dir": self._libs_dir,
            "node": self._node,
            "config_path": self._config_path,
        }

    @classmethod
    def from_dict(cls, settings: Settings) -> "SettingsManager":
        return cls(
            dist_url=settings["dist_url"],
            napi_version=settings["napi_version"],
            c_standard=settings["c_standard"],
            build_dir=settings["build_dir"],
            libs_dir=settings["libs_dir"],
            node=settings["node"],
            config_path=settings["config_path"],
        )


settings_manager = SettingsManager()


def _validate_non_empty_string(value: Any, field_name: str) -> StringValidationResult:
    """Validate value is a non-empty string.

    Returns (0, stripped_string) if valid, (0, None) if value is None,
    or (1, None) if invalid with error message printed.
    """
    if value is None:
        return (0, None)
    if isinstance(value, str) and value.strip():
        return (0, value.strip())
    error(f"config {field_name} must be a non-empty string")
    return (1, None)


def _validate_napi_version(value: Any, field_name: str) -> IntValidationResult:
    """Accept a positive integer, or a string holding one."""
    if value is None:
        return (0, None)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return (0, value)
    error(f"config {field_name} must be a positive integer")
    return (1, None)


def _validate_standard(value: Any, field_name: str) -> StringValidationResult:
    if value is None:
        return (0, None)
    if isinstance(value, int) and not isinstance(value, bool):
        return (0, str(value))
    if isinstance(value, str) and value.strip():
        return (0, value.strip())
    error(f"config {field_name} must be a string or integer")
    return (1, None)


def _validate_relative_dir(value: Any, field_name: str) -> DirValidationResult:
    """Directories must stay inside the project root."""
    result, validated = _validate_non_empty_string(value, field_name)
    if result or validated is None:
        return (result, None)
    path = Path(validated)
    if path.is_absolute() or not path.parts or ".." in path.parts:
        error(f"config {field_name} must be a relative path inside the project")
        return (1, None)
    if is_protected_entry(path):
        error(f"config {field_name} must not point at generated project files")
        return (1, None)
    return (0, path)


def _validate_url(value: Any, field_name: str) -> StringValidationResult:
    result, validated = _validate_non_empty_string(value, field_name)
    if result or validated is None:
        return (result, None)
    if not validated.lower().startswith(("https://", "http://")):
        error(f"config {field_name} must be an http(s) URL")
        return (1, None)
    return (0, validated)


def _apply_values(data: dict, manager: SettingsManager) -> int:
    """Validate and apply known settings keys; returns 0 or 1."""
    result, url = _validate_url(data.get("dist_url"), "dist_url")
    if result:
        return 1
    if url is not None:
        manager.set_dist_url(url)

    result, napi_version = _validate_napi_version(
        data.get("napi_version"), "napi_version"
    )
    if result:
        return 1
    if napi_version is not None:
        manager.set_napi_version(napi_version)

    result, standard = _validate_standard(data.get("c_standard"), "c_standard")
    if result:
        return 1
    if standard is not None:
        manager.set_c_standard(standard)

    result, build_dir = _validate_relative_dir(data.get("build_dir"), "build_dir")
    if result:
        return 1
    if build_dir is not None:
        manager.set_build_dir(build_dir)

    result, libs_dir = _validate_relative_dir(data.get("libs_dir"), "libs_dir")
    if result:
        return 1
    if libs_dir is not None:
        manager.set_libs_dir(libs_dir)

    result, node = _validate_non_empty_string(data.get("node"), "node")
    if result:
        return 1
    if node is not None:
        manager.set_node(node)
    return 0


def apply_config_file(path: Path) -> int:
    """Load and validate a JSON config file into settings_manager."""
    manager = globals()["settings_manager"]
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as exc:
        error(f"failed to read config file {path}: {exc}")
        return 1
    try:
        data = json.loads(contents)
    except json.JSONDecodeError as exc:
        error(f"invalid JSON in {path}: {exc}")
        return 1
    if not isinstance(data, dict):
        error(f"config file {path} must contain a JSON object")
        return 1
    unknown = sorted(set(data) - set(Settings.__annotations__) - {"config_path"})
    if unknown:
        error(f"unknown config keys in {path}: {', '.join(unknown)}")
        return 1
    result = _apply_values(data, manager)
    if result:
        return 1
    manager.set_config_path(path)
    return 0


def apply_env_overrides() -> int:
    """Apply environment overrides on top of file and default settings."""
    manager = globals()["settings_manager"]
    env_map = {
        "NODEJS_ORG_MIRROR": "dist_url",
        "PYNAPI_NAPI_VERSION": "napi_version",
        "PYNAPI_C_STANDARD": "c_standard",
        "PYNAPI_BUILD_DIR": "build_dir",
        "PYNAPI_LIBS_DIR": "libs_dir",
        "PYNAPI_NODE": "node",
    }
    data = {
        key: os.environ[var] for var, key in env_map.items() if os.environ.get(var)
    }
    return _apply_values(data, manager)


def load_settings(config_path: Optional[str] = None) -> int:
    """Resolve settings from ``config_path`` (or its env var) and the environment."""
    candidate = config_path or os.environ.get(CONFIG_FILE_ENV)
    if candidate:
        path = Path(candidate).expanduser()
        if not path.exists():
            error(f"config file {path} not found")
            return 1
        result = apply_config_file(path)
        if result:
            return result
    return apply_env_overrides()
