# sourceweaver/config/loader.py
"""
Loads and merges sourceweaver settings from TOML files.

Sources, lowest precedence first: the user file
``~/.config/sourceweaver/config.toml``, then the first project file found in
the scan root (``.sourceweaver.toml``, ``sourceweaver.toml``, or the
``[tool.sourceweaver]`` table of ``pyproject.toml``). Profiles live under
``[profiles.<name>]`` in either file; project profiles replace user profiles
of the same name.
"""
from dataclasses import fields as dataclass_fields
from pathlib import Path
from typing import Any, Dict, Optional
import toml
import structlog

from sourceweaver.config.settings import BundleConfig
from sourceweaver.exceptions import ConfigError

log = structlog.get_logger(__name__)

PROJECT_CONFIG_FILENAMES = [".sourceweaver.toml", "sourceweaver.toml", "pyproject.toml"]
USER_CONFIG_DIR = Path.home() / ".config" / "sourceweaver"
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.toml"

# toml key -> BundleConfig attribute.
CONFIG_KEY_TO_BUNDLECONFIG_ATTR_MAP: Dict[str, str] = {
    "hidden": "hidden",
    "no_ignore": "no_ignore",
    "no_global_ignore": "no_global_ignore",
    "no_repo_exclude": "no_repo_exclude",
    "ignore_files": "ignore_files",
    "exclude": "exclude_patterns",
    "exclude_patterns": "exclude_patterns",
    "include_lock_files": "include_lock_files",
    "follow_symlinks": "follow_symlinks",
    "sample_size": "sample_size",
    "jobs": "jobs",
    "output_file": "output_file",
    "clipboard": "clipboard",
    "summary": "console_show_summary",
    "console_show_summary": "console_show_summary",
}

_PATH_LIST_ATTRS = {"ignore_files"}
_PATH_ATTRS = {"output_file"}
_STRING_LIST_ATTRS = {"exclude_patterns"}


def _load_toml_file_data(file_path: Path) -> Dict[str, Any]:
    if not file_path.is_file():
        return {}
    log.debug("loading_toml_config_file", path=str(file_path))
    try:
        data = toml.load(file_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"could not read config file '{file_path}': {e}") from e
    if file_path.name == "pyproject.toml":
        return data.get("tool", {}).get("sourceweaver", {})
    return data


def load_and_merge_configs(project_dir: Path, user_config_file: Optional[Path] = None) -> Dict[str, Any]:
    # merges the user file and the first project file into one raw dict.
    user_file = user_config_file if user_config_file is not None else USER_CONFIG_FILE
    merged_toml_data: Dict[str, Any] = {}
    if user_file.is_file():
        log.info("loading_user_global_config", path=str(user_file))
        merged_toml_data.update(_load_toml_file_data(user_file))

    for filename in PROJECT_CONFIG_FILENAMES:
        candidate = project_dir / filename
        if not candidate.is_file():
            continue
        project_settings = _load_toml_file_data(candidate)
        if not project_settings:
            # a pyproject.toml without our table does not stop the search.
            continue
        log.info("loading_project_local_config", path=str(candidate))
        user_profiles = merged_toml_data.get("profiles", {})
        project_profiles = project_settings.pop("profiles", {})
        if isinstance(user_profiles, dict) and isinstance(project_profiles, dict):
            user_profiles.update(project_profiles)
            merged_toml_data["profiles"] = user_profiles
        elif isinstance(project_profiles, dict):
            merged_toml_data["profiles"] = project_profiles
        merged_toml_data.update(project_settings)
        break

    if not merged_toml_data:
        log.debug("no_configuration_files_loaded")
    return merged_toml_data


def _coerce(attr: str, value: Any, source: str) -> Any:
    if attr in _PATH_LIST_ATTRS or attr in _STRING_LIST_ATTRS:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"'{attr}' in {source} must be a list of strings.")
        return [Path(v).expanduser() for v in value] if attr in _PATH_LIST_ATTRS else list(value)
    if attr in _PATH_ATTRS:
        if value is None or value == "":
            return None
        if not isinstance(value, str):
            raise ConfigError(f"'{attr}' in {source} must be a path string.")
        return Path(value).expanduser()

    expected = next(f.type for f in dataclass_fields(BundleConfig) if f.name == attr)
    if expected in (bool, "bool") and not isinstance(value, bool):
        raise ConfigError(f"'{attr}' in {source} must be true or false.")
    if expected in (int, "int") and (isinstance(value, bool) or not isinstance(value, int)):
        raise ConfigError(f"'{attr}' in {source} must be an integer.")
    return value


def settings_from_table(table: Dict[str, Any], source: str) -> Dict[str, Any]:
    """Maps one TOML table onto BundleConfig attributes, warning about unknown keys."""
    settings: Dict[str, Any] = {}
    for key, value in table.items():
        if key == "profiles":
            continue
        attr = CONFIG_KEY_TO_BUNDLECONFIG_ATTR_MAP.get(key)
        if attr is None:
            log.warning("unknown_config_key_ignored", key=key, source=source)
            continue
        settings[attr] = _coerce(attr, value, source)
    return settings


def resolve_file_settings(raw_configs: Dict[str, Any], profile_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Resolves merged TOML data to BundleConfig attributes, applying the named
    profile on top. Raises ConfigError for an unknown profile.
    """
    settings = settings_from_table(raw_configs, "config files")
    if profile_name:
        profiles = raw_configs.get("profiles", {})
        profile_table = profiles.get(profile_name) if isinstance(profiles, dict) else None
        if not isinstance(profile_table, dict):
            raise ConfigError(f"profile '{profile_name}' not found in config files.")
        log.info("applying_profile_settings", profile=profile_name)
        settings.update(settings_from_table(profile_table, f"profile '{profile_name}'"))
    return settings
