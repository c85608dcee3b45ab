# tests/test_config_loader.py
"""Tests for TOML config loading, profiles and the options projection."""
import pytest
from pathlib import Path

from sourceweaver.config import loader
from sourceweaver.config.loader import load_and_merge_configs, resolve_file_settings
from sourceweaver.config.settings import BundleConfig, DiscoveryOptions
from sourceweaver.exceptions import ConfigError


def test_no_config_files(tmp_path):
    assert load_and_merge_configs(tmp_path) == {}
    assert resolve_file_settings({}) == {}


def test_project_file_settings(tmp_path):
    (tmp_path / ".sourceweaver.toml").write_text(
        'hidden = true\nexclude = ["*.md"]\njobs = 3\nignore_files = ["~/extra.ignore"]\n'
    )
    settings = resolve_file_settings(load_and_merge_configs(tmp_path))
    assert settings["hidden"] is True
    assert settings["exclude_patterns"] == ["*.md"]
    assert settings["jobs"] == 3
    assert settings["ignore_files"] == [Path("~/extra.ignore").expanduser()]


def test_pyproject_table_is_used(tmp_path):
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "demo"\n\n[tool.sourceweaver]\ninclude_lock_files = true\n'
    )
    assert resolve_file_settings(load_and_merge_configs(tmp_path)) == {"include_lock_files": True}


def test_first_project_file_wins(tmp_path):
    (tmp_path / ".sourceweaver.toml").write_text("hidden = true\n")
    (tmp_path / "sourceweaver.toml").write_text("hidden = false\nclipboard = true\n")
    assert resolve_file_settings(load_and_merge_configs(tmp_path)) == {"hidden": True}


def test_project_overrides_user_file(tmp_path):
    user_file = tmp_path / "user.toml"
    user_file.write_text('hidden = true\nsummary = false\n[profiles.docs]\nexclude = ["*.py"]\n')
    project = tmp_path / "proj"
    project.mkdir()
    (project / "sourceweaver.toml").write_text("hidden = false\n")
    raw = load_and_merge_configs(project, user_config_file=user_file)
    settings = resolve_file_settings(raw, "docs")
    assert settings == {"hidden": False, "console_show_summary": False, "exclude_patterns": ["*.py"]}


def test_user_file_default_location(tmp_path, monkeypatch):
    user_file = tmp_path / "config.toml"
    user_file.write_text("no_global_ignore = true\n")
    monkeypatch.setattr(loader, "USER_CONFIG_FILE", user_file)
    assert resolve_file_settings(load_and_merge_configs(tmp_path / "elsewhere")) == {"no_global_ignore": True}


def test_profile_applied_on_top(tmp_path):
    (tmp_path / "sourceweaver.toml").write_text(
        'follow_symlinks = true\n[profiles.strict]\nfollow_symlinks = false\nexclude = ["tests/"]\n'
    )
    raw = load_and_merge_configs(tmp_path)
    assert resolve_file_settings(raw)["follow_symlinks"] is True
    strict = resolve_file_settings(raw, "strict")
    assert strict["follow_symlinks"] is False
    assert strict["exclude_patterns"] == ["tests/"]


def test_unknown_profile_is_an_error(tmp_path):
    (tmp_path / "sourceweaver.toml").write_text("hidden = true\n")
    with pytest.raises(ConfigError, match="profile 'missing' not found"):
        resolve_file_settings(load_and_merge_configs(tmp_path), "missing")


def test_unknown_keys_are_ignored(tmp_path):
    (tmp_path / "sourceweaver.toml").write_text('hidden = true\ntemplate = "fancy"\n')
    assert resolve_file_settings(load_and_merge_configs(tmp_path)) == {"hidden": True}


def test_invalid_toml_raises_config_error(tmp_path):
    (tmp_path / "sourceweaver.toml").write_text("hidden = = true\n")
    with pytest.raises(ConfigError):
        load_and_merge_configs(tmp_path)


@pytest.mark.parametrize("content", ['hidden = "yes"\n', 'jobs = "4"\n', "exclude = 3\n"])
def test_wrong_value_types_raise_config_error(tmp_path, content):
    (tmp_path / "sourceweaver.toml").write_text(content)
    with pytest.raises(ConfigError):
        resolve_file_settings(load_and_merge_configs(tmp_path))


class TestBundleConfigProjection:
    def test_defaults(self):
        options = BundleConfig().discovery_options()
        assert options == DiscoveryOptions()

    def test_flags_are_inverted_into_options(self, tmp_path):
        config = BundleConfig(
            hidden=True,
            no_ignore=True,
            no_global_ignore=True,
            no_repo_exclude=True,
            include_lock_files=True,
            follow_symlinks=False,
            exclude_patterns=["*.md"],
            jobs=4,
            output_file=tmp_path / "bundle.md",
        )
        options = config.discovery_options()
        assert options.include_hidden
        assert not options.use_ignore_files
        assert not options.use_global_ignore
        assert not options.use_repo_exclude
        assert not options.skip_lock_files
        assert not options.follow_symlinks
        assert options.exclude_patterns == ["*.md"]
        assert options.workers == 4
        assert options.exclude_paths == [tmp_path / "bundle.md"]

    def test_invalid_numbers_fall_back_to_defaults(self):
        options = DiscoveryOptions(sample_size=0, workers=-2)
        assert options.sample_size == 8192
        assert options.workers == 1
