# tests/conftest.py
import pytest
from pathlib import Path
from typing import Dict, Union


@pytest.fixture(autouse=True)
def isolated_user_environment(tmp_path_factory, monkeypatch):
    """Keeps the developer's global git ignore and user config out of every test."""
    fake_home = tmp_path_factory.mktemp("home")
    monkeypatch.setattr(
        "sourceweaver.core.discovery.ignore_rules.find_global_ignore_file",
        lambda cwd: None,
    )
    monkeypatch.setattr(
        "sourceweaver.config.loader.USER_CONFIG_FILE",
        fake_home / ".config" / "sourceweaver" / "config.toml",
    )
    return fake_home


def create_tree(base: Path, structure: Dict[str, Union[str, bytes, None]]) -> Path:
    """
    Creates files under ``base``. Keys are forward-slash relative paths; a
    value of None creates a directory, bytes are written raw.
    """
    for rel_path, content in structure.items():
        target = base / rel_path
        if content is None:
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
    return base


@pytest.fixture
def make_tree(tmp_path: Path):
    def _make(structure: Dict[str, Union[str, bytes, None]], name: str = "proj") -> Path:
        root = tmp_path / name
        root.mkdir(exist_ok=True)
        return create_tree(root, structure)
    return _make
