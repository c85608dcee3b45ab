# sourceweaver/core/discovery/git_paths.py
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import structlog

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RepositoryLayout:
    # work tree root and the git metadata directory of the repository enclosing a path.
    work_tree: Path
    git_dir: Path

    @property
    def exclude_file(self) -> Path:
        return self.git_dir / "info" / "exclude"


def _read_gitdir_pointer(dot_git_file: Path) -> Optional[Path]:
    # worktrees and submodules use a ".git" file containing "gitdir: <path>".
    try:
        content = dot_git_file.read_text(encoding="utf-8", errors="replace").strip()
    except OSError as e:
        log.warning("gitdir_pointer_unreadable", path=str(dot_git_file), error=str(e))
        return None
    if not content.startswith("gitdir:"):
        return None
    target = Path(content[len("gitdir:"):].strip())
    if not target.is_absolute():
        target = dot_git_file.parent / target
    return target.resolve()


def find_repository(start: Path) -> Optional[RepositoryLayout]:
    """
    Finds the git repository enclosing ``start`` by looking for a ``.git``
    directory or pointer file in ``start`` and its ancestors.

    Returns None when ``start`` is not inside a work tree.
    """
    current = start.resolve()
    while True:
        candidate = current / ".git"
        if candidate.is_dir():
            log.debug("git_repository_found", work_tree=str(current))
            return RepositoryLayout(work_tree=current, git_dir=candidate)
        if candidate.is_file():
            git_dir = _read_gitdir_pointer(candidate)
            if git_dir is not None:
                log.debug("git_repository_found_via_pointer", work_tree=str(current), git_dir=str(git_dir))
                return RepositoryLayout(work_tree=current, git_dir=git_dir)
        if current.parent == current:
            return None
        current = current.parent


def _configured_excludes_file(cwd: Path) -> Optional[Path]:
    # asks git for core.excludesFile; any failure just means "not configured".
    try:
        result = subprocess.run(
            ["git", "config", "--path", "--get", "core.excludesFile"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except (OSError, ValueError) as e:
        log.debug("git_config_unavailable", error=str(e))
        return None
    value = result.stdout.strip()
    if result.returncode != 0 or not value:
        return None
    return Path(value).expanduser()


def find_global_ignore_file(cwd: Path) -> Optional[Path]:
    """
    Locates the user-global ignore file the way git does: ``core.excludesFile``
    when configured, else ``$XDG_CONFIG_HOME/git/ignore``, else
    ``~/.config/git/ignore``. Returns None if the resolved file does not exist.
    """
    candidate = _configured_excludes_file(cwd)
    if candidate is None:
        xdg_home = os.environ.get("XDG_CONFIG_HOME")
        config_home = Path(xdg_home) if xdg_home else Path.home() / ".config"
        candidate = config_home / "git" / "ignore"

    if candidate.is_file():
        log.debug("global_ignore_file_found", path=str(candidate))
        return candidate
    log.debug("no_global_ignore_file", looked_at=str(candidate))
    return None
