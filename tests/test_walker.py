# tests/test_walker.py
"""Tests for the ignore-aware directory walker."""
import os
import pytest
from pathlib import Path

from sourceweaver.core.discovery.ignore_rules import RuleStore
from sourceweaver.core.discovery.models import Diagnostics, EntryKind, WarningKind
from sourceweaver.core.discovery.walker import walk
from tests.conftest import create_tree


def _relative_paths(root: Path, **kwargs):
    return [e.relative_path for e in walk(root, RuleStore.build(root), **kwargs)]


def test_preorder_traversal_sorted_by_name(tmp_path):
    create_tree(tmp_path, {"b.txt": "", "a/z.txt": "", "a/m/x.txt": "", "c/y.txt": ""})
    assert _relative_paths(tmp_path) == ["a", "a/m", "a/m/x.txt", "a/z.txt", "b.txt", "c", "c/y.txt"]


def test_pruned_directory_contributes_nothing(tmp_path):
    create_tree(tmp_path, {
        ".gitignore": "build/\n",
        "build/output.txt": "",
        "build/.gitignore": "!output.txt\n",
        "src/main.rs": "",
    })
    assert _relative_paths(tmp_path) == ["src", "src/main.rs"]


def test_negation_cannot_reinclude_inside_excluded_directory(tmp_path):
    create_tree(tmp_path, {".gitignore": "logs/\n!logs/keep.log\n", "logs/keep.log": "", "app.py": ""})
    assert _relative_paths(tmp_path) == ["app.py"]


def test_entry_metadata(tmp_path):
    create_tree(tmp_path, {"pkg/mod.py": ""})
    entries = list(walk(tmp_path, RuleStore.build(tmp_path)))
    directory, module = entries
    assert directory.kind is EntryKind.DIRECTORY and directory.is_dir
    assert module.kind is EntryKind.FILE and not module.is_dir
    assert module.path == tmp_path.resolve() / "pkg" / "mod.py"
    assert module.relative_path == "pkg/mod.py"
    assert module.depth == 1
    assert module.kept


def test_report_pruned_yields_decision(tmp_path):
    create_tree(tmp_path, {".gitignore": "*.log\n", "debug.log": "", "main.c": ""})
    entries = list(walk(tmp_path, RuleStore.build(tmp_path), report_pruned=True))
    by_path = {e.relative_path: e for e in entries}
    assert not by_path["debug.log"].kept
    assert by_path["debug.log"].decided_by.pattern.pattern == "*.log"
    assert not by_path[".gitignore"].kept
    assert by_path["main.c"].kept


def test_walk_is_lazy(tmp_path):
    create_tree(tmp_path, {"a.txt": "", "b.txt": ""})
    iterator = walk(tmp_path, RuleStore.build(tmp_path))
    assert next(iterator).relative_path == "a.txt"
    assert [e.relative_path for e in iterator] == ["b.txt"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
class TestSymlinks:
    def test_file_symlink_is_yielded_as_symlink(self, tmp_path):
        create_tree(tmp_path, {"real.txt": "data"})
        (tmp_path / "link.txt").symlink_to(tmp_path / "real.txt")
        entries = {e.relative_path: e for e in walk(tmp_path, RuleStore.build(tmp_path))}
        assert entries["link.txt"].kind is EntryKind.SYMLINK
        assert not entries["link.txt"].is_dir

    def test_symlinked_directory_is_followed(self, tmp_path):
        create_tree(tmp_path, {"shared/util.py": ""})
        root = tmp_path / "proj"
        root.mkdir()
        (root / "linked").symlink_to(tmp_path / "shared", target_is_directory=True)
        assert _relative_paths(root) == ["linked", "linked/util.py"]

    def test_no_follow_symlinks_yields_link_without_descending(self, tmp_path):
        create_tree(tmp_path, {"shared/util.py": ""})
        root = tmp_path / "proj"
        root.mkdir()
        (root / "linked").symlink_to(tmp_path / "shared", target_is_directory=True)
        assert _relative_paths(root, follow_symlinks=False) == ["linked"]

    def test_symlink_cycle_is_reported_and_skipped(self, tmp_path):
        create_tree(tmp_path, {"a/file.txt": ""})
        (tmp_path / "a" / "loop").symlink_to(tmp_path, target_is_directory=True)
        diagnostics = Diagnostics()
        paths = [e.relative_path for e in walk(tmp_path, RuleStore.build(tmp_path), diagnostics)]
        assert paths == ["a", "a/file.txt", "a/loop"]
        cycles = diagnostics.of_kind(WarningKind.SYMLINK_CYCLE)
        assert len(cycles) == 1
        assert cycles[0].path == tmp_path.resolve() / "a" / "loop"

    def test_broken_symlink_is_reported(self, tmp_path):
        create_tree(tmp_path, {"ok.txt": ""})
        (tmp_path / "dangling").symlink_to(tmp_path / "does-not-exist")
        diagnostics = Diagnostics()
        paths = [e.relative_path for e in walk(tmp_path, RuleStore.build(tmp_path), diagnostics)]
        assert paths == ["ok.txt"]
        assert [d.path.name for d in diagnostics.of_kind(WarningKind.IO)] == ["dangling"]


@pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs posix permissions as non-root")
def test_unreadable_directory_is_reported(tmp_path):
    create_tree(tmp_path, {"locked/secret.txt": "", "open.txt": ""})
    locked = tmp_path / "locked"
    locked.chmod(0o000)
    try:
        diagnostics = Diagnostics()
        paths = [e.relative_path for e in walk(tmp_path, RuleStore.build(tmp_path), diagnostics)]
    finally:
        locked.chmod(0o755)
    assert paths == ["locked", "open.txt"]
    assert len(diagnostics.of_kind(WarningKind.IO)) == 1


def test_whitelist_pattern_keeps_only_python_files(tmp_path):
    create_tree(tmp_path, {
        ".gitignore": "*\n!*/\n!*.py\n",
        "setup.py": "",
        "notes.txt": "",
        "pkg/mod.py": "",
        "pkg/data.json": "",
    })
    assert _relative_paths(tmp_path) == ["pkg", "pkg/mod.py", "setup.py"]


def test_leading_globstar_does_not_prune_reincluded_subtree(tmp_path):
    create_tree(tmp_path, {
        ".gitignore": "**/foo/bar\n!foo/bar/\n",
        "foo/bar/x/bar/keep.txt": "",
        "other/foo/bar": "",
    })
    assert _relative_paths(tmp_path) == [
        "foo", "foo/bar", "foo/bar/x", "foo/bar/x/bar", "foo/bar/x/bar/keep.txt", "other", "other/foo",
    ]
