# sourceweaver/core/discovery/walker.py
import os
from pathlib import Path
from typing import FrozenSet, Iterator, List, Optional, Tuple
import structlog

from sourceweaver.core.discovery.ignore_rules import RuleStore
from sourceweaver.core.discovery.models import Diagnostics, EntryKind, WalkEntry, WarningKind

log = structlog.get_logger(__name__)

DirectoryIdentity = Tuple[int, int]


def _identity(stat_result: os.stat_result) -> DirectoryIdentity:
    return (stat_result.st_dev, stat_result.st_ino)


def _sorted_children(directory: Path, diagnostics: Diagnostics) -> Optional[List[os.DirEntry]]:
    # lists a directory in name order; None when it cannot be read.
    try:
        with os.scandir(directory) as it:
            return sorted(it, key=lambda child: child.name)
    except OSError as e:
        diagnostics.add(WarningKind.IO, directory, f"cannot read directory: {e.strerror or e}")
        return None


def walk(
    root: Path,
    rule_store: RuleStore,
    diagnostics: Optional[Diagnostics] = None,
    follow_symlinks: bool = True,
    report_pruned: bool = False,
) -> Iterator[WalkEntry]:
    """
    Walks ``root`` depth-first in pre-order, yielding a WalkEntry for every
    kept file and directory (children in name order). Directories excluded by
    the rule store are not descended into, so nothing under them is yielded.

    Pruned entries are skipped unless ``report_pruned`` is set, in which case
    they are yielded with ``kept=False`` and the deciding pattern attached.
    The returned generator is lazy and single-pass.
    """
    if diagnostics is None:
        diagnostics = Diagnostics()
    root_path = Path(root).resolve()
    try:
        root_identity = _identity(root_path.stat())
    except OSError as e:
        diagnostics.add(WarningKind.IO, root_path, f"cannot stat scan root: {e.strerror or e}")
        return

    log.info("directory_walk_started", root=str(root_path), follow_symlinks=follow_symlinks)
    yield from _walk_directory(
        root_path,
        "",
        rule_store.descend(root_path, diagnostics),
        frozenset([root_identity]),
        diagnostics,
        follow_symlinks,
        report_pruned,
    )


def _walk_directory(
    directory: Path,
    relative_dir: str,
    store: RuleStore,
    ancestors: FrozenSet[DirectoryIdentity],
    diagnostics: Diagnostics,
    follow_symlinks: bool,
    report_pruned: bool,
) -> Iterator[WalkEntry]:
    children = _sorted_children(directory, diagnostics)
    if children is None:
        return

    for child in children:
        child_path = directory / child.name
        relative_path = f"{relative_dir}/{child.name}" if relative_dir else child.name

        try:
            is_symlink = child.is_symlink()
            is_dir = child.is_dir(follow_symlinks=True)
            is_file = child.is_file(follow_symlinks=True)
        except OSError as e:
            diagnostics.add(WarningKind.IO, child_path, f"cannot stat entry: {e.strerror or e}")
            continue

        if is_symlink and not (is_dir or is_file):
            diagnostics.add(WarningKind.IO, child_path, "broken symlink or special file target")
            continue
        if not (is_dir or is_file):
            log.debug("skipping_special_file", path=str(child_path))
            continue

        if is_symlink:
            kind = EntryKind.SYMLINK
        elif is_dir:
            kind = EntryKind.DIRECTORY
        else:
            kind = EntryKind.FILE

        decided_by = store.match(child_path, is_dir)
        if decided_by is not None and decided_by.excluded:
            log.debug(
                "entry_pruned",
                path=relative_path,
                is_dir=is_dir,
                pattern=decided_by.pattern.describe(),
            )
            if report_pruned:
                yield WalkEntry(child_path, relative_path, kind, is_dir, kept=False, decided_by=decided_by)
            continue

        yield WalkEntry(child_path, relative_path, kind, is_dir, kept=True, decided_by=decided_by)

        if not is_dir:
            continue
        if is_symlink and not follow_symlinks:
            log.debug("not_following_directory_symlink", path=relative_path)
            continue

        try:
            identity = _identity(child.stat(follow_symlinks=True))
        except OSError as e:
            diagnostics.add(WarningKind.IO, child_path, f"cannot stat directory: {e.strerror or e}")
            continue
        if identity in ancestors:
            diagnostics.add(WarningKind.SYMLINK_CYCLE, child_path, "symlink cycle detected, subtree skipped")
            continue

        yield from _walk_directory(
            child_path,
            relative_path,
            store.descend(child_path, diagnostics),
            ancestors | {identity},
            diagnostics,
            follow_symlinks,
            report_pruned,
        )
