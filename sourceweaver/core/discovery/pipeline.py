# sourceweaver/core/discovery/pipeline.py
import collections
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Deque, FrozenSet, Iterator, Optional, Union
import structlog

from sourceweaver.config.settings import DiscoveryOptions
from sourceweaver.core.discovery.classifier import classify
from sourceweaver.core.discovery.ignore_rules import RuleStore
from sourceweaver.core.discovery.models import ClassifiedFile, Diagnostics, WalkEntry, WarningKind
from sourceweaver.core.discovery.walker import walk
from sourceweaver.exceptions import FileClassificationError, ScanRootError

log = structlog.get_logger(__name__)

# classifications allowed in flight per worker before the walk waits.
IN_FLIGHT_PER_WORKER = 4


def _validate_root(root: Union[str, Path]) -> Path:
    root_path = Path(root).expanduser()
    if not root_path.exists():
        raise ScanRootError(f"scan root '{root_path}' does not exist.")
    if not root_path.is_dir():
        raise ScanRootError(f"scan root '{root_path}' is not a directory.")
    return root_path.resolve()


def discover(
    root: Union[str, Path],
    options: Optional[DiscoveryOptions] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> Iterator[ClassifiedFile]:
    """
    Discovers and classifies the source files under ``root``.

    The root is validated and the rule store is built immediately, so a bad
    root raises ScanRootError at call time. Traversal and classification are
    lazy: the returned iterator yields ClassifiedFile entries in walk order.
    Non-fatal problems are collected in ``diagnostics``.
    """
    options = options or DiscoveryOptions()
    if diagnostics is None:
        diagnostics = Diagnostics()
    root_path = _validate_root(root)

    rule_store = RuleStore.build(
        root_path,
        options.extra_ignore_files,
        include_hidden=options.include_hidden,
        use_ignore_files=options.use_ignore_files,
        use_global_ignore=options.use_global_ignore,
        use_repo_exclude=options.use_repo_exclude,
        skip_lock_files=options.skip_lock_files,
        exclude_patterns=options.exclude_patterns,
        diagnostics=diagnostics,
    )
    excluded_paths = frozenset(Path(p).expanduser().resolve() for p in options.exclude_paths)
    log.info(
        "discovery_started",
        root=str(root_path),
        workers=options.workers,
        excluded_paths=len(excluded_paths),
    )
    return _discover(root_path, rule_store, options, excluded_paths, diagnostics)


def _file_entries(
    root: Path,
    rule_store: RuleStore,
    options: DiscoveryOptions,
    excluded_paths: FrozenSet[Path],
    diagnostics: Diagnostics,
) -> Iterator[WalkEntry]:
    for entry in walk(root, rule_store, diagnostics, follow_symlinks=options.follow_symlinks):
        if entry.is_dir:
            continue
        if excluded_paths and entry.path.resolve() in excluded_paths:
            log.debug("skipping_excluded_path", path=entry.relative_path)
            continue
        yield entry


def _classified_or_none(
    entry: WalkEntry, sample_size: int, diagnostics: Diagnostics
) -> Optional[ClassifiedFile]:
    try:
        return classify(entry, sample_size)
    except FileClassificationError as e:
        diagnostics.add(WarningKind.IO, entry.path, f"cannot read file: {e.reason}")
        return None


def _discover(
    root: Path,
    rule_store: RuleStore,
    options: DiscoveryOptions,
    excluded_paths: FrozenSet[Path],
    diagnostics: Diagnostics,
) -> Iterator[ClassifiedFile]:
    entries = _file_entries(root, rule_store, options, excluded_paths, diagnostics)
    yielded = 0

    if options.workers <= 1:
        for entry in entries:
            classified = _classified_or_none(entry, options.sample_size, diagnostics)
            if classified is not None:
                yielded += 1
                yield classified
    else:
        window = options.workers * IN_FLIGHT_PER_WORKER
        with ThreadPoolExecutor(max_workers=options.workers, thread_name_prefix="sourceweaver-classify") as pool:
            pending: Deque[Future] = collections.deque()
            for entry in entries:
                pending.append(pool.submit(classify, entry, options.sample_size))
                if len(pending) >= window:
                    classified = _collect(pending.popleft(), diagnostics)
                    if classified is not None:
                        yielded += 1
                        yield classified
            while pending:
                classified = _collect(pending.popleft(), diagnostics)
                if classified is not None:
                    yielded += 1
                    yield classified

    log.info("discovery_finished", root=str(root), files=yielded, warnings=len(diagnostics.entries))


def _collect(future: Future, diagnostics: Diagnostics) -> Optional[ClassifiedFile]:
    # results are taken in submission order, which is walk order.
    try:
        return future.result()
    except FileClassificationError as e:
        diagnostics.add(WarningKind.IO, e.path, f"cannot read file: {e.reason}")
        return None
