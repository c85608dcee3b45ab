# sourceweaver/core/discovery/ignore_rules.py
"""
Layered, git-compatible ignore rules.

A RuleStore is an immutable stack of RuleScopes. Each scope holds the
patterns of one source (builtin defaults, the global ignore file, the
repository exclude file, the ignore files of one directory, command-line
overrides) together with the directory its patterns are relative to.
Descending into a directory returns a new store with that directory's
scope appended; the parent store is left untouched.

Resolution is "last matching pattern wins" over all scopes in precedence
order, so negations re-include paths matched by earlier rules.
"""
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union
import pathspec
import structlog

from sourceweaver.core.discovery.git_paths import find_global_ignore_file, find_repository
from sourceweaver.core.discovery.models import (
    Diagnostics,
    IgnoreMatch,
    IgnorePattern,
    RuleOrigin,
    WarningKind,
)

log = structlog.get_logger(__name__)

# per-directory ignore files, lowest precedence first.
IGNORE_FILE_NAMES: Tuple[str, ...] = (".gitignore", ".ignore")

HIDDEN_PATTERN = ".*"
# matches the metadata directory and the gitdir pointer file of worktrees and submodules.
VCS_METADATA_PATTERN = ".git"
LOCK_FILES: Tuple[str, ...] = (
    "Cargo.lock",
    "package-lock.json",
    "yarn.lock",
    "poetry.lock",
    "Gemfile.lock",
    "composer.lock",
    "Pipfile.lock",
    "go.sum",
    "flake.lock",
)


class RuleSyntaxError(ValueError):
    # a single ignore line that cannot be turned into a pattern.
    pass


def _compile_glob(glob_text: str) -> pathspec.PathSpec:
    try:
        return pathspec.PathSpec.from_lines("gitignore", [glob_text])
    except ValueError as e:
        raise RuleSyntaxError(f"invalid glob '{glob_text}': {e}") from e


def _escape_segment(segment: str) -> str:
    # a segment compiled on its own must not be read as a comment or negation.
    if segment.startswith(("!", "#")):
        return "\\" + segment
    return segment


@dataclass(frozen=True)
class CompiledRule:
    """An IgnorePattern plus the pathspec matchers that test it.

    Unanchored patterns are tested against the basename only. Anchored
    patterns are tested against the full path relative to the scope base;
    pathspec also matches descendants of a matching path, so the match is
    narrowed to the path itself by checking the segment count (patterns
    without ``**``) or by requiring the whole path to match the compiled
    regex (patterns with ``**``). A trailing ``**`` keeps descendants.
    """
    pattern: IgnorePattern
    name_spec: Optional[pathspec.PathSpec] = field(compare=False, default=None)
    full_spec: Optional[pathspec.PathSpec] = field(compare=False, default=None)
    segment_count: Optional[int] = None

    @classmethod
    def compile(cls, pattern: IgnorePattern) -> "CompiledRule":
        if not pattern.anchored:
            return cls(pattern=pattern, name_spec=_compile_glob(_escape_segment(pattern.pattern)))

        segments = pattern.pattern.split("/")
        last_segment = segments[-1]
        name_spec = None if last_segment == "**" else _compile_glob(_escape_segment(last_segment))
        full_spec = _compile_glob("/" + pattern.pattern)
        has_globstar = any("**" in seg for seg in segments)
        return cls(
            pattern=pattern,
            name_spec=name_spec,
            full_spec=full_spec,
            segment_count=None if has_globstar else len(segments),
        )

    def matches(self, relative_path: str, is_dir: bool) -> bool:
        if self.pattern.directory_only and not is_dir:
            return False
        basename = relative_path.rsplit("/", 1)[-1]
        if not self.pattern.anchored:
            return self.name_spec is not None and self.name_spec.match_file(basename)

        if self.segment_count is not None:
            if relative_path.count("/") + 1 != self.segment_count:
                return False
            return self.full_spec.match_file(relative_path)

        if self.name_spec is None:
            return self.full_spec.match_file(relative_path)
        return any(
            p.regex is not None and p.regex.fullmatch(relative_path) is not None
            for p in self.full_spec.patterns
        )


def _trim_trailing_spaces(text: str) -> str:
    # git strips trailing spaces unless escaped with a backslash.
    while text.endswith(" ") and not text.endswith("\\ "):
        text = text[:-1]
    return text


def parse_ignore_line(
    line: str,
    origin: RuleOrigin,
    source: Optional[Path] = None,
    line_number: int = 0,
) -> Optional[IgnorePattern]:
    """
    Parses one ignore-file line. Returns None for blank lines and comments and
    raises RuleSyntaxError for lines that cannot form a pattern.
    """
    text = _trim_trailing_spaces(line.rstrip("\r\n"))
    if not text.strip() or text.startswith("#"):
        return None

    negated = text.startswith("!")
    if negated:
        text = text[1:]

    directory_only = text.endswith("/")
    if directory_only:
        text = text.rstrip("/")

    leading_slash = text.startswith("/")
    if leading_slash:
        text = text.lstrip("/")
    anchored = leading_slash or "/" in text

    # "**/name" is the same as a bare "name".
    if not leading_slash and text.startswith("**/") and "/" not in text[3:]:
        text = text[3:]
        anchored = False

    if not text:
        raise RuleSyntaxError(f"pattern is empty after removing markers: {line.strip()!r}")

    return IgnorePattern(
        pattern=text,
        origin=origin,
        negated=negated,
        directory_only=directory_only,
        anchored=anchored,
        source=source,
        line_number=line_number,
    )


def compile_lines(
    lines: Iterable[str],
    origin: RuleOrigin,
    source: Optional[Path] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> Tuple[CompiledRule, ...]:
    # compiles ignore lines, skipping (and reporting) malformed ones.
    rules: List[CompiledRule] = []
    for line_number, line in enumerate(lines, start=1):
        try:
            pattern = parse_ignore_line(line, origin, source, line_number)
            if pattern is None:
                continue
            rules.append(CompiledRule.compile(pattern))
        except RuleSyntaxError as e:
            where = f"line {line_number}"
            if diagnostics is not None:
                diagnostics.add(WarningKind.RULE_PARSE, source, f"{where}: {e}")
            else:
                log.warning("ignore_line_skipped", path=str(source) if source else None, line=line_number, error=str(e))
    return tuple(rules)


def load_ignore_file(
    ignore_file: Path,
    origin: RuleOrigin,
    diagnostics: Optional[Diagnostics] = None,
    missing_ok: bool = True,
) -> Tuple[CompiledRule, ...]:
    """Reads and compiles an ignore file. Unreadable files yield no rules."""
    try:
        with ignore_file.open("r", encoding="utf-8", errors="ignore") as f_obj:
            lines = f_obj.readlines()
    except (FileNotFoundError, NotADirectoryError, IsADirectoryError) as e:
        if not missing_ok and diagnostics is not None:
            diagnostics.add(WarningKind.IO, ignore_file, f"ignore file not readable: {e.strerror or e}")
        return ()
    except OSError as e:
        if diagnostics is not None:
            diagnostics.add(WarningKind.IO, ignore_file, f"ignore file not readable: {e.strerror or e}")
        else:
            log.warning("ignore_file_unreadable", path=str(ignore_file), error=str(e))
        return ()

    rules = compile_lines(lines, origin, ignore_file, diagnostics)
    log.debug("loaded_ignore_file", path=str(ignore_file), origin=origin.value, rules=len(rules))
    return rules


@dataclass(frozen=True)
class RuleScope:
    # the patterns of one source, relative to ``base``, in file order.
    base: Path
    origin: RuleOrigin
    rules: Tuple[CompiledRule, ...] = ()

    def match(self, path: Path, is_dir: bool) -> Optional[IgnoreMatch]:
        try:
            relative_path = path.relative_to(self.base).as_posix()
        except ValueError:
            return None
        if relative_path in ("", "."):
            return None
        for rule in reversed(self.rules):
            if rule.matches(relative_path, is_dir):
                return IgnoreMatch(pattern=rule.pattern, scope_base=self.base)
        return None


PathLike = Union[str, Path]


@dataclass(frozen=True)
class RuleStore:
    """
    Immutable, precedence-ordered set of ignore scopes for one scan.

    ``lower`` holds builtin, global and repository-exclude scopes,
    ``directory`` the per-directory scopes from the outermost directory down
    to the current one, and ``upper`` the command-line overrides.
    """
    root: Path
    lower: Tuple[RuleScope, ...] = ()
    directory: Tuple[RuleScope, ...] = ()
    upper: Tuple[RuleScope, ...] = ()
    read_ignore_files: bool = True

    @classmethod
    def build(
        cls,
        root: PathLike,
        extra_global_files: Sequence[PathLike] = (),
        *,
        include_hidden: bool = False,
        use_ignore_files: bool = True,
        use_global_ignore: bool = True,
        use_repo_exclude: bool = True,
        skip_lock_files: bool = True,
        exclude_patterns: Sequence[str] = (),
        diagnostics: Optional[Diagnostics] = None,
    ) -> "RuleStore":
        """
        Builds the store for a scan of ``root``: builtin defaults, the global
        ignore file and ``extra_global_files``, the repository exclude file,
        and the ignore files of directories between the repository work tree
        and ``root``. The scope of ``root`` itself is added by ``descend``.
        """
        root_path = Path(root).resolve()
        repository = find_repository(root_path)
        pattern_base = repository.work_tree if repository else root_path

        builtin_lines: List[str] = []
        if not include_hidden:
            builtin_lines.append(HIDDEN_PATTERN)
        builtin_lines.append(VCS_METADATA_PATTERN)
        if skip_lock_files:
            builtin_lines.extend(LOCK_FILES)
        lower: List[RuleScope] = [
            RuleScope(root_path, RuleOrigin.BUILTIN, compile_lines(builtin_lines, RuleOrigin.BUILTIN))
        ]
        directory: List[RuleScope] = []

        if use_ignore_files:
            if use_global_ignore:
                global_file = find_global_ignore_file(root_path)
                if global_file is not None:
                    rules = load_ignore_file(global_file, RuleOrigin.GLOBAL, diagnostics)
                    if rules:
                        lower.append(RuleScope(pattern_base, RuleOrigin.GLOBAL, rules))

            # a missing extra file is reported, unlike a missing global one.
            for extra_file in extra_global_files:
                rules = load_ignore_file(Path(extra_file).expanduser(), RuleOrigin.GLOBAL, diagnostics, missing_ok=False)
                if rules:
                    lower.append(RuleScope(pattern_base, RuleOrigin.GLOBAL, rules))

            if use_repo_exclude and repository is not None:
                rules = load_ignore_file(repository.exclude_file, RuleOrigin.REPO_EXCLUDE, diagnostics)
                if rules:
                    lower.append(RuleScope(pattern_base, RuleOrigin.REPO_EXCLUDE, rules))

            if repository is not None and repository.work_tree != root_path:
                ancestors = [repository.work_tree]
                for part in root_path.relative_to(repository.work_tree).parts[:-1]:
                    ancestors.append(ancestors[-1] / part)
                for ancestor in ancestors:
                    scope = _load_directory_scope(ancestor, diagnostics)
                    if scope is not None:
                        directory.append(scope)

        upper: List[RuleScope] = []
        if exclude_patterns:
            rules = compile_lines(exclude_patterns, RuleOrigin.OVERRIDE, None, diagnostics)
            if rules:
                upper.append(RuleScope(root_path, RuleOrigin.OVERRIDE, rules))

        store = cls(
            root=root_path,
            lower=tuple(lower),
            directory=tuple(directory),
            upper=tuple(upper),
            read_ignore_files=use_ignore_files,
        )
        log.info(
            "rule_store_built",
            root=str(root_path),
            repository=str(repository.work_tree) if repository else None,
            scopes=len(store.scopes),
            rules=sum(len(s.rules) for s in store.scopes),
        )
        return store

    @property
    def scopes(self) -> Tuple[RuleScope, ...]:
        # all scopes, lowest precedence first.
        return self.lower + self.directory + self.upper

    def descend(self, directory: PathLike, diagnostics: Optional[Diagnostics] = None) -> "RuleStore":
        """Returns a store that also applies the ignore files found in ``directory``."""
        if not self.read_ignore_files:
            return self
        scope = _load_directory_scope(self._absolute(directory), diagnostics)
        if scope is None:
            return self
        return replace(self, directory=self.directory + (scope,))

    def descend_to(self, path: PathLike, diagnostics: Optional[Diagnostics] = None) -> "RuleStore":
        # descends through every directory from the root down to the parent of ``path``.
        absolute = self._absolute(path)
        try:
            parts = absolute.relative_to(self.root).parts
        except ValueError:
            return self
        store = self.descend(self.root, diagnostics)
        current = self.root
        for part in parts[:-1]:
            current = current / part
            store = store.descend(current, diagnostics)
        return store

    def match(self, path: PathLike, is_dir: bool) -> Optional[IgnoreMatch]:
        """Returns the pattern that decides ``path``, or None when no pattern matches."""
        absolute = self._absolute(path)
        for scope in reversed(self.scopes):
            found = scope.match(absolute, is_dir)
            if found is not None:
                return found
        return None

    def is_excluded(self, path: PathLike, is_dir: bool) -> bool:
        found = self.match(path, is_dir)
        return found is not None and found.excluded

    def _absolute(self, path: PathLike) -> Path:
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.root / candidate


def _load_directory_scope(directory: Path, diagnostics: Optional[Diagnostics]) -> Optional[RuleScope]:
    rules: Tuple[CompiledRule, ...] = ()
    for name in IGNORE_FILE_NAMES:
        rules += load_ignore_file(directory / name, RuleOrigin.DIRECTORY, diagnostics)
    if not rules:
        return None
    return RuleScope(directory, RuleOrigin.DIRECTORY, rules)
