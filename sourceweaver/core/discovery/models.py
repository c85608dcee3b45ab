# sourceweaver/core/discovery/models.py
"""
Value types shared by the ignore rule store, the walker, the classifier and
the pipeline, plus the diagnostics side channel.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional
import structlog

log = structlog.get_logger(__name__)


class RuleOrigin(Enum):
    # where an ignore pattern came from, lowest precedence first.
    BUILTIN = "builtin"
    GLOBAL = "global"
    REPO_EXCLUDE = "repo-exclude"
    DIRECTORY = "directory"
    OVERRIDE = "override"


class EntryKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


class ContentKind(Enum):
    TEXT = "text"
    BINARY = "binary"


class WarningKind(Enum):
    RULE_PARSE = "rule_parse"
    IO = "io"
    SYMLINK_CYCLE = "symlink_cycle"


@dataclass(frozen=True)
class IgnorePattern:
    """A single parsed ignore rule.

    ``pattern`` is the glob body with the negation marker, the trailing
    directory slash and any leading anchor slash removed.
    """
    pattern: str
    origin: RuleOrigin
    negated: bool = False
    directory_only: bool = False
    anchored: bool = False
    source: Optional[Path] = None
    line_number: int = 0

    def describe(self) -> str:
        text = ("!" if self.negated else "") + ("/" if self.anchored else "") + self.pattern
        if self.directory_only:
            text += "/"
        where = f"{self.source}:{self.line_number}" if self.source else self.origin.value
        return f"{text} ({where})"


@dataclass(frozen=True)
class IgnoreMatch:
    # the pattern that decided a path, and the base directory of its scope.
    pattern: IgnorePattern
    scope_base: Path

    @property
    def excluded(self) -> bool:
        return not self.pattern.negated


@dataclass(frozen=True)
class WalkEntry:
    path: Path  # absolute
    relative_path: str  # relative to the scan root, forward slashes
    kind: EntryKind
    is_dir: bool  # true for directories and symlinks resolving to one
    kept: bool = True
    decided_by: Optional[IgnoreMatch] = None

    @property
    def depth(self) -> int:
        return self.relative_path.count("/")


@dataclass(frozen=True)
class ClassifiedFile:
    """A kept file with its content kind and language tag.

    Content is not held in memory; ``read_bytes``/``read_text`` act as the
    content handle for the rendering layer.
    """
    entry: WalkEntry
    content_kind: ContentKind
    language: Optional[str] = None
    encoding: Optional[str] = None
    size: int = 0

    @property
    def path(self) -> Path:
        return self.entry.path

    @property
    def relative_path(self) -> str:
        return self.entry.relative_path

    @property
    def is_binary(self) -> bool:
        return self.content_kind is ContentKind.BINARY

    def read_bytes(self) -> bytes:
        return self.entry.path.read_bytes()

    def read_text(self) -> str:
        # lossy decode, mirroring how the bundle presents non-utf8 text.
        return self.read_bytes().decode(self.encoding or "utf-8", errors="replace")


@dataclass(frozen=True)
class Diagnostic:
    kind: WarningKind
    path: Optional[Path]
    message: str

    def __str__(self) -> str:
        location = f"{self.path}: " if self.path else ""
        return f"[{self.kind.value}] {location}{self.message}"


@dataclass
class Diagnostics:
    """Accumulates non-fatal warnings raised during discovery and rendering."""
    entries: List[Diagnostic] = field(default_factory=list)

    def add(self, kind: WarningKind, path: Optional[Path], message: str) -> Diagnostic:
        diagnostic = Diagnostic(kind=kind, path=path, message=message)
        self.entries.append(diagnostic)
        log.debug("discovery_warning", kind=kind.value, path=str(path) if path else None, message=message)
        return diagnostic

    def of_kind(self, kind: WarningKind) -> List[Diagnostic]:
        return [d for d in self.entries if d.kind is kind]

    @property
    def has_warnings(self) -> bool:
        return bool(self.entries)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.entries)
