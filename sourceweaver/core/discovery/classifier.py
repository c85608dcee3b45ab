# sourceweaver/core/discovery/classifier.py
"""
Binary/text classification and language tagging for discovered files.

Binary detection is a best-effort heuristic over a bounded prefix of the
file, not a content-type detector:

1. a UTF-8, UTF-16 or UTF-32 byte order mark means text in that encoding;
2. otherwise any NUL byte in the sample means binary;
3. otherwise the sample is decoded as UTF-8 and the bytes that fail to
   decode, together with control characters other than common whitespace and
   escape, are counted. More than ``BINARY_THRESHOLD`` of the sample means
   binary.
"""
import codecs
from pathlib import Path
from typing import Dict, Optional, Tuple
import structlog

from sourceweaver.core.discovery.models import ClassifiedFile, ContentKind, WalkEntry
from sourceweaver.exceptions import FileClassificationError

log = structlog.get_logger(__name__)

DEFAULT_SAMPLE_SIZE = 8192
BINARY_THRESHOLD = 0.30

# longest boms first so utf-32-le is not mistaken for utf-16-le.
_BOMS: Tuple[Tuple[bytes, str], ...] = (
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)

_ALLOWED_CONTROL_CHARS = frozenset("\t\n\r\f\b\x1b")

EXTENSION_LANGUAGES: Dict[str, str] = {
    "rs": "rust",
    "py": "python", "pyw": "python", "pyi": "python",
    "js": "javascript", "mjs": "javascript", "cjs": "javascript", "jsx": "jsx",
    "ts": "typescript", "mts": "typescript", "cts": "typescript", "tsx": "tsx",
    "java": "java",
    "c": "c", "h": "c",
    "cpp": "cpp", "hpp": "cpp", "cxx": "cpp", "hxx": "cpp", "cc": "cpp", "hh": "cpp",
    "cs": "csharp",
    "go": "go",
    "php": "php",
    "rb": "ruby",
    "swift": "swift",
    "kt": "kotlin", "kts": "kotlin",
    "scala": "scala",
    "pl": "perl", "pm": "perl",
    "sh": "bash", "bash": "bash", "zsh": "bash",
    "fish": "fish",
    "ps1": "powershell",
    "html": "html", "htm": "html",
    "css": "css",
    "scss": "scss", "sass": "scss",
    "less": "less",
    "json": "json",
    "yaml": "yaml", "yml": "yaml",
    "toml": "toml",
    "ini": "ini", "cfg": "ini",
    "md": "markdown", "markdown": "markdown",
    "rst": "rst",
    "sql": "sql",
    "xml": "xml",
    "dockerfile": "dockerfile", "containerfile": "dockerfile",
    "nix": "nix",
    "lua": "lua",
    "r": "r",
    "dart": "dart",
    "ex": "elixir", "exs": "elixir",
    "erl": "erlang", "hrl": "erlang",
    "hs": "haskell",
    "clj": "clojure", "cljs": "clojure", "cljc": "clojure", "edn": "clojure",
    "groovy": "groovy", "gradle": "groovy",
    "tf": "terraform",
    "vue": "vue",
    "svelte": "svelte",
    "tex": "latex",
    "zig": "zig",
    "proto": "protobuf",
    "graphql": "graphql", "gql": "graphql",
    "mk": "makefile",
    "cmake": "cmake",
}

# conventional file names without a telling extension; checked before extensions.
FILENAME_LANGUAGES: Dict[str, str] = {
    "Dockerfile": "dockerfile",
    "Containerfile": "dockerfile",
    "Makefile": "makefile",
    "GNUmakefile": "makefile",
    "makefile": "makefile",
    "CMakeLists.txt": "cmake",
    "Jenkinsfile": "groovy",
    "Vagrantfile": "ruby",
    "Gemfile": "ruby",
    "Rakefile": "ruby",
    "Justfile": "just",
    "justfile": "just",
    "BUILD": "starlark",
    "BUILD.bazel": "starlark",
    "WORKSPACE": "starlark",
    "flake.nix": "nix",
}


def language_for(path: Path) -> Optional[str]:
    # provides a language tag for markdown code blocks; None when unknown.
    name = path.name
    if name in FILENAME_LANGUAGES:
        return FILENAME_LANGUAGES[name]
    if not path.suffix:
        return None
    return EXTENSION_LANGUAGES.get(path.suffix[1:].lower())


def detect_bom(sample: bytes) -> Optional[str]:
    for bom, encoding in _BOMS:
        if sample.startswith(bom):
            return encoding
    return None


def _suspicious_byte_count(sample: bytes) -> int:
    # final=False keeps a multi-byte sequence cut at the sample end from counting.
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    decoded = decoder.decode(sample, final=False)
    count = 0
    for char in decoded:
        if char == "\ufffd":
            count += 1
        elif char < " " and char not in _ALLOWED_CONTROL_CHARS:
            count += 1
        elif char == "\x7f":
            count += 1
    return count


def sniff_content(sample: bytes) -> Tuple[ContentKind, Optional[str]]:
    """Classifies a content sample, returning the kind and the text encoding."""
    if not sample:
        return ContentKind.TEXT, "utf-8"
    bom_encoding = detect_bom(sample)
    if bom_encoding is not None:
        return ContentKind.TEXT, bom_encoding
    if b"\x00" in sample:
        return ContentKind.BINARY, None
    if _suspicious_byte_count(sample) / len(sample) > BINARY_THRESHOLD:
        return ContentKind.BINARY, None
    return ContentKind.TEXT, "utf-8"


def classify(entry: WalkEntry, sample_size: int = DEFAULT_SAMPLE_SIZE) -> ClassifiedFile:
    """
    Reads a bounded prefix of ``entry`` and returns its ClassifiedFile.

    Raises FileClassificationError if the file cannot be read (permission
    denied, removed since it was discovered, ...).
    """
    try:
        with entry.path.open("rb") as f_obj:
            sample = f_obj.read(sample_size)
            size = entry.path.stat().st_size
    except OSError as e:
        raise FileClassificationError(entry.path, e.strerror or str(e)) from e

    content_kind, encoding = sniff_content(sample)
    language = language_for(entry.path) if content_kind is ContentKind.TEXT else None
    log.debug(
        "file_classified",
        path=entry.relative_path,
        kind=content_kind.value,
        language=language,
        encoding=encoding,
    )
    return ClassifiedFile(
        entry=entry,
        content_kind=content_kind,
        language=language,
        encoding=encoding,
        size=size,
    )
