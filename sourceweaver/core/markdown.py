# sourceweaver/core/markdown.py
"""Renders classified files as one Markdown document."""
from dataclasses import dataclass
from typing import Iterable, List, Optional, TextIO, Tuple
import structlog

from sourceweaver.core.discovery.models import ClassifiedFile, Diagnostics, WarningKind

log = structlog.get_logger(__name__)

BINARY_PLACEHOLDER = "(Binary file, content omitted)"


@dataclass
class BundleStats:
    text_files: int = 0
    binary_files: int = 0
    failed_files: int = 0

    @property
    def total(self) -> int:
        return self.text_files + self.binary_files + self.failed_files


def fence_for(content: str) -> str:
    # a fence longer than any backtick run in the content.
    fence = "```"
    while fence in content:
        fence += "`"
    return fence


def _split_lines(content: str) -> List[str]:
    # only "\n" ends a line, with one "\r" before it dropped; other separators stay in the text.
    if not content:
        return []
    pieces = content.split("\n")
    if content.endswith("\n"):
        pieces.pop()
    return [piece[:-1] if piece.endswith("\r") else piece for piece in pieces]


def format_code_block(content: str, language: Optional[str] = None) -> str:
    """Wraps ``content`` in a fenced block; the fence grows past any fence inside it."""
    lines = _split_lines(content)
    body = "\n".join(lines)
    fence = fence_for(body)
    if lines:
        return f"{fence}{language or ''}\n{body}\n{fence}\n"
    return f"{fence}{language or ''}\n{fence}\n"


def format_file_section(relative_path: str, block: str) -> str:
    return f"\n## `{relative_path}`\n\n{block}"


def render_file(classified: ClassifiedFile, diagnostics: Optional[Diagnostics] = None) -> Tuple[str, bool]:
    """
    Renders one file section and reports whether the file could be read.
    Binary files get a placeholder block; a file that cannot be read at render
    time gets an error block and, when a diagnostics sink is given, an IO
    diagnostic.
    """
    if classified.is_binary:
        return format_file_section(classified.relative_path, format_code_block(BINARY_PLACEHOLDER)), True
    try:
        content = classified.read_text()
    except OSError as e:
        reason = e.strerror or str(e)
        if diagnostics is not None:
            diagnostics.add(WarningKind.IO, classified.path, f"cannot read file while rendering: {reason}")
        else:
            log.warning("file_unreadable_at_render", path=classified.relative_path, error=reason)
        return format_file_section(classified.relative_path, format_code_block(f"(Error reading file: {reason})")), False
    return format_file_section(classified.relative_path, format_code_block(content, classified.language)), True


def render_bundle(
    files: Iterable[ClassifiedFile],
    writer: TextIO,
    diagnostics: Optional[Diagnostics] = None,
) -> BundleStats:
    """Streams a section per file to ``writer`` and returns what was written."""
    stats = BundleStats()
    for classified in files:
        section, readable = render_file(classified, diagnostics)
        writer.write(section)
        if not readable:
            stats.failed_files += 1
        elif classified.is_binary:
            stats.binary_files += 1
        else:
            stats.text_files += 1
    log.info(
        "bundle_rendered",
        text_files=stats.text_files,
        binary_files=stats.binary_files,
        failed_files=stats.failed_files,
    )
    return stats
