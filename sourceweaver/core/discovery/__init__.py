# sourceweaver/core/discovery/__init__.py
"""
Ignore-aware discovery and classification of source files.

``discover`` is the entry point: it walks a tree with git-compatible ignore
semantics and yields a ClassifiedFile (text with a language tag, or binary)
for every file that survives.
"""
from .classifier import classify, language_for
from .ignore_rules import RuleStore
from .models import (
    ClassifiedFile,
    ContentKind,
    Diagnostic,
    Diagnostics,
    EntryKind,
    IgnoreMatch,
    IgnorePattern,
    RuleOrigin,
    WalkEntry,
    WarningKind,
)
from .pipeline import discover
from .walker import walk

__all__ = [
    "discover",
    "walk",
    "classify",
    "language_for",
    "RuleStore",
    "ClassifiedFile",
    "ContentKind",
    "Diagnostic",
    "Diagnostics",
    "EntryKind",
    "IgnoreMatch",
    "IgnorePattern",
    "RuleOrigin",
    "WalkEntry",
    "WarningKind",
]
