# sourceweaver/__init__.py
"""Bundle a source tree into one Markdown document, respecting .gitignore."""

__version__ = "0.2.0"
