# sourceweaver/core/output.py
"""handles writing the bundle to stdout, a file, or the clipboard."""
import sys
from pathlib import Path
from typing import TextIO
import pyperclip  # type: ignore
import structlog
from sourceweaver.exceptions import OutputError

log = structlog.get_logger(__name__)


def write_to_stdout(text_content: str):
    # writes text to standard output.
    try:
        sys.stdout.write(text_content)
        sys.stdout.flush()
    except UnicodeEncodeError as e:
        log.warning("stdout_write_failed_trying_binary_fallback", error=str(e))
        sys.stdout.buffer.write(text_content.encode("utf-8", errors="replace"))
        sys.stdout.buffer.flush()


def open_output_file(output_file_path: Path) -> TextIO:
    """Opens ``output_file_path`` for writing, creating missing parent directories."""
    log.info("opening_output_file", path=str(output_file_path))
    try:
        output_file_path.parent.mkdir(parents=True, exist_ok=True)
        return output_file_path.open("w", encoding="utf-8", newline="\n")
    except OSError as e:
        raise OutputError(f"failed to open output file '{output_file_path}': {e}") from e


def copy_to_clipboard(text_content: str) -> bool:
    """
    copies text to the system clipboard using pyperclip.
    returns true if successful, false otherwise (no clipboard mechanism, ...).
    """
    log.info("attempting_to_copy_output_to_clipboard", chars=len(text_content))
    try:
        pyperclip.copy(text_content)
    except pyperclip.PyperclipException as e:
        log.warning("clipboard_copy_failed", error=str(e))
        return False
    log.info("successfully_copied_to_clipboard")
    return True
