# sourceweaver/main.py
"""Main entry point for the sourceweaver CLI application."""

from sourceweaver.cli.interface import main_cli


def entrypoint():
    """Function to be called by the script defined in pyproject.toml."""
    main_cli(prog_name="sourceweaver")

if __name__ == '__main__':
    entrypoint()
