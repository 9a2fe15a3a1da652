"""
The main entry point for the kbdocx command-line application.
"""
import logging
import sys


def main():
    """Runs the CLI and turns unexpected failures into a non-zero exit code."""
    log = logging.getLogger("kbdocx")
    try:
        from .cli import run_cli
        sys.exit(run_cli())
    except Exception:
        log.exception("A critical error occurred while running the CLI.")
        sys.exit(1)


if __name__ == '__main__':
    main()
