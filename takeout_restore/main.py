import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import config
from .core import TakeoutRestoreApp

PROMPT = "Please enter takeout directory path (full path):"
INVALID_DIR_MESSAGE = "This directory does not exist."
DONE_MESSAGE = "Processing finished. Press enter to close."


def setup_logging(root: Path, verbose: bool = False):
    """Sets up logging to both console and a file inside the processed root."""
    log_level = logging.DEBUG if verbose else logging.INFO
    log_file = root / config.LOG_FILENAME

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    file_error = None
    try:
        handlers.insert(0, logging.FileHandler(log_file, encoding='utf-8'))
    except OSError as e:
        file_error = e

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )

    # Silence chatty libraries
    logging.getLogger("PIL").setLevel(logging.WARNING)

    if file_error is not None:
        logging.warning(f"Cannot write {log_file}, logging to console only: {file_error}")


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(
        description="Takeout Restore: write capture dates from JSON sidecars back onto photos and videos"
    )
    p.add_argument("root", nargs="?", default=None,
                   help="Takeout directory to process (prompted for when omitted)")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def resolve_root(raw: Optional[str]) -> Optional[Path]:
    """Cleans a typed/pasted path; None if it is not an existing directory."""
    if raw is None:
        return None
    # "Copy as path" on Windows wraps the path in quotes
    cleaned = raw.strip().strip('"').strip("'")
    if not cleaned:
        return None
    root = Path(cleaned).expanduser()
    if not root.is_dir():
        return None
    return root.resolve()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    raw = args.root
    if raw is None:
        print(PROMPT)
        try:
            raw = input()
        except EOFError:
            raw = None

    root = resolve_root(raw)
    if root is None:
        print(INVALID_DIR_MESSAGE)
        return 1

    setup_logging(root, args.verbose)
    logging.info("=== Takeout Restore Started ===")
    logging.info(f"Root: {root}")

    app = TakeoutRestoreApp()
    try:
        app.run(root)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return 1
    except Exception:
        logging.exception("Fatal error during processing.")
        return 1

    print(DONE_MESSAGE)
    try:
        input()
    except EOFError:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
