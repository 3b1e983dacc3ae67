"""Command-line entry point for the job application tracker."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout

from .board import render_board, render_contacts, render_stats
from .config import Config, config_path_from_env, load_config, reset_config, save_config
from .gmail_client import GmailSource
from .scanner import ScanCycle, ScanResult, now_ms, should_auto_scan
from .sheets import export_board
from .store import RecordStore

LOCK_FILE = Path("/tmp/careercrm_scan.lock")
LOG_DIR = Path(__file__).parent.parent / "logs"

logger = logging.getLogger(__name__)


def setup_logging(level_name: str = "INFO") -> None:
    """Configure logging for the application."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / "app.log"

    level = getattr(logging, level_name.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout),
        ],
    )


def configured_log_level(config_path: Path) -> str:
    """Log level from the config file, or INFO when it is missing or invalid."""
    try:
        return load_config(config_path).log_level
    except (FileNotFoundError, ValueError):
        return "INFO"


def export_quietly(store: RecordStore, config: Config) -> None:
    """Export the stored board, logging instead of raising on failure."""
    try:
        export_board(store.load(), config)
    except Exception as e:
        logger.error(f"Failed to export to spreadsheet: {e}")


def run_locked_scan(config: Config, store: RecordStore, source: GmailSource) -> Optional[ScanResult]:
    """Run one scan cycle while holding the cross-process lock.

    Returns None if another instance already holds the lock.
    """
    try:
        with FileLock(LOCK_FILE, timeout=10):
            logger.info("Acquired lock, starting scan")
            cycle = ScanCycle(config, source)
            result = cycle.sync(store)
    except Timeout:
        logger.warning("Could not acquire lock - another scan is running")
        return None

    if result.committed:
        export_quietly(store, config)
    return result


def cmd_setup(args: argparse.Namespace, config_path: Path) -> int:
    """Merge the given credentials into the stored configuration."""
    try:
        config = load_config(config_path)
    except FileNotFoundError:
        config = Config()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print(f"Fix or delete {config_path} and run setup again.", file=sys.stderr)
        return 1

    updates = {
        "gemini_api_key": args.gemini_api_key,
        "google_client_id": args.google_client_id,
        "google_client_secret": args.google_client_secret,
        "spreadsheet_id": args.spreadsheet_id,
    }
    config = config.model_copy(update={k: v for k, v in updates.items() if v is not None})
    save_config(config, config_path)
    print(f"Saved configuration to {config_path}")
    return 0


def cmd_scan(config: Config, store: RecordStore, auto: bool) -> int:
    """Run a scan, or with ``auto`` only when the last one is old enough."""
    source = GmailSource(config)

    if auto:
        source.authenticate()
        watermark = store.load_watermark()
        if not should_auto_scan(watermark, now_ms(), config.auto_scan_hours):
            logger.info(f"Last scan was less than {config.auto_scan_hours}h ago, skipping")
            return 0
        logger.info(f"Auto-scan triggered: last run was more than {config.auto_scan_hours}h ago")

    result = run_locked_scan(config, store, source)
    if result is None:
        return 0

    print(result.message)
    if not result.committed:
        return 1
    print(render_stats(result.records))
    return 0


def cmd_wipe(store: RecordStore, config_path: Path, confirmed: bool) -> int:
    """Delete records, the watermark and the config file."""
    if not confirmed:
        answer = input("Delete all local data? This cannot be undone. [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.")
            return 1

    store.wipe()
    reset_config(config_path)
    print("All local data has been deleted.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(description="Track job applications from your Gmail inbox")
    parser.add_argument("--db", type=Path, default=None, help="Path to the SQLite record store")
    sub = parser.add_subparsers(dest="command", required=True)

    setup = sub.add_parser("setup", help="Store API credentials")
    setup.add_argument("--gemini-api-key")
    setup.add_argument("--google-client-id")
    setup.add_argument("--google-client-secret")
    setup.add_argument("--spreadsheet-id")

    sub.add_parser("scan", help="Scan the inbox for new application updates")
    sub.add_parser("auto", help="Authenticate and scan if the last scan is older than the interval")
    sub.add_parser("board", help="Show applications grouped by status")
    sub.add_parser("contacts", help="List recruiter contacts")
    sub.add_parser("stats", help="Show application statistics")
    sub.add_parser("export", help="Export the board to Google Sheets")

    wipe = sub.add_parser("wipe", help="Delete all records, the sync watermark and credentials")
    wipe.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    config_path = config_path_from_env()

    if args.command == "setup":
        return cmd_setup(args, config_path)

    store = RecordStore(args.db)

    if args.command in ("board", "contacts", "stats", "wipe"):
        setup_logging(configured_log_level(config_path))

    if args.command == "board":
        print(render_board(store.load()), end="")
        return 0
    if args.command == "contacts":
        print(render_contacts(store.load()), end="")
        return 0
    if args.command == "stats":
        print(render_stats(store.load()))
        return 0
    if args.command == "wipe":
        return cmd_wipe(store, config_path, args.yes)

    try:
        config = load_config(config_path)
        setup_logging(config.log_level)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        if args.command == "export":
            if not export_board(store.load(), config):
                print("No spreadsheet_id configured.", file=sys.stderr)
                return 1
            return 0
        return cmd_scan(config, store, auto=args.command == "auto")

    except Exception as e:
        logger.exception(f"Command failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
