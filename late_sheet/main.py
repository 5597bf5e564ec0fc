from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from .config import load_config
from .google_sheets import GoogleSheetsClient
from .notifier import SmtpNotifier
from .runner import LateSheetRunner


def _load_env_files(config_path: Path) -> None:
    """Load environment variables from .env files."""

    # Load default .env in current working directory if present
    load_dotenv(override=False)

    # Load .env placed next to the config file if it exists
    config_env = config_path.parent / ".env"
    if config_env.exists():
        load_dotenv(dotenv_path=config_env, override=False)


LOGGER = logging.getLogger("late_sheet")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Email members added to the late sheet and mark their rows"
    )
    parser.add_argument("--config", required=True, help="Path to the YAML configuration file")
    parser.add_argument(
        "--now",
        action="store_true",
        help="Process immediately, even if the sheet was edited within the recency window",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log what would be sent and written without touching the sheet or sending mail",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config_path = Path(args.config).expanduser().resolve()
    _load_env_files(config_path)
    config = load_config(config_path)

    runner = LateSheetRunner(
        config,
        GoogleSheetsClient(config.sheets),
        SmtpNotifier(config.mail),
        dry_run=args.dry_run,
    )
    summary = runner.run_now() if args.now else runner.run_guarded()

    if not summary.ran:
        LOGGER.info("Run ended without processing: %s", summary.skipped_reason)
    return 0


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
