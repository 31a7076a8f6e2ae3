#!/usr/bin/env python3
"""Portal token harvester.

Captures the access token the portal issues during login and writes it,
with a timestamp, to a Google Sheet. Two modes:

    python main.py --setup     # once: log in manually, save session cookies
    python main.py             # unattended: reuse cookies, harvest, publish
"""

import sys
import time
import argparse

from harvester.errors import ConfigurationError, HarvesterError
from harvester.utils.config import get_config
from harvester.utils.logger import setup_logging


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Harvest a fresh portal access token and publish it to Google Sheets"
    )
    parser.add_argument(
        "--setup",
        action="store_true",
        help="Open a browser for manual login and save the session (overrides SETUP_MODE env var)"
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run browser in headless mode"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (overrides LOG_LEVEL env var)"
    )
    parser.add_argument(
        "--env-file",
        type=str,
        help="Path to .env file (default: .env in project root)"
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    # Load configuration
    try:
        config = get_config(args.env_file)
        setup_mode = args.setup or config.setup_mode
        config.validate(setup_mode=setup_mode)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        print("\nPlease create a .env file based on .env.example")
        return 1

    log_level = args.log_level or config.log_level
    setup_logging(log_level=log_level, log_to_console=True, log_dir=config.log_dir)

    from harvester.runner import TokenHarvester, utc_timestamp

    if setup_mode:
        mode_label = "SETUP (manual login)"
    elif config.credential_mode:
        mode_label = "AUTO (credentials)"
    else:
        mode_label = "AUTO (saved session)"

    start_time = time.monotonic()
    print("=" * 60)
    print("Portal Token Harvester")
    print(f"Mode: {mode_label}")
    print(f"Timestamp: {utc_timestamp()}")
    print("=" * 60)
    print()

    harvester = TokenHarvester(config, headless=True if args.headless else None)

    try:
        if setup_mode:
            print("1. A browser window will open on the portal")
            print("2. Log in manually")
            print(f"3. Cookies are saved as soon as the login is detected (up to {config.setup_wait_seconds}s)")
            print()
            harvester.establish_session()
            print("✓ Setup complete, session saved to", config.session_file)
            print("You can now run in AUTO mode")
            return 0

        result = harvester.harvest()
    except HarvesterError as e:
        print("\n" + "=" * 60)
        print("✗ EXECUTION FAILED")
        print(f"Error: {e}")
        print("=" * 60)
        return 1
    except Exception as e:
        print(f"\n✗ Unexpected error: {e}")
        import traceback
        traceback.print_exc()
        return 1

    duration = time.monotonic() - start_time
    print("✓ Token harvested successfully")
    print(f"  Token length: {len(result.token)} characters")
    print(f"  Published to: {result.ack.updated_range} ({result.ack.updated_cells} cells)")
    print(f"  Timestamp: {result.timestamp}")
    print(f"  Duration: {duration:.2f} seconds")
    return 0


if __name__ == "__main__":
    sys.exit(main())
