#!/usr/bin/env python3
"""
BucketWatch - TUI Entry Point
"""

import sys

from core.config import ConfigError, ConfigManager, load_settings
from core.logging_setup import setup_logging
from core.projector import use_system_collation
from core.storage import S3Gateway
from tui.app import BucketWatchTUI


def main():
    """Run the TUI application."""
    try:
        config = ConfigManager()
        setup_logging(config.logging_level, config.get("log_dir", "~/.bucketwatch"))
        use_system_collation()
        gateway = S3Gateway.from_settings(load_settings())
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        sys.exit(1)

    app = BucketWatchTUI(config_manager=config, gateway=gateway)
    try:
        app.run()
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.")
        sys.exit(130)


if __name__ == '__main__':
    main()
