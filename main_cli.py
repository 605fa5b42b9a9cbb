#!/usr/bin/env python3
"""
BucketWatch - CLI Entry Point
"""

import argparse
import sys

from cli.app import run_cli
from core.config import REFRESH_INTERVALS, ConfigError, ConfigManager
from core.logging_setup import setup_logging
from core.models import DateFilter, SortBy
from core.projector import use_system_collation


FILTER_CHOICES = [f.value for f in DateFilter]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="BucketWatch - monitor JPEG images in an S3 bucket",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s list                         # All images, newest first
  %(prog)s list --filter today --sort name
  %(prog)s stats                        # Last hour / today / total counts
  %(prog)s download cam/0001.jpg -o ~/Pictures
  %(prog)s delete cam/0001.jpg
  %(prog)s purge --filter lastHour      # Delete every image from the last hour
  %(prog)s watch --interval 10          # Live view, refreshed every 10s

Storage is configured through AWS_REGION, AWS_ACCESS_KEY_ID,
AWS_SECRET_ACCESS_KEY and AWS_BUCKET_NAME (a .env file is also read).
        """
    )

    parser.add_argument(
        '-c', '--config',
        type=str,
        help='Path to the preferences YAML file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Also print log messages to the terminal'
    )

    parser.add_argument(
        '--version',
        action='version',
        version='%(prog)s 1.0.0'
    )

    sub = parser.add_subparsers(dest='command', required=True)

    list_parser = sub.add_parser('list', help='List images')
    list_parser.add_argument('--sort', choices=[s.value for s in SortBy], default=SortBy.NEWEST.value)
    list_parser.add_argument('--filter', choices=FILTER_CHOICES, default=DateFilter.ALL.value)

    sub.add_parser('stats', help='Show image counts')

    download_parser = sub.add_parser('download', help='Download one image')
    download_parser.add_argument('key', help='Object key or file name')
    download_parser.add_argument('-o', '--output', type=str, help='Destination directory')

    delete_parser = sub.add_parser('delete', help='Delete one image')
    delete_parser.add_argument('key', help='Object key or file name')
    delete_parser.add_argument('-y', '--yes', action='store_true', help='Do not ask for confirmation')

    purge_parser = sub.add_parser('purge', help='Delete all images in a time window')
    purge_parser.add_argument('--filter', choices=FILTER_CHOICES, default=DateFilter.ALL.value)
    purge_parser.add_argument('-y', '--yes', action='store_true', help='Do not ask for confirmation')

    watch_parser = sub.add_parser('watch', help='Live statistics, refreshed on an interval')
    watch_parser.add_argument(
        '--interval',
        type=int,
        choices=[i for i in REFRESH_INTERVALS if i > 0],
        default=30,
        help='Seconds between refreshes'
    )

    return parser


def main():
    args = build_parser().parse_args()

    try:
        config = ConfigManager(args.config)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.logging_level, config.get("log_dir", "~/.bucketwatch"), console=args.verbose)
    use_system_collation()

    try:
        run_cli(args, config)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.")
        sys.exit(130)


if __name__ == '__main__':
    main()
