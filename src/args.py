"""Argument parsing functionality for coreshift."""

import argparse

from versioning.models import RequestedChange


def build_parser():
    """Builds the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="coreshift",
        description=(
            "coreshift - Change the Drupal core version of a Composer project"
        ),
        add_help=True,
    )

    parser.add_argument("version",
                        metavar="VERSION",
                        nargs="?",
                        help="Exact Drupal core version to move to, i.e: 10.2.3",
                        type=str)

    # Not exclusive with VERSION on purpose: the request is validated as a
    # whole so every combination gets the same error message.
    parser.add_argument("--latest-minor",
                        dest="LATEST_MINOR",
                        help="Move to the latest stable release of the current major version.",
                        action="store_true")
    parser.add_argument("--latest-major",
                        dest="LATEST_MAJOR",
                        help="Move to the latest stable release of the newest major version.",
                        action="store_true")
    parser.add_argument("--next-major",
                        dest="NEXT_MAJOR",
                        help="Move to the latest stable release of the next major version.",
                        action="store_true")
    parser.add_argument("-y", "--yes",
                        dest="ASSUME_YES",
                        help="Do not ask for confirmation before changing files.",
                        action="store_true")

    parser.add_argument("-d", "--working-dir",
                        dest="WORKING_DIR",
                        help="Project directory containing composer.json (default: current directory)",
                        action="store",
                        type=str,
                        default=".")
    parser.add_argument("--composer-bin",
                        dest="COMPOSER_BIN",
                        help="Composer executable, optionally with arguments (default: composer)",
                        action="store",
                        type=str)
    parser.add_argument("--packagist-url",
                        dest="PACKAGIST_URL",
                        help="Base URL of the Packagist metadata API",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a YAML configuration file",
                        action="store",
                        type=str)

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level (default: $CORESHIFT_LOG_LEVEL, else INFO)",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)


def requested_change(args) -> RequestedChange:
    """Collects the version selectors from parsed arguments."""
    return RequestedChange(
        version=args.version,
        latest_minor=args.LATEST_MINOR,
        latest_major=args.LATEST_MAJOR,
        next_major=args.NEXT_MAJOR,
        assume_yes=args.ASSUME_YES,
    )
