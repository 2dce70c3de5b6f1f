"""Argument parsing functionality for mvnresolve."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="mvnresolve",
        description="mvnresolve - Maven artifact coordinate resolver",
        add_help=True,
    )

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("--data-dir",
                        dest="DATA_DIR",
                        help="Directory holding the artifact cache and repository settings",
                        action="store",
                        type=str)
    parser.add_argument("-r", "--repository",
                        dest="REPOSITORIES",
                        help="Extra repository for this run (ID=URL format, can be used multiple times)",
                        action="append",
                        type=str,
                        default=[])

    subparsers = parser.add_subparsers(dest="COMMAND", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve a coordinate and print its descriptor as JSON")
    resolve.add_argument("COORDINATE", help="group:artifact[:classifier]:version")
    resolve.add_argument("-d", "--dependencies",
                         dest="DEPENDENCIES",
                         help="Include the effective dependency list",
                         action="store_true")

    versions = subparsers.add_parser("versions", help="List published versions of a coordinate")
    versions.add_argument("COORDINATE", help="group:artifact[:classifier]")
    versions.add_argument("-f", "--filter",
                          dest="FILTER",
                          help="Version range or {regex} limiting the listed versions",
                          action="store",
                          type=str)

    download = subparsers.add_parser("download", help="Download an artifact jar and print its local path")
    download.add_argument("COORDINATE", help="group:artifact[:classifier]:version")

    return parser.parse_args(argv)
