"""mvnresolve - Maven artifact coordinate resolver

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys

from args import parse_args
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes, load_config
from registry.maven import Coordinate, Registry, RepositoryConfig, RepositoryKind
from versioning import InvalidVersionExpression

logger = logging.getLogger(__name__)


def parse_repository_options(values):
    """Turn ``ID=URL`` options into repository configs.

    Raises:
        ValueError: an option is not in ``ID=URL`` form.
    """
    configs = []
    for index, value in enumerate(values):
        repo_id, sep, url = value.partition("=")
        if not sep or not repo_id.strip() or not url.strip():
            raise ValueError(f"Invalid repository option '{value}', expected ID=URL")
        configs.append(RepositoryConfig(repo_id.strip(), url.strip(), order=index + 1))
    return configs


def build_registry(args):
    """Create the Registry for this run from parsed arguments."""
    data_dir = args.DATA_DIR or Constants.DATA_DIR
    registry = Registry(data_dir=data_dir)
    extra = parse_repository_options(args.REPOSITORIES)
    if extra:
        existing = [r.to_config() for r in registry.repositories if r.kind is RepositoryKind.CUSTOM]
        registry.set_custom_repositories(existing + extra)
    return registry


def _print_json(data):
    print(json.dumps(data, indent=2))


def cmd_resolve(registry, coordinate, args):
    descriptor = registry.resolve(coordinate)
    if descriptor is None:
        logging.error("Artifact %s not found", coordinate)
        return ExitCodes.NOT_FOUND
    _print_json(descriptor.to_dict(include_dependencies=args.DEPENDENCIES))
    return ExitCodes.SUCCESS


def cmd_versions(registry, coordinate, args):
    versions = registry.list_versions(coordinate, args.FILTER)
    if not versions:
        logging.error("No versions of %s found", coordinate.id)
        return ExitCodes.NOT_FOUND
    _print_json(versions)
    return ExitCodes.SUCCESS


def cmd_download(registry, coordinate, args):  # pylint: disable=unused-argument
    path = registry.download(coordinate)
    if path is None:
        logging.error("Can't download %s", coordinate)
        return ExitCodes.CONNECTION_ERROR
    print(str(path))
    return ExitCodes.SUCCESS


COMMANDS = {
    "resolve": cmd_resolve,
    "versions": cmd_versions,
    "download": cmd_download,
}


def run(argv=None):
    """Run the CLI and return an ExitCodes member."""
    args = parse_args(argv)
    # Honor CLI --loglevel by passing it to centralized logger via env
    os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging(args.LOG_FILE)
    load_config(args.CONFIG)

    if is_debug_enabled(logger):
        logger.debug("CLI start", extra=extra_context(
            event="function_entry", component="cli", action=args.COMMAND))

    try:
        coordinate = Coordinate.parse(args.COORDINATE)
        registry = build_registry(args)
    except ValueError as exc:
        logging.error("%s", exc)
        return ExitCodes.INVALID_INPUT

    try:
        return COMMANDS[args.COMMAND](registry, coordinate, args)
    except InvalidVersionExpression as exc:
        logging.error("%s", exc)
        return ExitCodes.INVALID_INPUT
    except OSError as exc:
        logging.error("File error: %s", exc)
        return ExitCodes.FILE_ERROR


def main():
    """Main function of the program."""
    sys.exit(run().value)


if __name__ == "__main__":
    main()
