#!/usr/bin/env python3
"""Command-line interface for srcbundle.

This module wires configuration, logging and the bundler together:
- Argument parsing and validation
- Layered configuration (project file, environment, arguments)
- Optional marker-file pre-pass
- Zip artifact output

Example:
    >>> from srcbundle.cli import parse_arguments
    >>> args = parse_arguments(["/srv/app", "-o", "dist/app.zip", "--include", "lib/**"])
"""

import argparse
import dataclasses
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from srcbundle.artifact.sink import ZipArtifact
from srcbundle.bundler import BundleConfig, SourceBundler
from srcbundle.core.constants import SRCBUNDLE_VERSION, ConfigKey, TransformMethod
from srcbundle.core.errors import BundleError
from srcbundle.infrastructure.config_manager import ConfigManager, ConfigSource
from srcbundle.infrastructure.logger import Logger, set_global_logger
from srcbundle.traversal.filter_files import FilterFileScanner

DESCRIPTION = "srcbundle - select, transform and package project sources"
DEFAULT_CONFIG_FILE = "srcbundle.yaml"


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
        CLIError: If arguments are inconsistent with the filesystem
    """
    parser = argparse.ArgumentParser(
        prog="srcbundle",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Bundle lib/ into a zip
  srcbundle . -o dist/app.zip --include "lib/**" --exclude "**/*.test.js"

  # Use a project config file and compile + minify
  srcbundle . -o dist/app.zip --config srcbundle.yaml --method compile --minify

  # Honour .srcbundle-include / .srcbundle-ignore marker files
  srcbundle . -o dist/app.zip --filter-files
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {SRCBUNDLE_VERSION}",
    )

    parser.add_argument(
        "project_root",
        metavar="PROJECT_ROOT",
        type=str,
        help="Project root directory",
    )

    parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        type=str,
        required=True,
        help="Output zip archive path (required)",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        help=f"Configuration file (YAML); defaults to PROJECT_ROOT/{DEFAULT_CONFIG_FILE} if present",
    )

    # Selection options
    select_group = parser.add_argument_group("selection options")

    select_group.add_argument(
        "--include",
        metavar="GLOB",
        action="append",
        dest="includes",
        help="Include glob (can be specified multiple times)",
    )

    select_group.add_argument(
        "--exclude",
        metavar="GLOB",
        action="append",
        dest="excludes",
        help="Exclude glob (can be specified multiple times)",
    )

    select_group.add_argument(
        "--filter-files",
        action="store_true",
        default=None,
        help="Merge patterns from .srcbundle-include/.srcbundle-ignore files",
    )

    # Transform options
    transform_group = parser.add_argument_group("transform options")

    transform_group.add_argument(
        "--method",
        choices=[m.value for m in TransformMethod],
        help="Code transform stage",
    )

    transform_group.add_argument(
        "--minify",
        action="store_true",
        default=None,
        help="Run the minify stage",
    )

    transform_group.add_argument(
        "--no-compress",
        action="store_false",
        dest="compress",
        default=None,
        help="Store archive entries without compression",
    )

    # Logging options
    log_group = parser.add_argument_group("logging options")

    log_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also write logs to a rotating file",
    )

    parsed = parser.parse_args(args)

    _validate_arguments(parsed)

    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Raises:
        CLIError: If validation fails
    """
    root = Path(args.project_root)

    if not root.exists():
        raise CLIError(f"Project root does not exist: {args.project_root}")

    if not root.is_dir():
        raise CLIError(f"Project root is not a directory: {args.project_root}")

    output_dir = Path(args.output).expanduser().resolve().parent
    if not output_dir.is_dir():
        raise CLIError(f"Output directory does not exist: {output_dir}")

    if args.config:
        config_path = Path(args.config)

        if not config_path.exists():
            raise CLIError(f"Configuration file does not exist: {args.config}")

        if not config_path.is_file():
            raise CLIError(f"Configuration path is not a file: {args.config}")


def build_config_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Build the CLI configuration layer from parsed arguments.

    Only options that were given are set, so lower layers still apply.

    Args:
        args: Parsed arguments namespace

    Returns:
        ``srcbundle`` section overrides
    """
    config: Dict[str, Any] = {}

    if args.includes:
        config[ConfigKey.INCLUDES] = list(args.includes)
    if args.excludes:
        config[ConfigKey.EXCLUDES] = list(args.excludes)
    if args.method:
        config[ConfigKey.METHOD] = args.method
    if args.minify is not None:
        config[ConfigKey.MINIFY] = args.minify
    if args.compress is not None:
        config[ConfigKey.COMPRESS] = args.compress
    if args.filter_files is not None:
        config[ConfigKey.FILTER_FILES] = args.filter_files

    logging_config: Dict[str, Any] = {}
    if args.debug:
        logging_config["level"] = "DEBUG"
    if args.log_file:
        logging_config["file"] = args.log_file
    if logging_config:
        config[ConfigKey.LOGGING] = logging_config

    return config


def load_configuration(args: argparse.Namespace) -> ConfigManager:
    """
    Assemble the layered configuration for a CLI run.

    Raises:
        ConfigError: If the config file cannot be loaded
    """
    config_file = args.config
    if not config_file:
        candidate = Path(args.project_root) / DEFAULT_CONFIG_FILE
        if candidate.is_file():
            config_file = str(candidate)

    manager = ConfigManager(config_file)
    manager.load_dict(build_config_from_args(args), ConfigSource.CLI_ARGS)
    return manager


def setup_logging(section: Dict[str, Any]) -> Logger:
    """
    Create the process logger from the ``logging`` section.

    Args:
        section: Merged ``srcbundle`` configuration section

    Returns:
        Configured logger, also installed as the global logger
    """
    logging_config = section.get(ConfigKey.LOGGING) or {}

    logger = Logger("srcbundle", level=logging_config.get("level", "INFO"))

    log_file = logging_config.get("file")
    if log_file:
        logger.add_handler(logger.create_file_handler(log_file))

    set_global_logger(logger)
    return logger


def exclude_output(config: BundleConfig, output: str) -> BundleConfig:
    """Keep the archive being written out of its own contents."""
    output_path = Path(output).expanduser().resolve()
    try:
        relative = output_path.relative_to(config.project_root)
    except ValueError:
        return config

    pattern = re.compile("^" + re.escape(relative.as_posix()) + "$")
    return dataclasses.replace(config, excludes=config.excludes + (pattern,))


def run(args: argparse.Namespace) -> int:
    """
    Bundle according to parsed arguments.

    Returns:
        Exit code

    Raises:
        BundleError: On any bundling failure
    """
    manager = load_configuration(args)
    section = manager.get_section()
    logger = setup_logging(section)

    config = BundleConfig.from_dict(section, Path(args.project_root).resolve())

    if section.get(ConfigKey.FILTER_FILES):
        rules = FilterFileScanner(logger=logger).scan(config.project_root)
        config = config.with_filter_rules(rules)

    config = exclude_output(config, args.output)

    with ZipArtifact(args.output) as artifact:
        bundler = SourceBundler(artifact, logger=logger)
        bundler.bundle(config)

    stats = bundler.get_stats()
    logger.info("Wrote artifact", path=args.output, files=stats["files_included"])
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        0 on success, 1 on error, 130 when interrupted
    """
    try:
        args = parse_arguments(argv)
        return run(args)

    except (CLIError, BundleError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
