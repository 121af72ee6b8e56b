"""Command line entry point: clone the source, run the pipeline, map the outcome to an exit code."""

import argparse
import logging
import shutil
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import Config, load_configuration, load_prefixer_settings, load_source_settings, validate_configuration
from .errors import error_handler
from .git_sync import clone_source
from .pipeline import PrefixBuild, Stage
from .platform import make_temp_path

EXIT_OK = 0
EXIT_ALREADY_PREFIXED = 1
EXIT_FAILURE = 2


def setup_logging(config: Config) -> None:
    """Setup logging configuration with structured logging."""
    class StructuredFormatter(logging.Formatter):
        def format(self, record):
            # Add structured data if available
            if hasattr(record, 'operation'):
                record.msg = f"[{record.operation}] {record.msg}"
            return super().format(record)

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    formatter = StructuredFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    logger = logging.getLogger('php_prefixer_build')
    logger.setLevel(getattr(logging, config.log_level))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="php-prefixer-build",
        description="Prefix a PHP project with PHP-Prefixer and publish it to the prefixed branch/tag lineage.",
    )
    parser.add_argument("--ref", default=None, help="Branch, tag or tag pattern to prefix (default: the default branch)")
    parser.add_argument("--repository", default=None, help="Source repository as owner/name")
    parser.add_argument("--repository-url", default=None, help="Source clone URL or local path")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def run(args: argparse.Namespace, config: Config) -> int:
    """Run one invocation; source and target temp directories are always removed."""
    logger = logging.getLogger('php_prefixer_build.cli')
    source_dir: Optional[Path] = None
    build: Optional[PrefixBuild] = None
    context = {}

    try:
        prefixer = load_prefixer_settings()

        source_dir = make_temp_path(config.work_dir)
        source = load_source_settings(source_dir, args.ref)
        if args.repository:
            source = replace(source, repository=args.repository)
        if args.repository_url:
            source = replace(source, repository_url=args.repository_url)
        context['repository'] = source.redacted_url()
        context['ref'] = source.ref

        clone_source(source, source_dir)

        build = PrefixBuild.create(source, prefixer, config)
        context['target_branch'] = build.references.target_branch
        if build.references.tagged:
            context['target_tag'] = build.references.target_tag

        outcome = build.run()
        if outcome == Stage.SKIPPED:
            return EXIT_ALREADY_PREFIXED
        return EXIT_OK

    except Exception as e:
        response = error_handler.handle_error(e, context)
        logger.debug(f"Error response: {response.to_dict()}")
        return EXIT_FAILURE

    finally:
        if build is not None:
            build.cleanup()
        if source_dir is not None and source_dir.exists():
            shutil.rmtree(source_dir, ignore_errors=True)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the php-prefixer-build command."""
    args = build_parser().parse_args(argv)

    try:
        config = load_configuration()
        if args.log_level:
            config = replace(config, log_level=args.log_level)
    except ValueError as e:
        print(f"php-prefixer-build: {e}", file=sys.stderr)
        return EXIT_FAILURE

    setup_logging(config)
    logger = logging.getLogger('php_prefixer_build.cli')

    issues = validate_configuration(config)
    for issue in issues:
        if issue.startswith("ERROR"):
            logger.error(issue)
        else:
            logger.warning(issue)
    if any(issue.startswith("ERROR") for issue in issues):
        return EXIT_FAILURE

    return run(args, config)


if __name__ == "__main__":
    sys.exit(main())
