"""Command-line interface for ctxtree.

This module provides the command-line interface for ctxtree. It walks one or more
directories and prints either their trees or the flat list of files whose content
may be used, optionally followed by a report of everything that was skipped.

Exit Codes:
    0: Successful completion
    1: Runtime error during execution, including roots that cannot be walked
    2: Command-line syntax error

Example:
    # Draw the tree of a directory
    $ ctxtree /path/to/dir

    # List the files of two projects for a context dump
    $ ctxtree -m files ~/project-a ~/project-b

    # Display version information
    $ ctxtree --version
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ctxtree.config import ChainedPatternSource, FilePatternSource, PatternSource, StaticPatternSource
from ctxtree.exceptions import ConfigError, RootPathError
from ctxtree.exclusion_rules.pattern_set import PatternSet
from ctxtree.file_system_tree import DirectoryWalker, SkipReport, TraversalBudget, render_tree
from ctxtree.types import Origin, Purpose

from .argparser import create_parser, validate_args

_PURPOSES = {
    "tree": Purpose.TREE,
    "strict-tree": Purpose.STRICT_TREE,
    "files": Purpose.CONTENT,
}


def setup_logging(verbosity: int) -> None:
    """Send log records to stderr; ``-v`` shows INFO and ``-vv`` DEBUG."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def format_report(report: SkipReport) -> str:
    """Format a skip report into a human-readable string.

    Args:
        report: Report of a walk.

    Returns:
        A count per skip reason followed by the affected paths.
    """
    lines = [
        f"Skipped: {report.total_skipped}",
        f"Too large: {len(report.large_files)}",
        f"Binary: {len(report.binary_files)}",
        f"Unreadable: {len(report.unreadable)}",
        f"Timed out: {len(report.timed_out)}",
        f"Symlink loops: {len(report.symlink_loops)}",
        f"Malformed patterns: {len(report.malformed_patterns)}",
    ]
    for reason, path in report.entries():
        lines.append(f"  [{reason.value}] {path}")
    return "\n".join(lines)


class PatternSourceFactory:
    """Builds the pattern source of one root: its files plus the command-line rules."""

    def __init__(self, cli_source: PatternSource, config_file: Optional[Path]) -> None:
        self.cli_source = cli_source
        self.config_file = config_file

    def __call__(self, root: Path) -> PatternSource:
        return ChainedPatternSource(FilePatternSource(root, config_file=self.config_file), self.cli_source)


def _rule_texts(rules: PatternSet, origin: Origin) -> List[str]:
    return [str(pattern) for pattern in rules.patterns(origin) + rules.negations(origin)]


def build_pattern_source(cli_rules: PatternSet, config_file: Optional[Path]) -> PatternSourceFactory:
    """Combine the command-line rules with the file-backed patterns of each root."""
    cli_source = StaticPatternSource(
        user_patterns=_rule_texts(cli_rules, Origin.USER_CONFIG),
        vcs_patterns=_rule_texts(cli_rules, Origin.VCS_IGNORE),
    )
    return PatternSourceFactory(cli_source, config_file)


def run(args: argparse.Namespace, cli_rules: PatternSet) -> List[str]:
    """Walk every requested directory and return the output lines.

    Raises:
        RootPathError: If a directory cannot be walked.
        ConfigError: If a pattern config is invalid.
    """
    budget = TraversalBudget.from_human(
        max_depth=args.max_depth,
        timeout=args.timeout,
        max_file_size=args.max_file_size,
    )
    walker = DirectoryWalker(
        pattern_source=build_pattern_source(cli_rules, args.config),
        include_defaults=not args.no_defaults,
        sniff_binary_content=args.sniff,
    )
    purpose = _PURPOSES[args.mode]

    if args.mode == "files":
        files, report = walker.find_files_in_roots(
            args.directories,
            budget,
            purpose,
            ignore_paths=args.ignore_path,
            ignore_patterns=args.ignore_regex,
            include_patterns=args.include_regex,
        )
        lines = list(files)
    else:
        trees, report = walker.build_trees(args.directories, budget, purpose)
        lines = [render_tree(tree) for tree in trees]

    if args.summary == "stdout":
        lines.append(format_report(report))
    elif args.summary == "stderr":
        print(format_report(report), file=sys.stderr)

    return lines


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the ctxtree command-line interface.

    Exit codes:
        0: Successful completion
        1: Runtime error during execution
        2: Command-line syntax error
    """
    # Collects -e and -i rules in command-line order during parsing
    cli_rules = PatternSet(Path.cwd())
    parser = create_parser(cli_rules)

    try:
        args = parser.parse_args(argv)
    except FileNotFoundError as e:
        # An -e file that does not exist
        parser.error(str(e))

    try:
        validate_args(args)
    except ValueError as e:
        parser.error(str(e))

    setup_logging(args.verbose)

    try:
        lines = run(args, cli_rules)
    except (RootPathError, ConfigError, FileNotFoundError, ValueError) as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        sys.exit(1)

    try:
        for line in lines:
            print(line)
        sys.stdout.flush()
    except BrokenPipeError:
        # The reader went away, e.g. when piping to `head`
        sys.exit(0)


if __name__ == "__main__":
    main()
