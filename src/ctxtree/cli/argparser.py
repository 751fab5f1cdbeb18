"""Command-line argument parsing for ctxtree.

This module defines the command-line interface for ctxtree,
handling argument parsing and validation.
"""

import argparse
import os
from pathlib import Path
from typing import Any, List, Optional, Sequence, Type, Union

from ctxtree import __version__
from ctxtree.exclusion_rules.base_rules import BaseExclusionRules
from ctxtree.file_system_tree.budget import DEFAULT_MAX_DEPTH, DEFAULT_TIMEOUT_MS, parse_file_size

MODES = ("tree", "strict-tree", "files")


def create_exclusion_action(exclusion_rules: BaseExclusionRules) -> Type[argparse.Action]:
    """Create a custom action class for handling exclusion rules.

    This factory function creates an action class that will update the provided
    exclusion rules object as arguments are processed. Rules from ``-e`` files are
    loaded as VCS-ignore rules, ``-i`` patterns as user rules.

    Args:
        exclusion_rules: The exclusion rules object to update during parsing.

    Returns:
        A custom action class for use with argparse.
    """

    class ExclusionRulesAction(argparse.Action):
        """Action to update exclusion rules as arguments are processed."""

        def __init__(self, option_strings: List[str], dest: str, **kwargs: Any) -> None:
            super().__init__(option_strings, dest, **kwargs)

        def __call__(
            self,
            parser: argparse.ArgumentParser,
            namespace: argparse.Namespace,
            values: Union[str, Sequence[Any], None],
            option_string: Optional[str] = None,
        ) -> None:
            if values is None:
                return

            if option_string in ("-e", "--exclude"):
                if isinstance(values, (str, os.PathLike)):
                    exclusion_rules.load_rules(values)
                else:
                    exclusion_rules.load_rules(Path(str(values)))
            else:  # -i/--ignore
                exclusion_rules.add_rule(str(values))

            # Keep the raw values on the namespace as well
            if getattr(namespace, self.dest, None) is None:
                setattr(namespace, self.dest, [])
            getattr(namespace, self.dest).append(values)

    return ExclusionRulesAction


def create_parser(exclusion_rules: BaseExclusionRules) -> argparse.ArgumentParser:
    """Create and configure the command-line argument parser.

    Args:
        exclusion_rules: The exclusion rules object to update during parsing.

    Returns:
        An ArgumentParser instance configured with ctxtree's options.
    """
    description = """
    ctxtree: Walk directories under depth, time and size limits and decide which
    paths belong in a directory tree or in an LLM context dump.

    Exclusions come from three layers:
    - built-in defaults (dependency, build and VCS directories, lock files, binaries)
    - the root's .gitignore and any -e files
    - the JSON pattern config (.aicontext/ignore.json) and any -i patterns

    Modes:
    - tree: draw the directory tree; images, audio and video are always shown
    - strict-tree: draw the directory tree with every ignore rule applied
    - files: list the files whose content may be used, one absolute path per line
    """

    epilog = """
    Examples:
      # Draw the tree of a project
      ctxtree /path/to/project

      # List files for a context dump, limited to Python sources
      ctxtree -m files --include-regex '\\.py$' /path/to/project

      # Extra patterns, from files and directly
      ctxtree -e .npmignore -i "*.md" -i "!README.md" /path/to/project

      # Use a specific pattern config
      ctxtree -c ~/ignore.json /path/to/project

      # Tighter limits
      ctxtree -d 3 --timeout 5 -M 512KiB /path/to/project

      # Print a report of everything that was skipped
      ctxtree -s stderr /path/to/project

      # Display version information and exit
      ctxtree -V
    """

    parser = argparse.ArgumentParser(
        prog="ctxtree",
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-V", "--version", action="version", version=f"ctxtree {__version__}", help="Show the version and exit"
    )

    ExclusionAction = create_exclusion_action(exclusion_rules)

    parser.add_argument(
        "directories",
        type=Path,
        nargs="+",
        metavar="DIRECTORY",
        help="One or more directories to walk.",
    )
    parser.add_argument(
        "-m",
        "--mode",
        choices=MODES,
        default="tree",
        help="What to produce (default: tree).",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        type=Path,
        metavar="FILE",
        action=ExclusionAction,
        help="Path to a .gitignore-style file whose rules are added (can be specified multiple times).",
    )
    parser.add_argument(
        "-i",
        "--ignore",
        type=str,
        metavar="PATTERN",
        action=ExclusionAction,
        help=(
            "Individual gitignore-style pattern to exclude files and directories, including negations "
            "(!important.txt). Can be specified multiple times."
        ),
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        metavar="CONFIG",
        help="JSON pattern config to use instead of .aicontext/ignore.json in the root or home directory.",
    )
    parser.add_argument(
        "-d",
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        metavar="DEPTH",
        help=f"Maximum directory depth to expand; 0 shows the root alone (default: {DEFAULT_MAX_DEPTH}).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT_MS / 1000,
        metavar="SECONDS",
        help=f"Stop entering directories after this many seconds (default: {DEFAULT_TIMEOUT_MS // 1000}).",
    )
    parser.add_argument(
        "-M",
        "--max-file-size",
        default="10MiB",
        metavar="SIZE",
        help="Skip files larger than SIZE, e.g. 500KB, 2MiB or 1048576 (default: 10MiB).",
    )
    parser.add_argument(
        "--ignore-path",
        action="append",
        default=[],
        metavar="S",
        help="Skip entries whose absolute path contains S (files mode; can be specified multiple times).",
    )
    parser.add_argument(
        "--ignore-regex",
        action="append",
        default=[],
        metavar="R",
        help="Skip entries whose absolute path matches regular expression R (files mode).",
    )
    parser.add_argument(
        "--include-regex",
        action="append",
        default=[],
        metavar="R",
        help="Only list files whose absolute path matches one of these regular expressions (files mode).",
    )
    parser.add_argument(
        "--no-defaults",
        action="store_true",
        help="Do not apply the built-in exclusion patterns.",
    )
    parser.add_argument(
        "--sniff",
        action="store_true",
        help="Sample files with unknown extensions and leave binary content out of files mode.",
    )
    parser.add_argument(
        "-s",
        "--summary",
        metavar="DEST",
        choices=["stderr", "stdout"],
        help="Print a report of skipped paths. Valid destinations: stderr, stdout",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr; repeat for debug output.",
    )

    return parser


def validate_args(args: argparse.Namespace) -> None:
    """Validate command-line arguments.

    Performs additional validation beyond what argparse can handle.

    Args:
        args: Parsed command-line arguments.

    Raises:
        ValueError: If any arguments fail validation.
    """
    if args.max_depth < 0:
        raise ValueError("-d/--max-depth cannot be negative")
    if args.timeout < 0:
        raise ValueError("--timeout cannot be negative")

    # Raises ValueError for unparseable sizes
    parse_file_size(args.max_file_size)

    if args.mode != "files" and (args.ignore_path or args.ignore_regex or args.include_regex):
        raise ValueError("--ignore-path, --ignore-regex and --include-regex require -m files")
