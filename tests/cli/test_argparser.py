"""Unit tests for the argument parser module in ctxtree CLI."""

import argparse
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ctxtree.cli.argparser import create_exclusion_action, create_parser, validate_args
from ctxtree.exclusion_rules.pattern_set import PatternSet
from ctxtree.types import Origin


@pytest.fixture
def mock_exclusion_rules():
    """Create a mock exclusion rules object."""
    mock_rules = MagicMock(spec=PatternSet)
    mock_rules.load_rules = MagicMock()
    mock_rules.add_rule = MagicMock()
    return mock_rules


@pytest.fixture
def temp_file(tmp_path):
    """Create an ignore file for testing."""
    path = tmp_path / "extra-ignore"
    path.write_text("*.tmp\n")
    return path


def test_create_exclusion_action():
    """Test creation of ExclusionRulesAction class."""
    ExclusionAction = create_exclusion_action(MagicMock())
    assert issubclass(ExclusionAction, argparse.Action)

    action = ExclusionAction(option_strings=["-e", "--exclude"], dest="exclude", help="test help")
    assert action.option_strings == ["-e", "--exclude"]
    assert action.dest == "exclude"
    assert action.help == "test help"


def test_exclusion_action_exclude_file(mock_exclusion_rules):
    """Test ExclusionRulesAction handling file-based exclusions."""
    action = create_exclusion_action(mock_exclusion_rules)(option_strings=["-e", "--exclude"], dest="exclude")
    namespace = argparse.Namespace()
    mock_file = Path("/path/to/.gitignore")

    action(None, namespace, mock_file, "-e")

    mock_exclusion_rules.load_rules.assert_called_once_with(mock_file)
    assert namespace.exclude == [mock_file]


def test_exclusion_action_ignore_pattern(mock_exclusion_rules):
    """Test ExclusionRulesAction handling pattern-based exclusions."""
    action = create_exclusion_action(mock_exclusion_rules)(option_strings=["-i", "--ignore"], dest="ignore")
    namespace = argparse.Namespace()

    action(None, namespace, "*.pyc", "-i")

    mock_exclusion_rules.add_rule.assert_called_once_with("*.pyc")
    assert namespace.ignore == ["*.pyc"]


def test_exclusion_action_append_to_existing(mock_exclusion_rules):
    """Test ExclusionRulesAction appending to existing lists."""
    action = create_exclusion_action(mock_exclusion_rules)(option_strings=["-e", "--exclude"], dest="exclude")
    namespace = argparse.Namespace(exclude=[Path("/existing/file")])

    action(None, namespace, Path("/path/to/.gitignore"), "-e")

    assert namespace.exclude == [Path("/existing/file"), Path("/path/to/.gitignore")]


def test_create_parser_defaults(mock_exclusion_rules, tmp_path):
    """Test parser creation and default values."""
    parser = create_parser(mock_exclusion_rules)
    args = parser.parse_args([str(tmp_path)])

    assert args.directories == [tmp_path]
    assert args.mode == "tree"
    assert args.max_depth == 10
    assert args.timeout == 30.0
    assert args.max_file_size == "10MiB"
    assert args.config is None
    assert args.ignore_path == []
    assert args.ignore_regex == []
    assert args.include_regex == []
    assert not args.no_defaults
    assert not args.sniff
    assert args.summary is None
    assert args.verbose == 0


def test_create_parser_with_all_options(mock_exclusion_rules, temp_file, tmp_path):
    """Test parser creation with all options specified."""
    parser = create_parser(mock_exclusion_rules)
    other = tmp_path / "other"
    args = parser.parse_args(
        [
            "-m",
            "files",
            "-e",
            str(temp_file),
            "-i",
            "*.pyc",
            "-c",
            str(temp_file),
            "-d",
            "3",
            "--timeout",
            "1.5",
            "-M",
            "2KiB",
            "--ignore-path",
            "vendor",
            "--ignore-regex",
            r"_test\.py$",
            "--include-regex",
            r"\.py$",
            "--include-regex",
            r"\.md$",
            "--no-defaults",
            "--sniff",
            "-s",
            "stderr",
            "-vv",
            str(tmp_path),
            str(other),
        ]
    )

    assert args.directories == [tmp_path, other]
    assert args.mode == "files"
    assert args.exclude == [temp_file]
    assert args.ignore == ["*.pyc"]
    assert args.config == temp_file
    assert args.max_depth == 3
    assert args.timeout == 1.5
    assert args.max_file_size == "2KiB"
    assert args.ignore_path == ["vendor"]
    assert args.ignore_regex == [r"_test\.py$"]
    assert args.include_regex == [r"\.py$", r"\.md$"]
    assert args.no_defaults
    assert args.sniff
    assert args.summary == "stderr"
    assert args.verbose == 2


def test_directory_is_required(mock_exclusion_rules):
    """Test that at least one directory is required."""
    parser = create_parser(mock_exclusion_rules)
    with pytest.raises(SystemExit) as excinfo:
        parser.parse_args([])
    assert excinfo.value.code == 2


def test_invalid_mode(mock_exclusion_rules, tmp_path):
    """Test that unknown modes are rejected."""
    parser = create_parser(mock_exclusion_rules)
    with pytest.raises(SystemExit):
        parser.parse_args(["-m", "xml", str(tmp_path)])


def make_args(**overrides):
    values = {
        "mode": "tree",
        "max_depth": 10,
        "timeout": 30.0,
        "max_file_size": "10MiB",
        "ignore_path": [],
        "ignore_regex": [],
        "include_regex": [],
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def test_validate_args_valid():
    """Test validate_args with valid arguments."""
    validate_args(make_args())
    validate_args(make_args(mode="files", include_regex=[r"\.py$"], max_depth=0, timeout=0))


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"max_depth": -1}, "-d/--max-depth cannot be negative"),
        ({"timeout": -0.5}, "--timeout cannot be negative"),
        ({"max_file_size": "huge"}, "Invalid size format 'huge'"),
        ({"ignore_regex": ["x"]}, "require -m files"),
        ({"mode": "strict-tree", "include_regex": ["x"]}, "require -m files"),
        ({"ignore_path": ["vendor"]}, "require -m files"),
    ],
)
def test_validate_args_invalid(overrides, message):
    """Test validate_args with invalid combinations."""
    with pytest.raises(ValueError) as excinfo:
        validate_args(make_args(**overrides))
    assert message in str(excinfo.value)


def test_parser_action_integration(tmp_path, temp_file):
    """Test integration between parser and actions with a real PatternSet."""
    rules = PatternSet(tmp_path)
    parser = create_parser(rules)

    args = parser.parse_args(["-e", str(temp_file), "-i", "*.pyc", "-i", "!keep.pyc", str(tmp_path)])

    assert args.exclude == [temp_file]
    assert args.ignore == ["*.pyc", "!keep.pyc"]
    assert [str(p) for p in rules.patterns(Origin.VCS_IGNORE)] == ["*.tmp"]
    assert [str(p) for p in rules.patterns(Origin.USER_CONFIG)] == ["*.pyc"]
    assert [str(p) for p in rules.negations(Origin.USER_CONFIG)] == ["!keep.pyc"]
    assert rules.exclude("module.pyc")
    assert not rules.exclude("keep.pyc")


def test_missing_exclude_file(tmp_path):
    """Test that a missing -e file surfaces from parsing."""
    parser = create_parser(PatternSet(tmp_path))
    with pytest.raises(FileNotFoundError):
        parser.parse_args(["-e", str(tmp_path / "missing"), str(tmp_path)])
