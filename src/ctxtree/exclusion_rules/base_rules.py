from abc import ABC, abstractmethod
from typing import Sequence, Union

from ctxtree.types import PathType


class BaseExclusionRules(ABC):
    """
    Abstract base class defining the interface for path exclusion rules.

    This class serves as a contract for rule collections that decide whether a path
    should be left out of a walk. All implementations must provide ``exclude``.
    Loading rules from files and adding individual rules are optional capabilities
    that depend on the rule type.

    Example:
        >>> from ctxtree.exclusion_rules.pattern_set import PatternSet
        >>> rules = PatternSet("/project")
        >>> rules.add_rule('*.pyc')  # Add rule programmatically
        >>> rules.exclude('pkg/module.pyc')
        True
        >>> rules.exclude('pkg/module.py')
        False
    """

    @abstractmethod
    def exclude(self, path: str) -> bool:
        """
        Determine if a given path should be excluded based on the loaded rules.

        Args:
            path (str): The file or directory path to check, relative to the root of the
                directory being processed. A trailing ``/`` marks a directory.

        Returns:
            bool: True if the path should be excluded, False if it should be included.

        Example:
            >>> class TmpExclusionRules(BaseExclusionRules):
            ...     def exclude(self, path: str) -> bool:
            ...         return path.endswith('.tmp')
            >>> rules = TmpExclusionRules()
            >>> rules.exclude("build/temp.tmp")
            True
            >>> rules.exclude("main.py")
            False
        """
        pass

    def load_rules(self, rules_files: Union[PathType, Sequence[PathType]]) -> None:
        """
        Load and parse exclusion rules from one or more files.

        Rule types that don't support file-based loading use this default
        implementation, which raises NotImplementedError.

        Args:
            rules_files: Path to a file or sequence of paths containing exclusion rules.

        Raises:
            NotImplementedError: If this rule type doesn't support loading from files.
            FileNotFoundError: If any rules file does not exist (for file-supporting rule types).
        """
        raise NotImplementedError(f"{self.__class__.__name__} doesn't support loading rules from files.")

    def add_rule(self, rule: str) -> None:
        """
        Add a single exclusion rule directly.

        Args:
            rule (str): The exclusion rule to add, e.g. a glob like "*.pyc".

        Raises:
            NotImplementedError: If this rule type doesn't support adding individual rules.
        """
        raise NotImplementedError(f"{self.__class__.__name__} doesn't support adding individual rules.")
