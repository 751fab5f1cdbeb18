"""Exclusion rules for filtering files and directories."""

from .base_rules import BaseExclusionRules
from .engine import ExclusionEngine
from .pattern_set import Pattern, PatternSet

__all__ = [
    "BaseExclusionRules",
    "ExclusionEngine",
    "Pattern",
    "PatternSet",
]
