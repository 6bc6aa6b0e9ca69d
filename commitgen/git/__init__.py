"""Git Operations Package"""

from commitgen.git.collector import (
    CollectionError, DiffCollector, FileStat, StagedDiff, StagedFile, split_diff,
)
from commitgen.git.classifier import Category, DiffClassifier, FileChange, TruncationPolicy
from commitgen.git.budget import BudgetLimits, ChunkBudgeter, DiffBundle

__all__ = [
    "CollectionError",
    "DiffCollector",
    "FileStat",
    "StagedDiff",
    "StagedFile",
    "split_diff",
    "Category",
    "DiffClassifier",
    "FileChange",
    "TruncationPolicy",
    "BudgetLimits",
    "ChunkBudgeter",
    "DiffBundle",
]
