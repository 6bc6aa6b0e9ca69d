"""Chunk Budgeter - Bound the size of the staged-changes payload."""

import logging
from dataclasses import dataclass, field

from commitgen.git.classifier import Category, DiffClassifier, FileChange
from commitgen.git.collector import DiffCollector, StagedFile, split_diff

logger = logging.getLogger(__name__)

SUMMARY_HEADER = "Git Diff Stat (Summary Mode):"

REASON_TOO_MANY_FILES = 'too_many_files'
REASON_TOO_LARGE = 'too_large'
REASON_DIFF_OVERFLOW = 'diff_overflow'


@dataclass
class BudgetLimits:
    """Tunable size limits for one invocation."""
    max_prompt_chars: int = 8000
    max_staged_files: int = 20


@dataclass
class DiffBundle:
    """Budgeted representation of the staged changes.

    A degraded bundle holds only `stat` rows and a summary string.
    """
    changes: list[FileChange] = field(default_factory=list)
    degraded: bool = False
    summary: str = ""
    reason: str | None = None

    @property
    def total_files(self) -> int:
        return len(self.changes)

    @property
    def total_additions(self) -> int:
        return sum(c.additions for c in self.changes)

    @property
    def total_deletions(self) -> int:
        return sum(c.deletions for c in self.changes)

    @property
    def total_chars(self) -> int:
        if self.degraded:
            return len(self.summary)
        return sum(c.char_count + 1 for c in self.changes)


class ChunkBudgeter:
    """Classifies staged files under a file-count and a character budget."""

    def __init__(self, limits: BudgetLimits | None = None, classifier: DiffClassifier | None = None):
        self.limits = limits or BudgetLimits()
        self.classifier = classifier or DiffClassifier()

    def build(self, collector: DiffCollector) -> DiffBundle | None:
        """Return the bundle, or None when nothing is staged."""
        staged = collector.staged_files()
        if not staged:
            return None

        if len(staged) > self.limits.max_staged_files:
            logger.info(
                "%d staged files exceed the limit of %d, using stat summary",
                len(staged), self.limits.max_staged_files,
            )
            return self._summarize(collector, staged, REASON_TOO_MANY_FILES)

        diff = collector.staged_diff()
        if diff.overflowed:
            return self._summarize(collector, staged, REASON_DIFF_OVERFLOW)

        fragments = split_diff(diff.text)

        def fetch_fragment(path: str) -> str:
            fragment = fragments.get(path)
            if fragment is None:
                logger.debug("No bulk diff fragment for %s, diffing it alone", path)
                fragment = collector.file_diff(path).rstrip('\n')
            return fragment

        changes: list[FileChange] = []
        total = 0
        for staged_file in staged:
            change = self.classifier.classify(staged_file, fetch_fragment)
            projected = total + change.char_count + 1
            if projected > self.limits.max_prompt_chars:
                logger.info(
                    "Diff reaches %d chars at %s (limit %d), using stat summary",
                    projected, change.path, self.limits.max_prompt_chars,
                )
                return self._summarize(collector, staged, REASON_TOO_LARGE)
            changes.append(change)
            total = projected

        return DiffBundle(changes=changes)

    def _summarize(self, collector: DiffCollector, staged: list[StagedFile], reason: str) -> DiffBundle:
        stats = collector.numstat()
        changes = []
        for staged_file in staged:
            stat = stats.get(staged_file.path)
            additions = stat.additions if stat else 0
            deletions = stat.deletions if stat else 0
            changes.append(FileChange(
                path=staged_file.path,
                status=staged_file.status,
                category=Category.STAT,
                entry_text=format_stat_line(staged_file, additions, deletions),
                additions=additions,
                deletions=deletions,
            ))

        summary = '\n'.join([SUMMARY_HEADER, *(c.entry_text for c in changes)])
        return DiffBundle(changes=changes, degraded=True, summary=summary, reason=reason)


def format_stat_line(staged: StagedFile, additions: int, deletions: int) -> str:
    line = f"{staged.path} | +{additions} -{deletions}"
    if staged.is_deleted:
        return f"{line} (deleted)"
    if staged.status == 'R' and staged.old_path:
        return f"{line} (renamed from {staged.old_path})"
    if staged.status == 'A':
        return f"{line} (new)"
    return line
