"""Diff Classifier - Turn each staged file into one prompt entry."""

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Callable

from commitgen.git.collector import StagedFile, count_changes


class Category(str, Enum):
    """What kind of entry a staged file contributes to the prompt."""
    DELETED = 'deleted'
    LOCKFILE = 'lockfile'
    BINARY = 'binary'
    GENERATED = 'generated'
    CONTENT = 'content'
    STAT = 'stat'  # summary-only row of a degraded bundle


@dataclass
class FileChange:
    """One staged file as it will appear in the prompt."""
    path: str
    status: str
    category: Category
    entry_text: str
    additions: int = 0
    deletions: int = 0
    truncated: bool = False

    @property
    def char_count(self) -> int:
        return len(self.entry_text)

    @property
    def estimated_tokens(self) -> int:
        """Rough token estimate (~4 chars per token)."""
        return self.char_count // 4


LOCKFILE_NAMES = frozenset({
    'package-lock.json', 'yarn.lock', 'pnpm-lock.yaml', 'npm-shrinkwrap.json',
    'poetry.lock', 'Pipfile.lock', 'uv.lock', 'Cargo.lock', 'Gemfile.lock',
    'composer.lock', 'go.sum',
})

BINARY_EXTENSIONS = frozenset({
    '.png', '.jpg', '.jpeg', '.gif', '.svg', '.ico', '.webp', '.bmp',
    '.woff', '.woff2', '.ttf', '.eot', '.otf',
    '.mp4', '.webm', '.mov', '.mp3', '.wav', '.ogg',
    '.zip', '.tar', '.gz', '.7z', '.rar', '.jar',
    '.pdf', '.exe', '.dll', '.so', '.dylib', '.bin', '.dat',
    '.db', '.sqlite', '.pyc', '.class',
})

GENERATED_SUFFIXES = ('.min.js', '.min.css', '.map')

SKIP_MARKER = "... ({count} lines skipped) ..."


def _name(path: str) -> str:
    return PurePosixPath(path).name


@dataclass(frozen=True)
class Rule:
    """Marker-only category: the file's content never reaches the prompt."""
    category: Category
    matches: Callable[[StagedFile], bool]
    marker: str


# Evaluated in order; the first match wins. Unmatched files are content.
RULES: tuple[Rule, ...] = (
    Rule(Category.DELETED, lambda f: f.is_deleted, "[DELETED] {path}"),
    Rule(Category.LOCKFILE, lambda f: _name(f.path) in LOCKFILE_NAMES,
         "File Changed: {path} (dependency lockfile update)"),
    Rule(Category.BINARY, lambda f: PurePosixPath(f.path).suffix.lower() in BINARY_EXTENSIONS,
         "[BINARY/ASSET] {path}"),
    Rule(Category.GENERATED, lambda f: _name(f.path).lower().endswith(GENERATED_SUFFIXES),
         "[MINIFIED/GENERATED] {path}"),
)


@dataclass
class TruncationPolicy:
    """Head/tail line limits for a single content entry."""
    new_file_max_lines: int = 50
    modified_file_max_lines: int = 250
    tail_lines: int = 50

    def limits(self, is_new: bool) -> tuple[int, int, int]:
        """Return (max_lines, head, tail) for a file."""
        if is_new:
            head = self.new_file_max_lines // 2
            return self.new_file_max_lines, head, self.new_file_max_lines - head
        tail = min(self.tail_lines, self.modified_file_max_lines)
        return self.modified_file_max_lines, self.modified_file_max_lines - tail, tail

    def truncate(self, text: str, is_new: bool) -> tuple[str, int]:
        """Keep head and tail lines around a skip marker. Returns (text, skipped)."""
        lines = text.split('\n')
        max_lines, head, tail = self.limits(is_new)
        if len(lines) <= max_lines:
            return text, 0

        skipped = len(lines) - head - tail
        kept = [*lines[:head], SKIP_MARKER.format(count=skipped), *lines[len(lines) - tail:]]
        return '\n'.join(kept), skipped


class DiffClassifier:
    """Assigns categories and builds the canonical entry text per file."""

    def __init__(self, policy: TruncationPolicy | None = None, rules: tuple[Rule, ...] = RULES):
        self.policy = policy or TruncationPolicy()
        self.rules = rules

    def classify(self, staged: StagedFile, fetch_fragment: Callable[[str], str]) -> FileChange:
        """Build the FileChange. `fetch_fragment` is only called for content files."""
        for rule in self.rules:
            if rule.matches(staged):
                return FileChange(
                    path=staged.path,
                    status=staged.status,
                    category=rule.category,
                    entry_text=rule.marker.format(path=staged.path),
                )

        fragment = fetch_fragment(staged.path)
        if not fragment.strip():
            return FileChange(
                path=staged.path,
                status=staged.status,
                category=Category.CONTENT,
                entry_text=f"File: {staged.path} (no textual diff)",
            )

        additions, deletions = count_changes(fragment)
        body, skipped = self.policy.truncate(fragment, staged.is_new)
        return FileChange(
            path=staged.path,
            status=staged.status,
            category=Category.CONTENT,
            entry_text=f"File: {staged.path}\n{body}",
            additions=additions,
            deletions=deletions,
            truncated=skipped > 0,
        )
