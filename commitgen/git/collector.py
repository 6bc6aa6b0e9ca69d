"""Diff Collector - Read staged changes from git with a fixed number of queries."""

import enum
import logging
import re
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIFF_BYTES = 10 * 1024 * 1024
DIFF_HEADER = 'diff --git '

# Forces a/ b/ prefixes and raw UTF-8 paths regardless of user git config
_DIFF_ARGS = (
    '-c', 'core.quotePath=false',
    'diff', '--cached', '--no-color', '--no-ext-diff', '-M',
    '--src-prefix=a/', '--dst-prefix=b/',
)

_ESCAPES = {'a': '\a', 'b': '\b', 't': '\t', 'n': '\n', 'v': '\v', 'f': '\f', 'r': '\r'}
_QUOTED_HEADER = re.compile(r'^(?:"(?:[^"\\]|\\.)*"|\S+) "((?:[^"\\]|\\.)*)"$')
_PLAIN_HEADER = re.compile(r'^a/(.+) b/(.+)$')


class CollectionError(Exception):
    """Raised when git cannot be queried or no repository is found."""
    pass


@dataclass(frozen=True)
class StagedFile:
    """One entry of the staged status query."""
    path: str
    status: str
    old_path: str | None = None

    @property
    def is_new(self) -> bool:
        """Rename and copy destinations count as added content."""
        return self.status in ('A', 'R', 'C')

    @property
    def is_deleted(self) -> bool:
        return self.status == 'D'


@dataclass(frozen=True)
class StagedDiff:
    """Bulk diff text. Empty with overflowed=True when the read cap was hit."""
    text: str
    overflowed: bool = False


@dataclass(frozen=True)
class FileStat:
    path: str
    additions: int
    deletions: int


class DiffCollector:
    """Queries staged changes from the repository containing `path`."""

    def __init__(self, path: str | Path | None = None, max_diff_bytes: int = DEFAULT_MAX_DIFF_BYTES):
        self.max_diff_bytes = max_diff_bytes
        self._cwd = Path(path) if path else Path.cwd()
        self._verify_git_available()
        self.root = self._find_root()

    def _run_git(self, *args: str, cwd: Path | None = None) -> str:
        """Run a read-only git command and return stdout."""
        logger.debug("git %s", ' '.join(args))
        try:
            result = subprocess.run(
                ['git', *args],
                cwd=cwd or self._cwd,
                capture_output=True,
                text=True,
                check=True,
                encoding='utf-8',
                errors='replace'
            )
            return result.stdout
        except subprocess.CalledProcessError as e:
            raise CollectionError(f"Git command failed: git {' '.join(args)}\n{e.stderr.strip()}")
        except FileNotFoundError:
            raise CollectionError("Git is not installed or not in PATH")

    def _verify_git_available(self) -> None:
        self._run_git('--version')

    def _find_root(self) -> Path:
        try:
            output = self._run_git('rev-parse', '--show-toplevel')
        except CollectionError:
            raise CollectionError(f"Not inside a git repository: {self._cwd}")
        return Path(output.strip())

    def staged_files(self) -> list[StagedFile]:
        """The single status query. Empty list means nothing is staged."""
        output = self._run_git('diff', '--cached', '--name-status', '-z', '-M', cwd=self.root)
        return parse_name_status(output)

    def staged_diff(self) -> StagedDiff:
        """The single bulk diff query, read through a capped buffer."""
        args = [*_DIFF_ARGS]
        logger.debug("git %s", ' '.join(args))
        # stderr goes to a file so a chatty git cannot block on a full pipe
        with tempfile.TemporaryFile() as errors:
            try:
                proc = subprocess.Popen(
                    ['git', *args],
                    cwd=self.root,
                    stdout=subprocess.PIPE,
                    stderr=errors,
                )
            except FileNotFoundError:
                raise CollectionError("Git is not installed or not in PATH")

            with proc:
                data = proc.stdout.read(self.max_diff_bytes + 1)
                if len(data) > self.max_diff_bytes:
                    proc.kill()
                    proc.wait()
                    logger.info("Staged diff exceeds %d bytes, content dropped", self.max_diff_bytes)
                    return StagedDiff(text='', overflowed=True)
                proc.wait()

            if proc.returncode != 0:
                errors.seek(0)
                message = errors.read().decode('utf-8', errors='replace').strip()
                raise CollectionError(f"Git command failed: git {' '.join(args)}\n{message}")
        return StagedDiff(text=data.decode('utf-8', errors='replace'))

    def file_diff(self, path: str) -> str:
        """Diff of one staged file. Fallback when the bulk split missed it."""
        return self._run_git(*_DIFF_ARGS, '--', path, cwd=self.root)

    def numstat(self) -> dict[str, FileStat]:
        """Per-file line counts, keyed by destination path."""
        output = self._run_git('diff', '--cached', '--numstat', '-z', '-M', cwd=self.root)
        return parse_numstat(output)

    def write_commit_message(self, message: str) -> Path:
        """Overwrite the pending commit message that `git commit` prefills."""
        relative = self._run_git('rev-parse', '--git-path', 'MERGE_MSG', cwd=self.root).strip()
        path = Path(relative)
        if not path.is_absolute():
            path = self.root / path
        path.write_text(message.rstrip('\n') + '\n', encoding='utf-8')
        return path


def parse_name_status(output: str) -> list[StagedFile]:
    """Parse `git diff --name-status -z` output.

    Renames and copies carry two paths; only the destination becomes an entry.
    """
    tokens = output.split('\0')
    files: list[StagedFile] = []
    seen: set[str] = set()
    i = 0
    while i < len(tokens):
        code = tokens[i]
        if not code:
            i += 1
            continue
        status = code[0]
        if status in ('R', 'C'):
            if i + 2 >= len(tokens):
                break
            old_path, path = tokens[i + 1], tokens[i + 2]
            i += 3
        else:
            if i + 1 >= len(tokens):
                break
            old_path, path = None, tokens[i + 1]
            i += 2
        if path in seen:
            continue
        seen.add(path)
        files.append(StagedFile(path=path, status=status, old_path=old_path))
    return files


def parse_numstat(output: str) -> dict[str, FileStat]:
    """Parse `git diff --numstat -z` output. Binary files count as 0/0."""
    tokens = output.split('\0')
    stats: dict[str, FileStat] = {}
    i = 0
    while i < len(tokens):
        parts = tokens[i].split('\t', 2)
        i += 1
        if len(parts) < 3:
            continue
        added, deleted, path = parts
        if not path:
            if i + 1 >= len(tokens):
                break
            path = tokens[i + 1]
            i += 2
        stats[path] = FileStat(path=path, additions=_count(added), deletions=_count(deleted))
    return stats


def _count(value: str) -> int:
    return int(value) if value.isdigit() else 0


class _SplitState(enum.Enum):
    OUTSIDE_FILE = 'outside_file'
    IN_FILE = 'in_file'


def split_diff(diff: str) -> dict[str, str]:
    """Split a bulk diff into per-file fragments keyed by destination path.

    Only a `diff --git` header changes state: it flushes the fragment being
    collected and opens the next one.
    """
    fragments: dict[str, str] = {}
    state = _SplitState.OUTSIDE_FILE
    current_path = ''
    current_lines: list[str] = []

    if diff.endswith('\n'):
        diff = diff[:-1]

    for line in diff.split('\n'):
        if line.startswith(DIFF_HEADER):
            if state is _SplitState.IN_FILE:
                fragments[current_path] = '\n'.join(current_lines)
            current_path = parse_header_path(line)
            current_lines = [line]
            state = _SplitState.IN_FILE
        elif state is _SplitState.IN_FILE:
            current_lines.append(line)

    if state is _SplitState.IN_FILE:
        fragments[current_path] = '\n'.join(current_lines)

    return fragments


def parse_header_path(line: str) -> str:
    """Destination path of a `diff --git a/X b/Y` header."""
    rest = line[len(DIFF_HEADER):]

    if rest.endswith('"'):
        match = _QUOTED_HEADER.match(rest)
        if match:
            return _unquote(match.group(1))[2:]

    # Unrenamed paths repeat on both sides, which survives spaces in names
    half = (len(rest) - 1) // 2
    if (len(rest) % 2 == 1 and rest[half] == ' '
            and rest.startswith('a/') and rest[half + 1:].startswith('b/')
            and rest[2:half] == rest[half + 3:]):
        return rest[half + 3:]

    match = _PLAIN_HEADER.match(rest)
    if match:
        return match.group(2)
    return rest


def _unquote(quoted: str) -> str:
    """Undo git's C-style path quoting, including octal-escaped UTF-8 bytes."""
    out = bytearray()
    i = 0
    while i < len(quoted):
        ch = quoted[i]
        if ch == '\\' and i + 1 < len(quoted):
            nxt = quoted[i + 1]
            if nxt in '01234567' and re.match(r'[0-7]{3}', quoted[i + 1:i + 4]):
                out.append(int(quoted[i + 1:i + 4], 8))
                i += 4
                continue
            out.extend(_ESCAPES.get(nxt, nxt).encode('utf-8'))
            i += 2
            continue
        out.extend(ch.encode('utf-8'))
        i += 1
    return out.decode('utf-8', errors='replace')


def count_changes(fragment: str) -> tuple[int, int]:
    """Count added and removed lines inside the hunks of one fragment."""
    additions = deletions = 0
    in_hunk = False
    for line in fragment.split('\n'):
        if line.startswith('@@'):
            in_hunk = True
        elif not in_hunk:
            continue
        elif line.startswith('+'):
            additions += 1
        elif line.startswith('-'):
            deletions += 1
    return additions, deletions
