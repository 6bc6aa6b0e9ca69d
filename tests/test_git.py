"""
Unit tests for the git layer: DiffCollector parsing, DiffClassifier, ChunkBudgeter.

Run with:
    pytest tests/test_git.py -v
"""

import shutil
import subprocess
import sys

import pytest

from commitgen.git import (
    BudgetLimits, Category, ChunkBudgeter, CollectionError, DiffClassifier, DiffCollector,
    FileChange, FileStat, StagedDiff, StagedFile, TruncationPolicy, split_diff,
)
from commitgen.git.budget import REASON_DIFF_OVERFLOW, REASON_TOO_LARGE, REASON_TOO_MANY_FILES, SUMMARY_HEADER
from commitgen.git.collector import count_changes, parse_header_path, parse_name_status, parse_numstat


def make_fragment(path: str, added: int, new_file: bool = False) -> str:
    """A unified diff fragment adding `added` lines to `path`."""
    header = [f"diff --git a/{path} b/{path}"]
    if new_file:
        header += ["new file mode 100644", "index 0000000..1111111", "--- /dev/null"]
    else:
        header += ["index 1111111..2222222 100644", f"--- a/{path}"]
    header += [f"+++ b/{path}", f"@@ -0,0 +1,{added} @@"]
    return "\n".join(header + [f"+line {i}" for i in range(added)])


class FakeCollector:
    """Stands in for DiffCollector; records which queries were made."""

    def __init__(self, staged, diff="", stats=None, overflowed=False, file_diffs=None):
        self.staged = staged
        self.diff = diff
        self.stats = stats or {}
        self.overflowed = overflowed
        self.file_diffs = file_diffs or {}
        self.calls = []

    def staged_files(self):
        self.calls.append('status')
        return list(self.staged)

    def staged_diff(self):
        self.calls.append('diff')
        return StagedDiff(text=self.diff, overflowed=self.overflowed)

    def file_diff(self, path):
        self.calls.append(('file', path))
        return self.file_diffs.get(path, "")

    def numstat(self):
        self.calls.append('numstat')
        return self.stats


class ExplodingClassifier(DiffClassifier):
    def classify(self, staged, fetch_fragment):
        raise AssertionError(f"classify called for {staged.path}")


class FixedSizeClassifier(DiffClassifier):
    """Every entry is exactly `size` chars; records the files it saw."""

    def __init__(self, size):
        super().__init__()
        self.size = size
        self.seen = []

    def classify(self, staged, fetch_fragment):
        self.seen.append(staged.path)
        return FileChange(staged.path, staged.status, Category.CONTENT, "x" * self.size)


# ---------------------------------------------------------------------------
# Status and numstat parsing
# ---------------------------------------------------------------------------

class TestParseNameStatus:

    def test_basic_statuses(self):
        output = "M\0src/app.py\0A\0new.py\0D\0old.py\0"
        files = parse_name_status(output)
        assert [(f.path, f.status) for f in files] == [
            ("src/app.py", "M"), ("new.py", "A"), ("old.py", "D"),
        ]

    def test_rename_reports_destination_only(self):
        output = "R100\0lib/old name.py\0lib/new name.py\0M\0a.py\0"
        files = parse_name_status(output)
        assert [f.path for f in files] == ["lib/new name.py", "a.py"]
        assert files[0].status == "R"
        assert files[0].old_path == "lib/old name.py"

    def test_rename_and_copy_count_as_new(self):
        assert StagedFile("a", "R").is_new
        assert StagedFile("a", "C").is_new
        assert StagedFile("a", "A").is_new
        assert not StagedFile("a", "M").is_new

    def test_empty_output(self):
        assert parse_name_status("") == []

    def test_non_ascii_path_is_verbatim(self):
        files = parse_name_status("A\0docs/café ☕.md\0")
        assert files[0].path == "docs/café ☕.md"


class TestParseNumstat:

    def test_counts_and_binary(self):
        output = "10\t2\tsrc/app.py\0-\t-\timg.png\0"
        stats = parse_numstat(output)
        assert stats["src/app.py"] == FileStat("src/app.py", 10, 2)
        assert stats["img.png"] == FileStat("img.png", 0, 0)

    def test_rename_keyed_by_destination(self):
        output = "3\t1\t\0old.py\0new.py\0"
        stats = parse_numstat(output)
        assert list(stats) == ["new.py"]
        assert stats["new.py"].additions == 3


# ---------------------------------------------------------------------------
# Bulk diff splitting
# ---------------------------------------------------------------------------

class TestSplitDiff:

    def test_splits_multi_file_diff(self):
        diff = make_fragment("src/foo.py", 2) + "\n" + make_fragment("src/bar.py", 3) + "\n"
        fragments = split_diff(diff)

        assert list(fragments) == ["src/foo.py", "src/bar.py"]
        assert fragments["src/foo.py"] == make_fragment("src/foo.py", 2)
        assert fragments["src/bar.py"] == make_fragment("src/bar.py", 3)

    def test_lines_before_first_header_are_ignored(self):
        diff = "warning: something\n" + make_fragment("a.py", 1)
        fragments = split_diff(diff)
        assert list(fragments) == ["a.py"]
        assert "warning" not in fragments["a.py"]

    def test_diff_lines_that_look_like_headers_stay_in_fragment(self):
        fragment = make_fragment("doc.md", 0) + "\n+ diff --git is mentioned here"
        fragments = split_diff(fragment)
        assert list(fragments) == ["doc.md"]
        assert fragments["doc.md"].endswith("+ diff --git is mentioned here")

    def test_empty_diff(self):
        assert split_diff("") == {}

    def test_rename_keyed_by_destination(self):
        diff = "diff --git a/old.py b/new.py\nsimilarity index 100%\nrename from old.py\nrename to new.py"
        assert list(split_diff(diff)) == ["new.py"]


class TestParseHeaderPath:

    @pytest.mark.parametrize("line, expected", [
        ("diff --git a/src/app.py b/src/app.py", "src/app.py"),
        ("diff --git a/my file.txt b/my file.txt", "my file.txt"),
        ("diff --git a/dir b/x.txt b/dir b/x.txt", "dir b/x.txt"),
        ("diff --git a/old.py b/new.py", "new.py"),
        ('diff --git "a/caf\\303\\251.txt" "b/caf\\303\\251.txt"', "café.txt"),
        ('diff --git "a/tab\\there" "b/tab\\there"', "tab\there"),
        ('diff --git "a/say \\"hi\\"" "b/say \\"hi\\""', 'say "hi"'),
    ])
    def test_destination_path(self, line, expected):
        assert parse_header_path(line) == expected


class TestCountChanges:

    def test_counts_only_hunk_lines(self):
        fragment = "\n".join([
            "diff --git a/a.py b/a.py",
            "--- a/a.py",
            "+++ b/a.py",
            "@@ -1,3 +1,3 @@",
            " context",
            "-old",
            "+new",
            "+newer",
            "\\ No newline at end of file",
        ])
        assert count_changes(fragment) == (2, 1)


# ---------------------------------------------------------------------------
# DiffClassifier
# ---------------------------------------------------------------------------

class TestDiffClassifierCategories:

    @pytest.fixture
    def classifier(self):
        return DiffClassifier()

    def _classify(self, classifier, path, status="M", fragment=""):
        fetched = []

        def fetch(p):
            fetched.append(p)
            return fragment

        change = classifier.classify(StagedFile(path, status), fetch)
        return change, fetched

    @pytest.mark.parametrize("path", [
        "package-lock.json", "frontend/yarn.lock", "pnpm-lock.yaml", "poetry.lock",
        "Cargo.lock", "Gemfile.lock", "composer.lock", "uv.lock",
    ])
    def test_lockfiles(self, classifier, path):
        change, fetched = self._classify(classifier, path)
        assert change.category is Category.LOCKFILE
        assert change.entry_text == f"File Changed: {path} (dependency lockfile update)"
        assert fetched == []

    @pytest.mark.parametrize("path", [
        "assets/logo.png", "photo.JPG", "font.woff2", "archive.tar", "data.sqlite", "lib.so",
    ])
    def test_binary_assets(self, classifier, path):
        change, fetched = self._classify(classifier, path)
        assert change.category is Category.BINARY
        assert change.entry_text == f"[BINARY/ASSET] {path}"
        assert fetched == []

    @pytest.mark.parametrize("path", ["dist/app.min.js", "styles.min.css", "bundle.js.map"])
    def test_generated(self, classifier, path):
        change, _ = self._classify(classifier, path)
        assert change.category is Category.GENERATED
        assert change.entry_text == f"[MINIFIED/GENERATED] {path}"

    def test_deleted_wins_over_other_rules(self, classifier):
        change, fetched = self._classify(classifier, "package-lock.json", status="D")
        assert change.category is Category.DELETED
        assert change.entry_text == "[DELETED] package-lock.json"
        assert fetched == []

    def test_content_fetches_fragment(self, classifier):
        fragment = make_fragment("src/app.py", 3)
        change, fetched = self._classify(classifier, "src/app.py", fragment=fragment)
        assert fetched == ["src/app.py"]
        assert change.category is Category.CONTENT
        assert change.entry_text == f"File: src/app.py\n{fragment}"
        assert (change.additions, change.deletions) == (3, 0)
        assert change.char_count == len(change.entry_text)

    def test_non_content_categories_have_zero_counts(self, classifier):
        change, _ = self._classify(classifier, "img.png")
        assert (change.additions, change.deletions) == (0, 0)

    def test_empty_fragment(self, classifier):
        change, _ = self._classify(classifier, "src/mode_only.sh", fragment="")
        assert change.entry_text == "File: src/mode_only.sh (no textual diff)"


class TestTruncationPolicy:

    @pytest.mark.parametrize("is_new, total, head, tail", [
        (True, 51, 25, 25),
        (True, 120, 25, 25),
        (False, 251, 200, 50),
        (False, 1000, 200, 50),
    ])
    def test_head_tail_and_skip_count(self, is_new, total, head, tail):
        lines = [f"line {i}" for i in range(total)]
        text, skipped = TruncationPolicy().truncate("\n".join(lines), is_new)
        out = text.split("\n")

        assert skipped == total - head - tail
        assert out[:head] == lines[:head]
        assert out[head] == f"... ({total - head - tail} lines skipped) ..."
        assert out[head + 1:] == lines[-tail:]
        assert len(out) == head + tail + 1

    @pytest.mark.parametrize("is_new, total", [(True, 50), (False, 250), (False, 60)])
    def test_at_or_below_limit_untouched(self, is_new, total):
        original = "\n".join(str(i) for i in range(total))
        assert TruncationPolicy().truncate(original, is_new) == (original, 0)

    def test_configured_limits(self):
        policy = TruncationPolicy(new_file_max_lines=10, modified_file_max_lines=100, tail_lines=20)
        assert policy.limits(True) == (10, 5, 5)
        assert policy.limits(False) == (100, 80, 20)

    def test_classifier_marks_truncated_new_file(self):
        fragment = make_fragment("big.py", 200, new_file=True)
        change = DiffClassifier().classify(StagedFile("big.py", "A"), lambda _: fragment)
        assert change.truncated is True
        assert change.additions == 200  # counted before truncation
        assert "lines skipped" in change.entry_text

    def test_renamed_file_uses_new_file_limit(self):
        fragment = make_fragment("moved.py", 100)
        change = DiffClassifier().classify(StagedFile("moved.py", "R", "orig.py"), lambda _: fragment)
        assert change.truncated is True
        body = change.entry_text.split("\n")[1:]
        assert len(body) == 51


# ---------------------------------------------------------------------------
# ChunkBudgeter
# ---------------------------------------------------------------------------

class TestChunkBudgeter:

    def test_nothing_staged_returns_none(self):
        collector = FakeCollector([])
        assert ChunkBudgeter().build(collector) is None
        assert collector.calls == ['status']

    def test_mixed_changeset_scenario(self):
        staged = [
            StagedFile("A.ts", "M"),
            StagedFile("B.png", "M"),
            StagedFile("package-lock.json", "M"),
            StagedFile("D.ts", "D"),
        ]
        diff = "\n".join([
            make_fragment("A.ts", 10),
            "diff --git a/B.png b/B.png",
            "index 1234567..89abcde 100644",
            "Binary files a/B.png and b/B.png differ",
            make_fragment("package-lock.json", 40),
            "diff --git a/D.ts b/D.ts",
            "deleted file mode 100644",
        ])
        bundle = ChunkBudgeter().build(FakeCollector(staged, diff))

        assert not bundle.degraded
        assert [c.path for c in bundle.changes] == ["A.ts", "B.png", "package-lock.json", "D.ts"]
        a, b, lock, d = bundle.changes
        assert a.category is Category.CONTENT
        assert a.entry_text.startswith("File: A.ts\n")
        assert a.additions == 10
        assert b.entry_text == "[BINARY/ASSET] B.png"
        assert lock.entry_text == "File Changed: package-lock.json (dependency lockfile update)"
        assert d.entry_text == "[DELETED] D.ts"
        for change in (b, lock, d):
            assert "\n" not in change.entry_text
        assert not any("Binary files" in c.entry_text for c in bundle.changes)

    def test_file_count_breaker_skips_classification(self):
        staged = [StagedFile(f"src/mod_{i}.py", "M") for i in range(150)]
        stats = {f.path: FileStat(f.path, 3, 1) for f in staged}
        collector = FakeCollector(staged, stats=stats)
        budgeter = ChunkBudgeter(BudgetLimits(max_staged_files=100), ExplodingClassifier())

        bundle = budgeter.build(collector)

        assert bundle.degraded
        assert bundle.reason == REASON_TOO_MANY_FILES
        assert 'diff' not in collector.calls
        assert len(bundle.changes) == 150
        assert all(c.category is Category.STAT for c in bundle.changes)
        assert bundle.summary.startswith(SUMMARY_HEADER)
        assert "src/mod_7.py | +3 -1" in bundle.summary

    @pytest.mark.parametrize("limit, classified", [
        (250, 3),  # third entry would reach 300
        (300, 4),  # exactly 300 fits, fourth would reach 400
    ])
    def test_size_breaker_fires_before_exceeding_file(self, limit, classified):
        staged = [StagedFile(f"f{i}.py", "M") for i in range(5)]
        classifier = FixedSizeClassifier(size=99)
        budgeter = ChunkBudgeter(BudgetLimits(max_prompt_chars=limit), classifier)

        bundle = budgeter.build(FakeCollector(staged))

        assert bundle.degraded
        assert bundle.reason == REASON_TOO_LARGE
        assert len(classifier.seen) == classified
        assert not any(c.category is Category.CONTENT for c in bundle.changes)
        assert "x" * 99 not in bundle.summary

    def test_everything_fits_at_exact_budget(self):
        staged = [StagedFile(f"f{i}.py", "M") for i in range(5)]
        bundle = ChunkBudgeter(BudgetLimits(max_prompt_chars=500), FixedSizeClassifier(99)).build(
            FakeCollector(staged)
        )
        assert not bundle.degraded
        assert bundle.total_chars == 500

    def test_diff_overflow_degrades(self):
        staged = [StagedFile("a.py", "M"), StagedFile("b.py", "A")]
        stats = {"a.py": FileStat("a.py", 5, 2)}
        bundle = ChunkBudgeter().build(FakeCollector(staged, stats=stats, overflowed=True))

        assert bundle.degraded
        assert bundle.reason == REASON_DIFF_OVERFLOW
        assert [c.entry_text for c in bundle.changes] == ["a.py | +5 -2", "b.py | +0 -0 (new)"]

    def test_falls_back_to_single_file_diff(self):
        staged = [StagedFile("a.py", "M"), StagedFile("b.py", "M")]
        collector = FakeCollector(
            staged,
            diff=make_fragment("a.py", 1),
            file_diffs={"b.py": make_fragment("b.py", 2) + "\n"},
        )
        bundle = ChunkBudgeter().build(collector)

        assert ('file', 'b.py') in collector.calls
        assert ('file', 'a.py') not in collector.calls
        assert bundle.changes[1].additions == 2

    @pytest.mark.parametrize("count, ceiling", [(3, 20), (30, 20)])
    def test_every_path_appears_once(self, count, ceiling):
        staged = [StagedFile(f"pkg/file_{i}.py", "M") for i in range(count)]
        diff = "\n".join(make_fragment(f.path, 2) for f in staged)
        bundle = ChunkBudgeter(BudgetLimits(max_staged_files=ceiling)).build(FakeCollector(staged, diff))

        paths = [c.path for c in bundle.changes]
        assert sorted(paths) == sorted(f.path for f in staged)
        assert len(set(paths)) == len(paths)


# ---------------------------------------------------------------------------
# DiffCollector against a real repository
# ---------------------------------------------------------------------------

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _git(cwd, *args):
    subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", "-c", "commit.gpgsign=false", *args],
        cwd=cwd, check=True, capture_output=True,
    )


@pytest.fixture
def repo(tmp_path, monkeypatch):
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    _git(tmp_path, "init", "-q")
    (tmp_path / "app.py").write_text("print('hello')\n")
    (tmp_path / "gone.py").write_text("x = 1\n")
    (tmp_path / "keep.txt").write_text("\n".join(f"stable line {i}" for i in range(20)) + "\n")
    _git(tmp_path, "add", ".")
    _git(tmp_path, "commit", "-qm", "init")
    return tmp_path


@pytest.fixture
def fake_diff_process(monkeypatch):
    """Return a function that runs the given Python code in place of the bulk diff query."""
    real_popen = subprocess.Popen

    def _install(code):
        def _popen(cmd, *args, **kwargs):
            if "--no-ext-diff" in cmd:
                cmd = [sys.executable, "-c", code]
            return real_popen(cmd, *args, **kwargs)
        monkeypatch.setattr(subprocess, "Popen", _popen)
    return _install


@requires_git
class TestDiffCollector:

    def test_not_a_repository(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
        with pytest.raises(CollectionError, match="Not inside a git repository"):
            DiffCollector(tmp_path)

    def test_nothing_staged(self, repo):
        assert DiffCollector(repo).staged_files() == []

    def test_statuses_and_fragments(self, repo):
        (repo / "app.py").write_text("print('hello')\nprint('world')\n")
        (repo / "my notes.md").write_text("# Notes\n")
        (repo / "café.txt").write_text("bonjour\n")
        _git(repo, "rm", "-q", "gone.py")
        _git(repo, "mv", "keep.txt", "kept.txt")
        _git(repo, "add", ".")

        collector = DiffCollector(repo)
        files = {f.path: f for f in collector.staged_files()}

        assert files["app.py"].status == "M"
        assert files["my notes.md"].status == "A"
        assert files["café.txt"].status == "A"
        assert files["gone.py"].status == "D"
        assert files["kept.txt"].status == "R"
        assert files["kept.txt"].old_path == "keep.txt"
        assert "keep.txt" not in files

        fragments = split_diff(collector.staged_diff().text)
        assert set(fragments) == set(files)
        assert "+print('world')" in fragments["app.py"]

    def test_numstat(self, repo):
        (repo / "app.py").write_text("print('hi')\nprint('there')\n")
        _git(repo, "add", ".")
        stats = DiffCollector(repo).numstat()
        assert stats["app.py"] == FileStat("app.py", 2, 1)

    def test_diff_over_cap_is_flagged(self, repo):
        (repo / "big.txt").write_text("y\n" * 5000)
        _git(repo, "add", ".")
        diff = DiffCollector(repo, max_diff_bytes=1024).staged_diff()
        assert diff.overflowed
        assert diff.text == ""

    def test_noisy_stderr_does_not_block_diff(self, repo, fake_diff_process):
        # Far more than a pipe buffer holds, written before any stdout
        fake_diff_process(
            "import sys; sys.stderr.write('warning: noise\\n' * 20000); "
            "sys.stdout.write('diff --git a/x.py b/x.py\\n+y = 1\\n')"
        )
        diff = DiffCollector(repo).staged_diff()
        assert not diff.overflowed
        assert diff.text == "diff --git a/x.py b/x.py\n+y = 1\n"

    def test_failed_diff_reports_stderr(self, repo, fake_diff_process):
        fake_diff_process("import sys; sys.stderr.write('fatal: bad index file'); sys.exit(128)")
        with pytest.raises(CollectionError, match="fatal: bad index file"):
            DiffCollector(repo).staged_diff()

    def test_single_file_diff(self, repo):
        (repo / "app.py").write_text("print('changed')\n")
        _git(repo, "add", ".")
        assert "+print('changed')" in DiffCollector(repo).file_diff("app.py")

    def test_write_commit_message_overwrites(self, repo):
        collector = DiffCollector(repo)
        collector.write_commit_message("first")
        path = collector.write_commit_message("feat(app): second\n\n- body")
        assert path.resolve() == (repo / ".git" / "MERGE_MSG").resolve()
        assert path.read_text() == "feat(app): second\n\n- body\n"

    def test_works_from_subdirectory(self, repo):
        sub = repo / "pkg"
        sub.mkdir()
        (sub / "mod.py").write_text("a = 1\n")
        _git(repo, "add", ".")
        collector = DiffCollector(sub)
        assert collector.root.resolve() == repo.resolve()
        assert [f.path for f in collector.staged_files()] == ["pkg/mod.py"]
