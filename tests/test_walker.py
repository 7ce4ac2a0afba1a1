# tests/test_walker.py
"""Tests for the parallel walker: filtering, ignore rules and sink handling."""

import io
import os
from pathlib import Path
from typing import Set

import pytest

from parts.config.settings import Part
from parts.core.discovery.traversal import ParallelTraversal
from parts.core.discovery.walker import ParallelWalker, list_part_files, walk_part
from parts.core.output import CollectingSink, StreamSink
from parts.exceptions import OutputError, PatternError


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Creates a small project tree with hidden and gitignored entries."""
    root = tmp_path / "proj"
    files = {
        "main.rs": "fn main() {}",
        "main.rs.bak": "",
        "README.md": "# readme",
        "src/lib.rs": "",
        "src/sub/mod.rs": "",
        ".hidden/secret.rs": "",
        ".env.rs": "",
        "build/out.rs": "",
        "logs/x.log": "",
        "logs/keep.log": "",
        ".gitignore": "build/\n*.log\n!keep.log\n",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


def collect(part: Part, root: Path, **kwargs) -> Set[str]:
    sink = CollectingSink()
    errors = walk_part(part, sink, **kwargs)
    assert errors == []
    return {Path(p).relative_to(root).as_posix() for p in sink.paths}


class TestFiltering:
    def test_default_policy_skips_hidden_and_gitignored(self, project: Path):
        part = Part(name="rs", directory=str(project), include_globs=("**/*.rs",))
        assert collect(part, project) == {"main.rs", "src/lib.rs", "src/sub/mod.rs"}

    def test_hidden_files_when_not_ignored(self, project: Path):
        part = Part(name="rs", directory=str(project), ignore_hidden=False, include_globs=("**/*.rs",))
        assert collect(part, project) == {
            "main.rs",
            "src/lib.rs",
            "src/sub/mod.rs",
            ".hidden/secret.rs",
            ".env.rs",
        }

    def test_gitignore_disabled(self, project: Path):
        part = Part(name="rs", directory=str(project), use_gitignore=False, include_globs=("**/*.rs",))
        assert collect(part, project) == {"main.rs", "src/lib.rs", "src/sub/mod.rs", "build/out.rs"}

    def test_gitignore_negation(self, project: Path):
        part = Part(name="logs", directory=str(project), include_globs=("**/*.log",))
        assert collect(part, project) == {"logs/keep.log"}

    def test_top_level_glob(self, project: Path):
        part = Part(name="rs", directory=str(project), include_globs=("*.rs",))
        assert collect(part, project) == {"main.rs"}

    def test_exclude_wins_over_include(self, project: Path):
        part = Part(
            name="rs",
            directory=str(project),
            include_globs=("**/*.rs",),
            exclude_globs=("src/**",),
        )
        assert collect(part, project) == {"main.rs"}

    def test_exclude_regex(self, project: Path):
        part = Part(
            name="rs",
            directory=str(project),
            include_regexes=("\\.rs$",),
            exclude_regexes=("sub",),
        )
        assert collect(part, project) == {"main.rs", "src/lib.rs"}

    def test_empty_include_matches_nothing(self, project: Path):
        part = Part(name="empty", directory=str(project), exclude_globs=("*.md",))
        assert collect(part, project) == set()

    def test_directories_are_never_emitted(self, project: Path):
        part = Part(name="all", directory=str(project), include_globs=("**",))
        found = collect(part, project)
        assert "src" not in found
        assert "src/sub" not in found
        assert "src/sub/mod.rs" in found

    def test_nested_gitignore(self, project: Path):
        (project / "src" / ".gitignore").write_text("sub/\n")
        part = Part(name="rs", directory=str(project), include_globs=("**/*.rs",))
        assert collect(part, project) == {"main.rs", "src/lib.rs"}

    def test_ancestor_gitignore_inside_repository(self, tmp_path: Path):
        repo = tmp_path / "repo"
        (repo / ".git").mkdir(parents=True)
        (repo / ".gitignore").write_text("*.gen.rs\n")
        (repo / "pkg").mkdir()
        (repo / "pkg" / "a.rs").write_text("")
        (repo / "pkg" / "a.gen.rs").write_text("")
        part = Part(name="pkg", directory=str(repo / "pkg"), include_globs=("*.rs",))
        assert collect(part, repo / "pkg") == {"a.rs"}

    def test_invalid_pattern_fails_before_walking(self, project: Path):
        part = Part(name="bad", directory=str(project), include_globs=("[abc",))
        with pytest.raises(PatternError):
            walk_part(part, CollectingSink())


class TestRelativeDirectories:
    def test_default_directory_has_no_dot_prefix(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        part = Part(name="rs", include_globs=("src/*.rs",))
        assert list_part_files(part) == ["src/lib.rs"]

    def test_patterns_are_relative_to_the_part_directory(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        part = Part(name="src", directory="src", include_globs=("*.rs",))
        assert list_part_files(part) == ["src/lib.rs"]

    def test_dot_slash_prefix_is_stripped(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        part = Part(name="src", directory="./src", include_globs=("**/*.rs",))
        assert list_part_files(part) == ["src/lib.rs", "src/sub/mod.rs"]


class TestConcurrency:
    @pytest.fixture
    def wide_tree(self, tmp_path: Path) -> Path:
        root = tmp_path / "wide"
        for d in range(20):
            sub = root / f"d{d:02}" / "inner"
            sub.mkdir(parents=True)
            for f in range(10):
                (sub / f"f{f}.txt").write_text("")
                (sub / f"f{f}.bin").write_text("")
        return root

    def test_same_set_across_runs(self, wide_tree: Path):
        part = Part(name="txt", directory=str(wide_tree), include_globs=("**/*.txt",))
        first = collect(part, wide_tree, threads=8)
        second = collect(part, wide_tree, threads=3)
        assert len(first) == 200
        assert first == second

    def test_single_thread(self, wide_tree: Path):
        part = Part(name="txt", directory=str(wide_tree), include_globs=("**/*.txt",))
        assert len(collect(part, wide_tree, threads=1)) == 200

    def test_bounded_channel(self, wide_tree: Path):
        part = Part(name="bin", directory=str(wide_tree), include_globs=("**/*.bin",))
        assert len(collect(part, wide_tree, threads=4, channel_capacity=1)) == 200

    def test_each_path_is_written_once(self, wide_tree: Path):
        part = Part(name="all", directory=str(wide_tree), include_globs=("**",))
        sink = CollectingSink()
        walk_part(part, sink, threads=6)
        assert len(sink.paths) == len(set(sink.paths)) == 400


class TestErrors:
    def test_missing_directory_is_reported(self, tmp_path: Path):
        part = Part(name="x", directory=str(tmp_path / "missing"), include_globs=("**",))
        sink = CollectingSink()
        errors = walk_part(part, sink)
        assert len(errors) == 1
        assert sink.paths == []

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="permissions are not enforced for root",
    )
    def test_unreadable_directory_does_not_abort(self, project: Path):
        locked = project / "src" / "sub"
        locked.chmod(0)
        try:
            part = Part(name="rs", directory=str(project), include_globs=("**/*.rs",))
            sink = CollectingSink()
            errors = walk_part(part, sink)
        finally:
            locked.chmod(0o755)
        assert len(errors) == 1
        assert errors[0].path.endswith("sub")
        found = {Path(p).relative_to(project).as_posix() for p in sink.paths}
        assert found == {"main.rs", "src/lib.rs"}

    def test_sink_failure_aborts_walk(self, project: Path):
        class FailingSink:
            def write_path(self, path):
                raise OutputError("disk full")

            def flush(self):
                pass

        part = Part(name="rs", directory=str(project), include_globs=("**/*.rs",))
        with pytest.raises(OutputError, match="disk full"):
            walk_part(part, FailingSink())

    def test_unexpected_sink_error_becomes_output_error(self, project: Path):
        class BrokenSink:
            def write_path(self, path):
                raise RuntimeError("boom")

            def flush(self):
                pass

        part = Part(name="rs", directory=str(project), include_globs=("**/*.rs",))
        with pytest.raises(OutputError, match="boom"):
            ParallelWalker(part, channel_capacity=1).walk(BrokenSink())

    def test_closed_stream(self, project: Path):
        stream = io.BytesIO()
        stream.close()
        part = Part(name="rs", directory=str(project), include_globs=("*.rs",))
        with pytest.raises(OutputError):
            walk_part(part, StreamSink(stream))


class TestTraversal:
    def test_root_file_is_visited(self, project: Path):
        visited = []
        ParallelTraversal(str(project / "main.rs")).run(visited.append, pytest.fail)
        assert len(visited) == 1
        assert visited[0].is_file
        assert visited[0].rel_path == "main.rs"

    def test_directory_symlinks_are_not_followed(self, project: Path, tmp_path: Path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "far.rs").write_text("")
        try:
            (project / "link").symlink_to(outside, target_is_directory=True)
        except (OSError, NotImplementedError):
            pytest.skip("symlinks are not supported here")
        part = Part(name="rs", directory=str(project), include_globs=("**/*.rs",))
        assert "link/far.rs" not in collect(part, project)

    def test_visitor_failure_propagates(self, project: Path):
        def visit(entry):
            raise RuntimeError("visitor bug")

        with pytest.raises(RuntimeError, match="visitor bug"):
            ParallelTraversal(str(project), threads=2).run(visit, lambda error: None)


class TestStreamSink:
    def test_writes_one_path_per_line(self):
        stream = io.BytesIO()
        sink = StreamSink(stream)
        sink.write_path("a/b.rs")
        sink.write_path("c.rs")
        sink.flush()
        assert stream.getvalue() == b"a/b.rs\nc.rs\n"

    def test_collecting_sink_sorts(self):
        collector = CollectingSink()
        for path in ["b", "a/z", "a"]:
            collector.write_path(path)
        stream = io.BytesIO()
        collector.drain_to(StreamSink(stream))
        assert stream.getvalue() == b"a\na/z\nb\n"
        assert collector.paths == []


@pytest.fixture
def undecodable_tree(tmp_path: Path) -> Path:
    """A directory holding one file whose name is not valid UTF-8."""
    if os.name != "posix":
        pytest.skip("byte file names are POSIX only")
    root = tmp_path / "bytes"
    root.mkdir()
    try:
        with open(os.path.join(os.fsencode(root), b"caf\xe9.txt"), "wb"):
            pass
    except OSError:
        pytest.skip("filesystem rejects non-UTF-8 file names")
    (root / "b.txt").write_text("")
    return root


class TestRawBytesOutput:
    def test_stream_sink_writes_original_bytes(self, undecodable_tree: Path):
        part = Part(name="txt", directory=str(undecodable_tree), include_globs=("*.txt",))
        stream = io.BytesIO()
        assert walk_part(part, StreamSink(stream), threads=2) == []

        prefix = os.fsencode(undecodable_tree) + b"/"
        assert sorted(stream.getvalue().splitlines()) == [prefix + b"b.txt", prefix + b"caf\xe9.txt"]

    def test_sorted_output_keeps_original_bytes(self, undecodable_tree: Path):
        part = Part(name="txt", directory=str(undecodable_tree), include_globs=("*.txt",))
        collector = CollectingSink()
        walk_part(part, collector)
        stream = io.BytesIO()
        collector.drain_to(StreamSink(stream))

        prefix = os.fsencode(undecodable_tree) + b"/"
        assert stream.getvalue() == prefix + b"b.txt\n" + prefix + b"caf\xe9.txt\n"

    def test_patterns_see_the_raw_name(self, undecodable_tree: Path):
        part = Part(name="cafe", directory=str(undecodable_tree), include_regexes=("^caf\\xe9",))
        collector = CollectingSink()
        walk_part(part, collector)
        assert [os.fsencode(p) for p in collector.paths] == [os.fsencode(undecodable_tree) + b"/caf\xe9.txt"]
