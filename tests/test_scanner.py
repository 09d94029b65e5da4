"""Tests for discovery and sizing."""

from pathlib import Path
from unittest.mock import patch

import pytest

import dircleaner.scanner as scanner_module
from dircleaner.cache import LocalCache
from dircleaner.models import SizeInfo
from dircleaner.scanner import (
    Scanner,
    build_hint,
    days_ago,
    find_matching_directories,
    get_target_files_size,
)


@pytest.fixture
def cache(tmp_path, clock):
    return LocalCache(tmp_path / ".data" / "cache.json", tmp_path, "node_modules", clock=clock)


@pytest.fixture
def scanner(cache):
    return Scanner("node_modules", cache, max_workers=4)


DEEP_LEVELS = 1100


@pytest.fixture
def deep_tree(tmp_path):
    """
    tmp_path/deep/d/d/.../node_modules/f, nested deeper than the default
    recursion limit. Built and torn down one level at a time.
    """
    levels = [tmp_path / "deep"]
    levels[0].mkdir()
    for _ in range(DEEP_LEVELS):
        levels.append(levels[-1] / "d")
        levels[-1].mkdir()
    levels.append(levels[-1] / "node_modules")
    levels[-1].mkdir()
    leaf = levels[-1] / "f"
    leaf.write_bytes(b"x")

    yield levels[-1]

    if leaf.exists():
        leaf.unlink()
    for level in reversed(levels):
        if level.exists():
            level.rmdir()


class TestFindMatchingDirectories:
    def test_finds_nested_match(self, tmp_path):
        target = tmp_path / "project" / "packages" / "ui" / "node_modules"
        target.mkdir(parents=True)

        assert list(find_matching_directories(tmp_path, "node_modules")) == [target]

    def test_skips_inside_match(self, tmp_path):
        outer = tmp_path / "project" / "node_modules"
        (outer / "dep" / "node_modules").mkdir(parents=True)

        assert list(find_matching_directories(tmp_path, "node_modules")) == [outer]

    def test_recurses_into_match_when_asked(self, tmp_path):
        inner = tmp_path / "project" / "node_modules" / "dep" / "node_modules"
        inner.mkdir(parents=True)

        results = list(find_matching_directories(tmp_path, "node_modules", skip_inside_match=False))
        assert len(results) == 2
        assert inner in results

    def test_skips_vcs_directories(self, tmp_path):
        (tmp_path / ".git" / "node_modules").mkdir(parents=True)
        assert list(find_matching_directories(tmp_path, "node_modules")) == []

    def test_missing_root(self, tmp_path):
        assert list(find_matching_directories(tmp_path / "missing", "node_modules")) == []

    def test_ignores_symlinks(self, tmp_path):
        real = tmp_path / "real" / "node_modules"
        real.mkdir(parents=True)
        (tmp_path / "link").symlink_to(tmp_path / "real")

        assert list(find_matching_directories(tmp_path, "node_modules")) == [real]

    def test_tree_deeper_than_recursion_limit(self, tmp_path, deep_tree):
        assert list(find_matching_directories(tmp_path / "deep", "node_modules")) == [deep_tree]


class TestGetTargetFilesSize:
    def test_counts_only_target_files(self, tmp_path, make_file):
        make_file(tmp_path / "node_modules" / "a.js", 100)
        make_file(tmp_path / "node_modules" / "dep" / "b.js", 50)
        make_file(tmp_path / "src" / "index.js", 1000)

        assert get_target_files_size(tmp_path, "node_modules") == (150, 2)

    def test_nested_targets_counted_once(self, tmp_path, make_file):
        make_file(tmp_path / "node_modules" / "dep" / "node_modules" / "c.js", 30)
        make_file(tmp_path / "node_modules" / "d.js", 20)

        assert get_target_files_size(tmp_path, "node_modules") == (50, 2)

    def test_deep_target(self, tmp_path, make_file):
        make_file(tmp_path / "packages" / "ui" / "node_modules" / "x.js", 10)
        assert get_target_files_size(tmp_path, "node_modules") == (10, 1)

    def test_no_matches(self, tmp_path, make_file):
        make_file(tmp_path / "src" / "index.js", 10)
        (tmp_path / "node_modules").mkdir()
        assert get_target_files_size(tmp_path, "node_modules") == (0, 0)

    def test_missing_path_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_target_files_size(tmp_path / "missing", "node_modules")

    def test_tree_deeper_than_recursion_limit(self, tmp_path, deep_tree):
        assert get_target_files_size(tmp_path / "deep", "node_modules") == (1, 1)


class TestGetDirectories:
    def test_attributes_nested_match_to_top_level(self, tmp_path, scanner):
        (tmp_path / "a" / "node_modules").mkdir(parents=True)
        (tmp_path / "b" / "packages" / "x" / "node_modules").mkdir(parents=True)
        (tmp_path / "c" / "src").mkdir(parents=True)

        assert sorted(scanner.get_directories(tmp_path)) == ["a", "b"]

    def test_excludes_empty_placeholder(self, tmp_path, scanner):
        (tmp_path / "empty" / "node_modules").mkdir(parents=True)
        (tmp_path / "a" / "node_modules").mkdir(parents=True)

        assert scanner.get_directories(tmp_path) == ["a"]

    def test_no_duplicates(self, tmp_path, scanner):
        (tmp_path / "a" / "node_modules").mkdir(parents=True)
        (tmp_path / "a" / "one" / "node_modules").mkdir(parents=True)
        (tmp_path / "a" / "two" / "node_modules").mkdir(parents=True)

        assert scanner.get_directories(tmp_path) == ["a"]

    def test_top_level_target(self, tmp_path, scanner):
        (tmp_path / "node_modules").mkdir()
        assert scanner.get_directories(tmp_path) == ["node_modules"]

    def test_ignores_files(self, tmp_path, scanner, make_file):
        make_file(tmp_path / "a" / "node_modules", 5)
        assert scanner.get_directories(tmp_path) == []

    def test_missing_root_raises(self, tmp_path, scanner):
        with pytest.raises(OSError):
            scanner.get_directories(tmp_path / "missing")


class TestGetRecursiveTargetDirSize:
    def test_computes_and_caches(self, tmp_path, scanner, cache, make_file):
        make_file(tmp_path / "a" / "node_modules" / "f", 1234)

        size = scanner.get_recursive_target_dir_size(tmp_path / "a")

        assert size == SizeInfo(size=1234)
        assert cache.get(str(tmp_path / "a")) == SizeInfo(size=1234)
        assert cache.cache_path.exists()

    def test_cached_value_skips_scan(self, tmp_path, scanner, make_file):
        make_file(tmp_path / "a" / "node_modules" / "f", 10)

        with patch(
            "dircleaner.scanner.get_target_files_size",
            wraps=scanner_module.get_target_files_size,
        ) as mock_scan:
            first = scanner.get_recursive_target_dir_size(tmp_path / "a")
            second = scanner.get_recursive_target_dir_size(tmp_path / "a")

        assert first == second == SizeInfo(size=10)
        assert mock_scan.call_count == 1

    def test_expired_value_rescans(self, tmp_path, scanner, clock, make_file):
        make_file(tmp_path / "a" / "node_modules" / "f", 10)
        scanner.get_recursive_target_dir_size(tmp_path / "a")

        make_file(tmp_path / "a" / "node_modules" / "g", 5)
        clock.advance(minutes=10)

        assert scanner.get_recursive_target_dir_size(tmp_path / "a").size == 15

    def test_zero_result_not_cached(self, tmp_path, scanner, cache):
        (tmp_path / "b" / "node_modules").mkdir(parents=True)

        assert scanner.get_recursive_target_dir_size(tmp_path / "b") == SizeInfo(size=0)
        assert not cache.has(str(tmp_path / "b"))

    def test_empty_files_are_cached(self, tmp_path, scanner, cache, make_file):
        make_file(tmp_path / "b" / "node_modules" / "empty.txt", 0)

        assert scanner.get_recursive_target_dir_size(tmp_path / "b").size == 0
        assert cache.has(str(tmp_path / "b"))


class TestBuildHint:
    def test_hint_format(self):
        from datetime import datetime, timedelta, timezone

        now = datetime.now(timezone.utc)
        hint = build_hint(SizeInfo(size=5_000_000), now - timedelta(days=3), now - timedelta(days=1))
        assert hint == "Size: 5.00 MB | modified: 3d ago | accessed: 1d ago"


class TestGetChoices:
    def test_five_mb_and_empty(self, tmp_path, scanner, make_file):
        make_file(tmp_path / "a" / "node_modules" / "big.bin", 5_000_000)
        (tmp_path / "b" / "node_modules").mkdir(parents=True)

        report = scanner.get_choices(tmp_path)

        assert report.ok
        sizes = {c.name: c.size_in_mb for c in report.candidates}
        assert sizes == {"a": pytest.approx(5.0), "b": 0}
        candidate = next(c for c in report.candidates if c.name == "a")
        assert candidate.hint.startswith("Size: 5.00 MB")

    def test_keeps_discovery_order(self, tmp_path, scanner, make_file):
        for name in ["x", "y", "z", "w"]:
            make_file(tmp_path / name / "node_modules" / "f", 1)

        order = scanner.get_directories(tmp_path)
        report = scanner.get_choices(tmp_path)

        assert [c.name for c in report.candidates] == order

    def test_failed_candidate_is_dropped(self, tmp_path, scanner, make_file):
        make_file(tmp_path / "good" / "node_modules" / "f", 10)
        make_file(tmp_path / "bad" / "node_modules" / "f", 10)
        real_scan = scanner_module.get_target_files_size

        def flaky(path, target_dir):
            if Path(path).name == "bad":
                raise PermissionError("denied")
            return real_scan(path, target_dir)

        with patch("dircleaner.scanner.get_target_files_size", side_effect=flaky):
            report = scanner.get_choices(tmp_path)

        assert report.ok
        assert [c.name for c in report.candidates] == ["good"]
        assert len(report.failures) == 1
        assert report.failures[0].name == "bad"
        assert "denied" in report.failures[0].error

    def test_unreadable_root_is_an_error(self, tmp_path, scanner):
        report = scanner.get_choices(tmp_path / "missing")

        assert not report.ok
        assert report.error
        assert report.candidates == []

    def test_nothing_found_is_not_an_error(self, tmp_path, scanner):
        (tmp_path / "src").mkdir()
        report = scanner.get_choices(tmp_path)

        assert report.ok
        assert report.candidates == []

    def test_twenty_concurrent_candidates(self, tmp_path, scanner, cache, make_file):
        for i in range(20):
            make_file(tmp_path / f"project{i:02d}" / "node_modules" / "f", i + 1)

        report = scanner.get_choices(tmp_path)

        assert len(report.candidates) == 20
        assert len(cache) == 20
        for i in range(20):
            assert cache.get(str(tmp_path / f"project{i:02d}")).size == i + 1

    def test_deep_tree_beside_good_candidate(self, tmp_path, scanner, make_file, deep_tree):
        make_file(tmp_path / "good" / "node_modules" / "f", 10)

        report = scanner.get_choices(tmp_path)

        assert report.ok
        assert report.failures == []
        sizes = {c.name: c.size for c in report.candidates}
        assert sizes == {"deep": 1, "good": 10}

    def test_unexpected_error_becomes_failure(self, tmp_path, scanner, make_file):
        make_file(tmp_path / "good" / "node_modules" / "f", 10)
        make_file(tmp_path / "bad" / "node_modules" / "f", 10)
        real_scan = scanner_module.get_target_files_size

        def exploding(path, target_dir):
            if Path(path).name == "bad":
                raise RecursionError("maximum recursion depth exceeded")
            return real_scan(path, target_dir)

        with patch("dircleaner.scanner.get_target_files_size", side_effect=exploding):
            report = scanner.get_choices(tmp_path)

        assert report.ok
        assert [c.name for c in report.candidates] == ["good"]
        assert [f.name for f in report.failures] == ["bad"]
        assert "RecursionError" in report.failures[0].error


class TestDaysAgo:
    def test_whole_days(self):
        from datetime import datetime, timedelta, timezone

        now = datetime(2024, 3, 10, 12, tzinfo=timezone.utc)
        assert days_ago(now - timedelta(days=2, hours=23), now) == 2
        assert days_ago(now, now) == 0

    def test_defaults_to_current_time(self):
        from datetime import datetime, timedelta, timezone

        assert days_ago(datetime.now(timezone.utc) - timedelta(days=5, minutes=1)) == 5
