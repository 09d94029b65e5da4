"""Discovery and sizing of target directories.

Finds every top-level directory under a root that contains the target
directory name (like node_modules) at any depth, and measures how many bytes
of files sit beneath those target directories. Measurements are read from and
written to a LocalCache.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from dircleaner.cache import LocalCache
from dircleaner.config import MAX_WORKERS
from dircleaner.errors import ScanFailure
from dircleaner.models import Candidate, CandidateError, ScanReport, SizeInfo

logger = logging.getLogger(__name__)

# Placeholder name never offered as a candidate
EMPTY_PLACEHOLDER = "empty"

# Version control internals never hold dependency directories
SKIP_DIRECTORIES = frozenset({".git", ".svn", ".hg"})

SECONDS_PER_DAY = 60 * 60 * 24


def find_matching_directories(
    root: Path,
    name: str,
    skip_inside_match: bool = True,
) -> Generator[Path, None, None]:
    """
    Find directories called name beneath root, at any depth.

    Uses os.scandir with an explicit stack, so tree depth is not limited by
    the interpreter's recursion limit. Symlinks are not followed and
    unreadable directories are skipped.

    Args:
        root: Directory to start searching from
        name: Directory name to match (e.g., 'node_modules')
        skip_inside_match: If True, don't descend into matched directories

    Yields:
        Paths to matching directories
    """
    stack = [Path(root)]
    while stack:
        current = stack.pop()
        subdirectories = []
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if not entry.is_dir(follow_symlinks=False):
                            continue
                    except OSError:
                        continue
                    if entry.name in SKIP_DIRECTORIES and entry.name != name:
                        continue

                    entry_path = Path(entry.path)

                    if entry.name == name:
                        yield entry_path
                        if skip_inside_match:
                            continue

                    subdirectories.append(entry_path)
        except OSError:
            continue

        # Reversed so siblings are walked in listing order
        stack.extend(reversed(subdirectories))


def get_target_files_size(path: Path, target_dir: str) -> tuple[int, int]:
    """
    Sum the sizes of files under path that have target_dir in their path.

    A file counts when any segment of its path relative to path (its own
    name included) equals target_dir. Each file is visited once, so nested
    target directories are never counted twice. Errors propagate.

    Returns:
        Tuple of (total_bytes, file_count)
    """
    total_size = 0
    file_count = 0

    stack = [(os.fspath(path), False)]
    while stack:
        current, inside = stack.pop()
        with os.scandir(current) as entries:
            for entry in entries:
                matched = inside or entry.name == target_dir
                if entry.is_dir(follow_symlinks=False):
                    stack.append((entry.path, matched))
                elif matched and entry.is_file(follow_symlinks=False):
                    total_size += entry.stat(follow_symlinks=False).st_size
                    file_count += 1

    return total_size, file_count


def days_ago(then: datetime, now: datetime | None = None) -> int:
    """Whole days between then and now (defaults to the current time)."""
    if now is None:
        now = datetime.now(timezone.utc)
    return int((now - then).total_seconds() // SECONDS_PER_DAY)


def build_hint(size_info: SizeInfo, mtime: datetime, atime: datetime) -> str:
    """One-line summary shown next to a candidate."""
    now = datetime.now(timezone.utc)
    return (
        f"Size: {size_info.size_in_mb:.2f} MB | "
        f"modified: {days_ago(mtime, now)}d ago | "
        f"accessed: {days_ago(atime, now)}d ago"
    )


class Scanner:
    """Finds and sizes target directories, backed by a LocalCache."""

    def __init__(
        self,
        target_dir: str,
        cache: LocalCache,
        max_workers: int = MAX_WORKERS,
    ) -> None:
        self.target_dir = target_dir
        self.cache = cache
        self.max_workers = max_workers

    def get_directories(self, root_path: Path) -> list[str]:
        """
        Names of the immediate children of root_path holding the target.

        A child counts if it is itself named like the target or contains a
        target directory at any depth. Order follows the directory listing,
        duplicates and the "empty" placeholder are dropped. An unreadable
        root_path raises OSError.
        """
        directories: list[str] = []
        with os.scandir(root_path) as entries:
            for entry in entries:
                try:
                    if not entry.is_dir(follow_symlinks=False):
                        continue
                except OSError:
                    continue
                name = entry.name
                if name == EMPTY_PLACEHOLDER or name in directories:
                    continue
                if name == self.target_dir:
                    directories.append(name)
                    continue
                found = next(find_matching_directories(Path(entry.path), self.target_dir), None)
                if found is not None:
                    directories.append(name)

        logger.debug("Found %s directories under %s", len(directories), root_path)
        return directories

    def get_recursive_target_dir_size(self, path: Path) -> SizeInfo:
        """
        Size of all target files under path, cache-assisted.

        A fresh cached value is returned without touching the disk. Otherwise
        the tree is walked, and a non-zero result is cached and persisted.
        Zero results are not cached so a later install gets picked up.
        """
        key = str(Path(path).resolve())
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        size, file_count = get_target_files_size(Path(path), self.target_dir)
        if file_count == 0:
            return SizeInfo(size=0)

        size_info = SizeInfo(size=size)
        self.cache.set(key, size_info)
        self.cache.save()
        return size_info

    def build_candidate(self, root_path: Path, name: str) -> Candidate:
        """Stat and size one directory. Raises ScanFailure if either step fails."""
        full_path = Path(root_path) / name
        try:
            stats = os.lstat(full_path)
            size_info = self.get_recursive_target_dir_size(full_path)
        except OSError as e:
            raise ScanFailure(str(full_path), str(e)) from e
        except Exception as e:
            raise ScanFailure(str(full_path), f"{type(e).__name__}: {e}") from e

        mtime = datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc)
        atime = datetime.fromtimestamp(stats.st_atime, tz=timezone.utc)
        return Candidate(
            name=name,
            size=size_info.size,
            mtime=mtime,
            atime=atime,
            hint=build_hint(size_info, mtime, atime),
        )

    def get_choices(self, root_path: Path) -> ScanReport:
        """
        Build a Candidate for every directory found under root_path.

        Candidates are sized in parallel. A candidate that fails is logged and
        recorded in the report's failures without affecting the others. If the
        root itself cannot be listed the report carries an error instead.
        """
        root = str(root_path)
        try:
            directories = self.get_directories(root_path)
        except OSError as e:
            logger.error("Could not scan %s: %s", root_path, e)
            return ScanReport(root=root, error=str(e))

        candidates: dict[str, Candidate] = {}
        failures: list[CandidateError] = []

        if directories:
            workers = min(self.max_workers, len(directories))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                future_to_name = {
                    executor.submit(self.build_candidate, root_path, name): name
                    for name in directories
                }

                for future in as_completed(future_to_name):
                    name = future_to_name[future]
                    try:
                        candidates[name] = future.result()
                    except ScanFailure as e:
                        logger.warning("Skipping %s: %s", name, e)
                        failures.append(CandidateError(name=name, error=str(e)))

        self.cache.save()

        return ScanReport(
            root=root,
            candidates=[candidates[name] for name in directories if name in candidates],
            failures=failures,
        )
