"""Candidate listing, selection and removal for dircleaner."""

import logging
import shutil
from pathlib import Path
from typing import Callable, Optional

from dircleaner.cache import LocalCache
from dircleaner.config import CleanerConfig
from dircleaner.errors import DeleteFailure
from dircleaner.models import (
    Candidate,
    DeletionResult,
    RunReport,
    RunStatus,
    ScanReport,
    SizeInfo,
    SortKey,
)
from dircleaner.scanner import Scanner, find_matching_directories

logger = logging.getLogger(__name__)

SelectCallback = Callable[[list[Candidate]], list[str]]
ConfirmCallback = Callable[[list[str], SizeInfo], bool]


def remove_tree(path: Path) -> bool:
    """
    Recursively remove path.

    Returns False if there was nothing to remove. Raises DeleteFailure if the
    removal fails.
    """
    if not path.exists() and not path.is_symlink():
        return False

    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        return False
    except (OSError, RecursionError) as e:
        raise DeleteFailure(str(path), str(e)) from e

    return True


def sort_choices(choices: list[Candidate], sort_by: SortKey | str = SortKey.SIZE) -> list[Candidate]:
    """
    Order candidates descending by size, mtime or atime.

    The sort is stable, so equal values keep their discovery order. Unknown
    keys fall back to size.
    """
    try:
        key = SortKey(sort_by)
    except ValueError:
        key = SortKey.SIZE

    return sorted(choices, key=lambda c: getattr(c, key.value), reverse=True)


def filter_choices(choices: list[Candidate], show_empty: bool = False) -> list[Candidate]:
    """Drop zero-size candidates unless show_empty is set."""
    if show_empty:
        return list(choices)
    return [c for c in choices if c.size > 0]


class DirectoryCleaner:
    """Lists, sizes and removes target directories under a working directory."""

    def __init__(self, config: CleanerConfig, cache: Optional[LocalCache] = None) -> None:
        self.config = config
        self.cache = cache if cache is not None else LocalCache.from_config(config)
        self.scanner = Scanner(config.target_dir, self.cache, max_workers=config.max_workers)

    @property
    def working_dir(self) -> Path:
        return self.config.working_dir

    @property
    def target_dir(self) -> str:
        return self.config.target_dir

    def load_cache(self) -> None:
        """Read the cache from disk, or start empty when caching is off."""
        if self.config.use_cache:
            self.cache.load(self.working_dir, self.target_dir, self.config.cache_path)
            self.cache.cleanup_expired_entries()
        else:
            self.cache.clear()

    def get_choices(self) -> ScanReport:
        return self.scanner.get_choices(self.working_dir)

    def delete_dir(self, directory: str | Path) -> DeletionResult:
        """
        Remove every target directory beneath one candidate.

        The candidate's own target directory goes first, then any target
        directories still left deeper in the tree. Missing paths are fine.
        When a removal fails it is logged and recorded, and the target
        directories nested inside the failed one are attempted next.
        """
        candidate_path = self.working_dir / directory
        result = DeletionResult(directory=str(directory))
        attempted: set[Path] = set()

        def _remove_all(paths: list[Path]) -> None:
            stack = list(reversed(paths))
            while stack:
                path = stack.pop()
                if path in attempted:
                    continue
                attempted.add(path)
                try:
                    if remove_tree(path):
                        result.removed.append(str(path))
                        logger.debug("Removed %s", path)
                except DeleteFailure as e:
                    logger.warning("Error removing directory %s", e)
                    result.errors.append(str(e))
                    nested = list(find_matching_directories(path, self.target_dir))
                    stack.extend(reversed(nested))

        _remove_all([candidate_path / self.target_dir])

        # Outermost matches only: removing them takes the nested ones too
        _remove_all(list(dict.fromkeys(find_matching_directories(candidate_path, self.target_dir))))

        return result

    def selection_size(self, names: list[str]) -> SizeInfo:
        """Total size of the selected candidates."""
        total = 0
        for name in names:
            try:
                total += self.scanner.get_recursive_target_dir_size(self.working_dir / name).size
            except OSError as e:
                logger.warning("Could not size %s: %s", name, e)
        return SizeInfo(size=total)

    def remove_selected(self, names: list[str]) -> list[DeletionResult]:
        """Delete each selection in turn, dropping its cache entry, then save."""
        logger.info(
            "Removing %s from %s directories in %s",
            self.target_dir,
            len(names),
            self.working_dir,
        )
        results = []
        for name in names:
            results.append(self.delete_dir(name))
            self.cache.remove(str(self.working_dir / name))

        self.cache.save()
        return results

    def run(self, select: SelectCallback, confirm: ConfirmCallback) -> RunReport:
        """
        List, sort and filter candidates, then delete what the user picks.

        Args:
            select: Receives the sorted candidates, returns the chosen names
            confirm: Receives the chosen names and their total size, returns
                whether to go ahead

        Returns:
            RunReport describing what happened
        """
        report = RunReport(
            status=RunStatus.NOTHING_FOUND,
            working_dir=str(self.working_dir),
            target_dir=self.target_dir,
        )

        scan = self.get_choices()
        report.scan_failures = scan.failures
        if not scan.ok:
            report.status = RunStatus.SCAN_FAILED
            report.error = scan.error
            return report

        choices = filter_choices(
            sort_choices(scan.candidates, self.config.sort_by),
            self.config.show_empty,
        )
        report.candidates = choices
        if not choices:
            logger.info("No directories found to remove %s from", self.target_dir)
            return report

        known = {c.name for c in choices}
        selected = [name for name in dict.fromkeys(select(choices)) if name in known]
        report.selected = selected
        if not selected:
            report.status = RunStatus.NOTHING_SELECTED
            return report

        report.total = self.selection_size(selected)
        if not confirm(selected, report.total):
            logger.info("Aborting")
            report.status = RunStatus.ABORTED
            return report

        report.results = self.remove_selected(selected)
        report.status = RunStatus.COMPLETED
        logger.info(
            "Removal of %s from %s directories in %s completed",
            self.target_dir,
            len(selected),
            self.working_dir,
        )
        return report
