"""Generate directories of known sizes for trying out the cleaner."""

import logging
from pathlib import Path
from typing import Iterable

from dircleaner.config import TARGET_DIR_TO_REMOVE

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB

# (directory name, size in MB)
TEST_DIRS: tuple[tuple[str, int], ...] = (
    ("huge", 100),
    ("medium", 10),
    ("small", 1),
)


def write_file_of_size(file_path: Path, size_in_mb: int) -> None:
    """
    Write size_in_mb chunks of 1 MiB to file_path, creating parent directories.

    Args:
        file_path: File to create (overwritten if it exists)
        size_in_mb: Number of 1 MiB chunks to write
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)
    chunk = b"0" * CHUNK_SIZE
    with open(file_path, "wb") as f:
        for _ in range(size_in_mb):
            f.write(chunk)


def init_test_dirs(
    base_dir: Path,
    target_dir: str = TARGET_DIR_TO_REMOVE,
    dirs: Iterable[tuple[str, int]] = TEST_DIRS,
) -> list[Path]:
    """
    Create <base_dir>/<name>/<target_dir>/test.txt for each (name, size) pair.

    Returns:
        Paths of the files written
    """
    created = []
    for name, size in dirs:
        file_path = base_dir / name / target_dir / "test.txt"
        write_file_of_size(file_path, size)
        created.append(file_path)
        logger.debug("Created %s (%s MB)", file_path, size)
    return created
