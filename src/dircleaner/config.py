"""Configuration for dircleaner."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from dircleaner.models import SortKey

MAX_CACHE_AGE = 300  # 5 minutes
CACHE_FILE = "cache.json"
TARGET_DIR_TO_REMOVE = "node_modules"
DATA_DIR = ".data"
TEST_DIR = "test"
MAX_WORKERS = 8


class CleanerConfig(BaseModel):
    """Everything a cleaner run needs, resolved up front."""

    working_dir: Path = Field(..., description="Root under which candidates are discovered")
    target_dir: str = Field(
        TARGET_DIR_TO_REMOVE,
        min_length=1,
        description="Directory name to search for and remove",
    )
    sort_by: SortKey = Field(SortKey.SIZE, description="Field to order candidates by")
    show_empty: bool = Field(False, description="Keep zero-size candidates")
    use_cache: bool = Field(True, description="Read the size cache from disk")
    data_dir: Optional[Path] = Field(
        None,
        description="Directory holding the cache file (defaults to <working_dir>/.data)",
    )
    cache_file: str = Field(CACHE_FILE, min_length=1)
    max_cache_age: float = Field(
        MAX_CACHE_AGE,
        ge=0,
        description="Seconds a size measurement stays valid",
    )
    max_workers: int = Field(MAX_WORKERS, ge=1, description="Parallel sizing tasks")

    @field_validator("working_dir")
    @classmethod
    def _absolute_working_dir(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    @field_validator("target_dir")
    @classmethod
    def _single_segment(cls, value: str) -> str:
        if "/" in value or "\\" in value or value in (".", ".."):
            raise ValueError("target_dir must be a single directory name")
        return value

    @property
    def cache_dir(self) -> Path:
        if self.data_dir is None:
            return self.working_dir / DATA_DIR
        return self.data_dir.expanduser().resolve()

    @property
    def cache_path(self) -> Path:
        return self.cache_dir / self.cache_file

    @property
    def test_dir(self) -> Path:
        """Where generated test fixtures are written."""
        return self.cache_dir / TEST_DIR
