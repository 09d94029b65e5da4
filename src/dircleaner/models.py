"""Data models for dircleaner."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

BYTES_PER_MB = 1000**2


class SortKey(str, Enum):
    """Field used to order candidates (always descending)."""

    SIZE = "size"
    MTIME = "mtime"
    ATIME = "atime"


class RunStatus(str, Enum):
    """Outcome of a cleaner run."""

    COMPLETED = "completed"
    NOTHING_FOUND = "nothing_found"
    NOTHING_SELECTED = "nothing_selected"
    ABORTED = "aborted"
    SCAN_FAILED = "scan_failed"


class SizeInfo(BaseModel):
    """Cumulative size of the target files beneath a directory."""

    size: int = Field(0, ge=0, description="Total size in bytes")

    @computed_field(alias="sizeInMB")
    @property
    def size_in_mb(self) -> float:
        """Size in megabytes (decimal)."""
        return self.size / BYTES_PER_MB


class CacheEntry(BaseModel):
    """A persisted size measurement for one directory."""

    key: str = Field(..., description="Absolute path of the measured directory")
    saved: datetime = Field(..., description="When the measurement was taken")
    value: SizeInfo


class Candidate(BaseModel):
    """A directory under the working directory that holds the target."""

    name: str = Field(..., description="Directory name relative to the working directory")
    size: int = Field(..., ge=0, description="Total size of target files in bytes")
    mtime: datetime = Field(..., description="Last modification of the directory itself")
    atime: datetime = Field(..., description="Last access of the directory itself")
    hint: str = Field("", description="Human-readable summary for display")

    @property
    def size_in_mb(self) -> float:
        """Size in megabytes (decimal)."""
        return self.size / BYTES_PER_MB

    @property
    def size_info(self) -> SizeInfo:
        return SizeInfo(size=self.size)


class CandidateError(BaseModel):
    """A candidate that was dropped during scanning."""

    name: str
    error: str


class ScanReport(BaseModel):
    """Result of listing candidates under a root directory."""

    root: str = Field(..., description="Directory that was scanned")
    candidates: list[Candidate] = Field(default_factory=list)
    failures: list[CandidateError] = Field(default_factory=list)
    error: Optional[str] = Field(None, description="Set when discovery itself failed")

    @property
    def ok(self) -> bool:
        """False when the root could not be scanned at all."""
        return self.error is None


class DeletionResult(BaseModel):
    """Result of removing the target directories beneath one candidate."""

    directory: str = Field(..., description="Candidate directory")
    removed: list[str] = Field(default_factory=list, description="Paths that were removed")
    errors: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class RunReport(BaseModel):
    """Summary of a complete cleaner run."""

    status: RunStatus
    working_dir: str
    target_dir: str
    candidates: list[Candidate] = Field(default_factory=list)
    selected: list[str] = Field(default_factory=list)
    total: SizeInfo = Field(default_factory=SizeInfo)
    results: list[DeletionResult] = Field(default_factory=list)
    scan_failures: list[CandidateError] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def removed(self) -> list[str]:
        """Every path removed during the run."""
        return [path for result in self.results for path in result.removed]

    @property
    def errors(self) -> list[str]:
        """Every deletion error raised during the run."""
        return [error for result in self.results for error in result.errors]
