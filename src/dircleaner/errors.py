"""Error types for dircleaner."""


class DirCleanerError(Exception):
    """Base class for dircleaner errors."""


class InvalidKeyError(DirCleanerError, ValueError):
    """A cache key was empty or not a string."""


class ScanFailure(DirCleanerError):
    """Sizing or stat of a single candidate failed."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class DeleteFailure(DirCleanerError):
    """Removing a target directory failed."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class PersistFailure(DirCleanerError):
    """The cache file could not be written."""


class LoadFailure(DirCleanerError):
    """The cache file could not be read."""
