"""dircleaner - find, size and remove dependency directories."""

__version__ = "0.1.0"
