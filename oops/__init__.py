"""oops: simple per-file versioning."""

__version__ = "0.3.0"
