from oops.snapshot.base import Snapshot, SnapshotRepository
from oops.snapshot.local import LocalSnapshotRepository

__all__ = ["Snapshot", "SnapshotRepository", "LocalSnapshotRepository", "open_repository"]


def open_repository(location):
    """Create the snapshot repository for a resolved Location."""
    return LocalSnapshotRepository(location.file_path, location.container_path)
