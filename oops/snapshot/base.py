from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime


@dataclass(frozen=True)
class Snapshot:
    """One immutable recorded state of a tracked file."""

    number: int
    message: str
    timestamp: str
    object: str  # sha256 of the original bytes
    size: int = 0
    compressed: bool = False

    @property
    def created(self):
        return datetime.fromisoformat(self.timestamp)

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        """Raises KeyError, TypeError or ValueError on a malformed entry."""
        timestamp = data["timestamp"]
        datetime.fromisoformat(timestamp)
        return cls(
            number=int(data["number"]),
            message=data.get("message", ""),
            timestamp=timestamp,
            object=data["object"],
            size=int(data.get("size", 0)),
            compressed=bool(data.get("compressed", False)),
        )


class SnapshotRepository(ABC):
    """Base interface for one file's linear snapshot history.

    Implementations: LocalSnapshotRepository (directory container).
    """

    @abstractmethod
    def exists(self):
        """Whether the container has been initialized."""
        pass

    @abstractmethod
    def initialize(self):
        """Record the working file as snapshot #1."""
        pass

    @abstractmethod
    def save(self, message=""):
        """Record the working file as the next snapshot. Returns the Snapshot."""
        pass

    @abstractmethod
    def restore(self, version, force=False):
        """Overwrite the working file with a snapshot and move current there."""
        pass

    @abstractmethod
    def restore_to_current(self):
        """Discard working-file edits by rewriting the current snapshot."""
        pass

    @abstractmethod
    def diff(self, a=None, b=None):
        """Unified-diff text; empty string when nothing differs."""
        pass

    @abstractmethod
    def history(self):
        """All snapshots, oldest first."""
        pass

    @abstractmethod
    def has_changes(self):
        pass

    @abstractmethod
    def current_position(self):
        """Return (current, latest) version numbers."""
        pass

    @abstractmethod
    def delete(self):
        """Remove the whole container."""
        pass
