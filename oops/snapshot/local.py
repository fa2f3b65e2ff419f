"""Directory-backed snapshot container.

Layout:

    <name>.container/
        index.json          file name, current position, snapshot entries
        objects/<sha256>    content blobs, gzip or raw (see oops.compress)
        lock                advisory lock for mutating operations

Blobs are written before the index entry that references them, and every
write goes through a temp file + rename, so an interrupted command leaves
either the old or the new state on disk.
"""

import hashlib
import json
import os
import shutil
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from oops import compress
from oops.diff import unified_diff
from oops.errors import (
    AlreadyExistsError,
    IntegrityError,
    NoChangesError,
    NotInitializedError,
    UncommittedChangesError,
    VersionNotFoundError,
)
from oops.snapshot.base import Snapshot, SnapshotRepository

try:
    import fcntl
    _FCNTL_AVAILABLE = True
except ImportError:
    _FCNTL_AVAILABLE = False  # Windows: no locking, concurrent commands can race

INDEX_NAME = "index.json"
OBJECTS_DIR = "objects"
LOCK_NAME = "lock"

INITIAL_MESSAGE = "Initial snapshot"


def atomic_write(path, data, mode_from=None):
    """Write bytes to path via temp file + rename.

    mode_from copies permission bits from an existing file (the working
    file being replaced) so restoring a script keeps it executable.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode_from is not None and Path(mode_from).exists():
            shutil.copymode(mode_from, tmp_path)
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def _digest(data):
    return hashlib.sha256(data).hexdigest()


class LocalSnapshotRepository(SnapshotRepository):

    def __init__(self, working_path, container_path):
        self.working_path = Path(working_path)
        self.container_path = Path(container_path)

    @property
    def file_name(self):
        return self.working_path.name

    @property
    def index_path(self):
        return self.container_path / INDEX_NAME

    @property
    def objects_dir(self):
        return self.container_path / OBJECTS_DIR

    def exists(self):
        return self.index_path.is_file()

    def initialize(self):
        if self.exists():
            raise AlreadyExistsError(self.file_name)

        data = self.working_path.read_bytes()
        self.objects_dir.mkdir(parents=True, exist_ok=True)

        with self._locked():
            if self.exists():
                raise AlreadyExistsError(self.file_name)
            snapshot = self._record(data, 1, INITIAL_MESSAGE)
            self._write_index({
                "file": self.file_name,
                "current": 1,
                "snapshots": [snapshot.to_dict()],
            })
        return snapshot

    def save(self, message=""):
        self._require()
        with self._locked():
            index = self._load_index()
            snapshots = self._snapshots(index)
            latest = snapshots[-1]

            data = self.working_path.read_bytes()
            if data == self._read_object(latest):
                raise NoChangesError()

            next_num = latest.number + 1
            snapshot = self._record(data, next_num, message or f"Snapshot #{next_num}")
            index["snapshots"].append(snapshot.to_dict())
            index["current"] = next_num
            self._write_index(index)
        return snapshot

    def restore(self, version, force=False):
        self._require()
        with self._locked():
            index = self._load_index()
            target = self._find(index, version)

            if not force:
                current = self._find(index, self._current(index))
                if self._working_differs(current):
                    raise UncommittedChangesError()

            self._write_working(self._read_object(target))
            index["current"] = target.number
            self._write_index(index)

    def restore_to_current(self):
        self._require()
        with self._locked():
            index = self._load_index()
            current = self._find(index, self._current(index))
            self._write_working(self._read_object(current))

    def delete(self):
        if self.container_path.exists():
            shutil.rmtree(self.container_path)

    def diff(self, a=None, b=None):
        self._require()
        if a is None and b is not None:
            raise ValueError("diff() needs the first version when the second is given")

        index = self._load_index()
        if a is None:
            old = self._read_object(self._find(index, self._current(index)))
            new = self.working_path.read_bytes()
        elif b is None:
            old = self._read_object(self._find(index, a))
            new = self.working_path.read_bytes()
        else:
            old = self._read_object(self._find(index, a))
            new = self._read_object(self._find(index, b))
        return unified_diff(self.file_name, old, new)

    def history(self):
        self._require()
        return self._snapshots(self._load_index())

    def has_changes(self):
        self._require()
        index = self._load_index()
        return self._working_differs(self._find(index, self._current(index)))

    def current_position(self):
        self._require()
        index = self._load_index()
        return self._current(index), self._snapshots(index)[-1].number

    def read(self, version):
        """Exact bytes recorded for a version."""
        self._require()
        return self._read_object(self._find(self._load_index(), version))

    def _require(self):
        if not self.exists():
            raise NotInitializedError(self.file_name)

    @contextmanager
    def _locked(self):
        """Exclusive advisory lock over the container while it is mutated."""
        self.container_path.mkdir(parents=True, exist_ok=True)
        lock_fd = open(self.container_path / LOCK_NAME, "w")
        try:
            if _FCNTL_AVAILABLE:
                fcntl.flock(lock_fd, fcntl.LOCK_EX)
            yield
        finally:
            if _FCNTL_AVAILABLE:
                fcntl.flock(lock_fd, fcntl.LOCK_UN)
            lock_fd.close()

    def _load_index(self):
        try:
            index = json.loads(self.index_path.read_text())
        except FileNotFoundError:
            raise NotInitializedError(self.file_name)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise IntegrityError(f"unreadable index for '{self.file_name}': {e}") from e
        if not isinstance(index, dict) or not index.get("snapshots"):
            raise IntegrityError(f"index for '{self.file_name}' has no snapshots")
        return index

    def _write_index(self, index):
        atomic_write(self.index_path, (json.dumps(index, indent=2) + "\n").encode())

    def _snapshots(self, index):
        try:
            snapshots = [Snapshot.from_dict(s) for s in index["snapshots"]]
        except (KeyError, TypeError, ValueError) as e:
            raise IntegrityError(f"malformed snapshot entry for '{self.file_name}': {e}") from e
        return sorted(snapshots, key=lambda s: s.number)

    def _find(self, index, version):
        latest = self._snapshots(index)[-1].number
        if not isinstance(version, int) or version < 1 or version > latest:
            raise VersionNotFoundError(version)
        for snapshot in self._snapshots(index):
            if snapshot.number == version:
                return snapshot
        raise IntegrityError(f"snapshot #{version} missing from index of '{self.file_name}'")

    def _current(self, index):
        """Stored current position; the latest version when absent or invalid."""
        latest = self._snapshots(index)[-1].number
        current = index.get("current")
        if isinstance(current, int) and not isinstance(current, bool) and 1 <= current <= latest:
            return current
        return latest

    def _write_working(self, data):
        # Replace the link target, not the link, when the working file is a symlink
        target = Path(os.path.realpath(self.working_path))
        atomic_write(target, data, mode_from=target)

    def _working_differs(self, snapshot):
        try:
            data = self.working_path.read_bytes()
        except FileNotFoundError:
            return True
        return data != self._read_object(snapshot)

    def _record(self, data, number, message):
        """Store content and return the Snapshot describing it."""
        digest = _digest(data)
        stored, compressed = compress.encode(data, self.file_name)
        path = self.objects_dir / digest
        # encode() is deterministic, so an existing blob has the same form
        if not path.exists():
            atomic_write(path, stored)
        return Snapshot(
            number=number,
            message=message,
            timestamp=datetime.now().isoformat(),
            object=digest,
            size=len(data),
            compressed=compressed,
        )

    def _read_object(self, snapshot):
        path = self.objects_dir / snapshot.object
        try:
            stored = path.read_bytes()
        except FileNotFoundError:
            raise IntegrityError(f"content for snapshot #{snapshot.number} is missing")
        data = compress.decode(stored, snapshot.compressed)
        if _digest(data) != snapshot.object:
            raise IntegrityError(f"content for snapshot #{snapshot.number} is corrupt")
        return data
