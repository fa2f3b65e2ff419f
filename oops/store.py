"""Per-file version store.

Store ties a resolved storage location to its snapshot repository and exposes
the operations the command line uses. Module-level helpers enumerate tracked
files across a directory or the global store.

Commands are short-lived and single-threaded. Mutating repository calls take
an advisory lock on the container (POSIX only), so two commands racing on the
same file serialize rather than corrupting version numbers. Running commands
concurrently is still not a supported workflow.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path

from oops.errors import AlreadyExistsError, NoTrackedFileError, PathResolutionError
from oops.paths import CONTAINER_SUFFIX, METADATA_FILE, OOPS_DIR, absolute_path, global_root, resolve
from oops.snapshot import open_repository


class Store:
    """Versioning for a single file in local or global mode."""

    def __init__(self, file_path, global_mode=False):
        self.location = resolve(file_path, global_mode)
        self.repo = open_repository(self.location)

    @property
    def file_path(self):
        return self.location.file_path

    @property
    def file_name(self):
        return self.location.file_name

    @property
    def base_dir(self):
        return self.location.base_dir

    @property
    def global_mode(self):
        return self.location.global_mode

    @property
    def mode(self):
        return self.location.mode

    @property
    def storage_dir(self):
        return self.location.storage_dir

    def exists(self):
        return self.repo.exists()

    def initialize(self):
        """Start tracking: record the file as snapshot #1."""
        if self.exists():
            raise AlreadyExistsError(self.file_name)
        if not self.file_path.is_file():
            raise FileNotFoundError(f"file not found: {self.file_path}")

        created = not self.storage_dir.exists()
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        try:
            self.location.write_metadata()
            return self.repo.initialize()
        except Exception:
            if created and self.global_mode:
                shutil.rmtree(self.storage_dir, ignore_errors=True)
            raise

    def save(self, message=""):
        return self.repo.save(message.strip() if message else "")

    def restore(self, version, force=False):
        self.repo.restore(version, force)

    def restore_to_current(self):
        self.repo.restore_to_current()

    def diff(self, a=None, b=None):
        return self.repo.diff(a, b)

    def history(self):
        return self.repo.history()

    def status(self):
        """Return (current, latest, has_changes)."""
        current, latest = self.repo.current_position()
        return current, latest, self.repo.has_changes()

    def latest_version(self):
        return self.repo.current_position()[1]

    def delete(self):
        """Remove all history for this file. Cannot be undone."""
        if self.global_mode:
            if self.storage_dir.exists():
                shutil.rmtree(self.storage_dir)
            return
        self.repo.delete()


def detect_duplicate_tracking(file_path):
    """Return (has_local, has_global) for a file."""
    has_local = Store(file_path).exists()
    try:
        has_global = Store(file_path, global_mode=True).exists()
    except PathResolutionError:
        has_global = False
    return has_local, has_global


@dataclass(frozen=True)
class GlobalTrackedFile:
    file_path: str
    file_name: str
    hash_dir: str


def list_global():
    """All globally tracked files, read from each store's metadata record.

    Entries without readable metadata are skipped.
    """
    root = global_root()
    if not root.is_dir():
        return []

    tracked = []
    for entry in sorted(root.iterdir()):
        if not entry.is_dir():
            continue
        try:
            file_path = (entry / METADATA_FILE).read_text().strip()
        except (OSError, UnicodeDecodeError):
            continue
        if not file_path:
            continue
        tracked.append(GlobalTrackedFile(file_path, Path(file_path).name, entry.name))
    return tracked


def list_local(directory=None):
    """Stores for every local container under <directory>/.oops."""
    directory = absolute_path(directory or Path.cwd())
    oops_dir = directory / OOPS_DIR
    if not oops_dir.is_dir():
        return []

    stores = []
    for entry in sorted(oops_dir.iterdir()):
        if not entry.is_dir() or not entry.name.endswith(CONTAINER_SUFFIX):
            continue
        store = Store(directory / entry.name[: -len(CONTAINER_SUFFIX)])
        if store.exists():
            stores.append(store)
    return stores


def find_tracked(directory=None, global_mode=False):
    """The single tracked file of a directory, for commands without --file."""
    directory = absolute_path(directory or Path.cwd())
    if global_mode:
        candidates = [
            Store(g.file_path, global_mode=True)
            for g in list_global()
            if absolute_path(g.file_path).parent == directory
        ]
        candidates = [s for s in candidates if s.exists()]
    else:
        candidates = list_local(directory)

    if not candidates:
        raise NoTrackedFileError("no tracked files found")
    if len(candidates) > 1:
        raise NoTrackedFileError("multiple tracked files found")
    return candidates[0]


@dataclass(frozen=True)
class Orphan:
    """A container whose source file is gone."""

    file_path: str
    path: Path


def find_orphans(directory=None, global_mode=False):
    if global_mode:
        root = global_root()
        return [
            Orphan(g.file_path, root / g.hash_dir)
            for g in list_global()
            if not Path(g.file_path).exists()
        ]

    directory = absolute_path(directory or Path.cwd())
    oops_dir = directory / OOPS_DIR
    if not oops_dir.is_dir():
        return []

    orphans = []
    for entry in sorted(oops_dir.iterdir()):
        if not entry.is_dir() or not entry.name.endswith(CONTAINER_SUFFIX):
            continue
        file_path = directory / entry.name[: -len(CONTAINER_SUFFIX)]
        if not file_path.exists():
            orphans.append(Orphan(str(file_path), entry))
    return orphans


def remove_orphan(orphan):
    shutil.rmtree(orphan.path)
