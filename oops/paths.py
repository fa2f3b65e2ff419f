"""Where a tracked file's history lives.

Local mode keeps the container beside the file:

    <dir>/.oops/<name>.container

Global mode keeps it under the home directory, in a subdirectory named after
a hash of the file's absolute path so identically named files from different
directories never collide:

    ~/.oops/<hash>/<name>.container
    ~/.oops/<hash>/metadata.txt      (absolute source path, for listing)
"""

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path

from oops.errors import PathResolutionError

OOPS_DIR = ".oops"
CONTAINER_SUFFIX = ".container"
METADATA_FILE = "metadata.txt"


def home_dir():
    """Return the user's home directory or raise PathResolutionError."""
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as e:
        raise PathResolutionError(f"cannot determine home directory: {e}") from e
    if not home.is_absolute():
        # expanduser() hands "~" back unchanged when nothing is known
        raise PathResolutionError("cannot determine home directory")
    return home


def global_root():
    return home_dir() / OOPS_DIR


def absolute_path(file_path):
    """Absolute path without resolving symlinks."""
    return Path(os.path.abspath(os.fspath(file_path)))


def normalize_path(abs_path):
    """Canonical form used for hashing: forward slashes, lower-case drive letter."""
    normalized = str(abs_path).replace("\\", "/")
    if len(normalized) >= 2 and normalized[1] == ":":
        normalized = normalized[0].lower() + normalized[1:]
    return normalized


def hash_path(abs_path):
    """First 8 bytes of sha256(normalized path), hex encoded (16 chars)."""
    digest = hashlib.sha256(normalize_path(abs_path).encode("utf-8")).digest()
    return digest[:8].hex()


def container_name(file_name):
    return file_name + CONTAINER_SUFFIX


@dataclass(frozen=True)
class Location:
    """Resolved storage location for one (file, mode) pair."""

    file_path: Path
    file_name: str
    base_dir: Path
    container_path: Path
    global_mode: bool = False

    @property
    def storage_dir(self):
        """The directory holding the container (.oops/ or ~/.oops/<hash>/)."""
        return self.container_path.parent

    @property
    def metadata_path(self):
        if not self.global_mode:
            return None
        return self.storage_dir / METADATA_FILE

    @property
    def mode(self):
        return "global" if self.global_mode else "local"

    def write_metadata(self):
        """Persist the absolute source path beside a global container."""
        if not self.global_mode:
            return
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.metadata_path.write_text(str(self.file_path))


def resolve(file_path, global_mode=False):
    """Compute the Location of a file's history container."""
    abs_path = absolute_path(file_path)
    base_dir = abs_path.parent
    file_name = abs_path.name

    if global_mode:
        container = global_root() / hash_path(abs_path) / container_name(file_name)
        return Location(abs_path, file_name, base_dir, container, True)

    container = base_dir / OOPS_DIR / container_name(file_name)
    return Location(abs_path, file_name, base_dir, container, False)
