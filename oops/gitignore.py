from pathlib import Path

from oops.paths import OOPS_DIR

OOPS_ENTRY = OOPS_DIR + "/"


def has_entry(gitignore_path, entry=OOPS_ENTRY):
    """Check if a .gitignore already lists entry (with or without the slash)."""
    bare = entry.rstrip("/")
    for line in Path(gitignore_path).read_text(errors="replace").splitlines():
        line = line.strip()
        if line in (entry, bare):
            return True
    return False


def ensure_gitignore(directory):
    """Append .oops/ to an existing .gitignore. Never creates one.

    Returns True if the file was changed.
    """
    gitignore = Path(directory) / ".gitignore"
    if not gitignore.is_file():
        return False
    if has_entry(gitignore):
        return False

    content = gitignore.read_bytes()
    prefix = "" if not content or content.endswith(b"\n") else "\n"
    with open(gitignore, "a") as f:
        f.write(prefix + OOPS_ENTRY + "\n")
    return True
