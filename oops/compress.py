"""Transparent gzip compression for stored snapshot content."""

import gzip
import zlib
from pathlib import PurePath

MIN_COMPRESS_SIZE = 1024  # below this the gzip header overhead isn't worth it
COMPRESS_RATIO = 0.9  # keep compressed form only if at least 10% smaller

GZIP_MAGIC = b"\x1f\x8b"

# Formats that already compress their payload internally.
COMPRESSED_EXTENSIONS = {
    # images
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".ico", ".bmp", ".tiff", ".svg",
    # video
    ".mp4", ".mkv", ".avi", ".mov", ".wmv", ".flv", ".webm", ".m4v",
    # audio
    ".mp3", ".m4a", ".aac", ".ogg", ".flac", ".wma", ".opus",
    # archives
    ".zip", ".gz", ".7z", ".rar", ".tgz", ".bz2", ".xz", ".lz", ".lzma",
    # documents
    ".pdf", ".docx", ".xlsx", ".pptx", ".odt", ".ods", ".odp", ".epub",
    # fonts
    ".woff", ".woff2", ".eot", ".ttf",
    # packages
    ".jar", ".war", ".apk", ".ipa", ".deb", ".rpm", ".dmg",
}

_COMPRESSED_DOUBLE_EXTENSIONS = (".tar.gz", ".tar.bz2", ".tar.xz")


def should_compress(file_name):
    """Return False for formats that are already compressed.

    Unknown extensions return True: trying gzip on incompressible data costs
    little, and encode() falls back to the raw bytes anyway.
    """
    lower = str(file_name).lower()
    if lower.endswith(_COMPRESSED_DOUBLE_EXTENSIONS):
        return False
    return PurePath(lower).suffix not in COMPRESSED_EXTENSIONS


def is_compressed(data):
    return data[:2] == GZIP_MAGIC


def encode(data, file_name):
    """Prepare bytes for storage. Returns (stored_bytes, was_compressed)."""
    if len(data) < MIN_COMPRESS_SIZE:
        return data, False
    if not should_compress(file_name) or is_compressed(data):
        return data, False

    compressed = gzip.compress(data, mtime=0)
    if len(compressed) < len(data) * COMPRESS_RATIO:
        return compressed, True
    return data, False


def decode(stored, compressed=None):
    """Recover original bytes from stored bytes.

    When the caller recorded whether encode() compressed the payload, pass it
    as `compressed`; otherwise the gzip signature decides. A payload that
    fails to decompress is returned unchanged.
    """
    if compressed is None:
        compressed = is_compressed(stored)
    if not compressed:
        return stored
    try:
        return gzip.decompress(stored)
    except (OSError, EOFError, zlib.error):
        return stored
