"""Tests for snapshot content compression."""

import gzip
import os

import pytest

from oops.compress import MIN_COMPRESS_SIZE, decode, encode, is_compressed, should_compress


class TestShouldCompress:
    @pytest.mark.parametrize("name", ["notes.txt", "config.yaml", "script.py", "Makefile", "data.unknownext"])
    def test_compressible(self, name):
        assert should_compress(name)

    @pytest.mark.parametrize("name", ["photo.PNG", "song.mp3", "movie.mp4", "backup.zip", "report.docx",
                                      "font.woff2", "bundle.tar.gz", "logs.tar.xz"])
    def test_already_compressed(self, name):
        assert not should_compress(name)


class TestEncode:
    def test_small_payload_stored_raw(self):
        data = b"a" * (MIN_COMPRESS_SIZE - 1)
        assert encode(data, "a.txt") == (data, False)

    def test_text_is_compressed(self):
        data = b"hello world\n" * 500
        stored, compressed = encode(data, "a.txt")
        assert compressed
        assert is_compressed(stored)
        assert len(stored) < len(data) * 0.9

    def test_skipped_for_compressed_formats(self):
        data = b"\x00" * 5000
        assert encode(data, "image.png") == (data, False)

    def test_incompressible_data_kept_raw(self):
        data = os.urandom(8192)
        stored, compressed = encode(data, "blob.bin")
        assert not compressed
        assert stored == data

    def test_already_gzipped_payload_kept_raw(self):
        data = gzip.compress(b"x" * 10000) + b"\x00" * 2000
        assert encode(data, "notes.txt") == (data, False)

    def test_output_is_deterministic(self):
        data = b"same content\n" * 300
        assert encode(data, "a.txt") == encode(data, "a.txt")


class TestDecode:
    def test_plain_bytes_pass_through(self):
        assert decode(b"plain") == b"plain"

    def test_sniffs_gzip_signature(self):
        assert decode(gzip.compress(b"abc")) == b"abc"

    def test_corrupt_gzip_returned_unchanged(self):
        junk = b"\x1f\x8b not really gzip"
        assert decode(junk) == junk
        assert decode(junk, True) == junk

    def test_explicit_flag_wins_over_signature(self):
        gz = gzip.compress(b"inner")
        assert decode(gz, False) == gz


@pytest.mark.parametrize("data,name", [
    (b"", "empty.txt"),
    (b"short", "a.txt"),
    (b"line\n" * 1000, "a.txt"),
    (b"line\n" * 1000, "a.jpg"),
    (bytes(range(256)) * 20, "a.bin"),
    (gzip.compress(b"payload " * 1000), "archive.txt"),
])
def test_round_trip(data, name):
    assert decode(*encode(data, name)) == data
