import io

from rich.console import Console

from oops.diff import BINARY_PLACEHOLDER, compute_diff, display_diff, split_lines, unified_diff


def test_identical_content_gives_empty_result():
    assert compute_diff(b"same\n", b"same\n") == []
    assert unified_diff("f.txt", b"same\n", b"same\n") == ""


def test_single_line_change():
    assert unified_diff("f.txt", b"v1", b"v2") == "--- a/f.txt\n+++ b/f.txt\n-v1\n+v2\n"


def test_context_lines_and_trailing_newline():
    text = unified_diff("f.txt", b"a\nb\nc\n", b"a\nB\nc\n")
    assert text == "--- a/f.txt\n+++ b/f.txt\n a\n-b\n+B\n c\n"


def test_insertion_and_deletion():
    lines = compute_diff(b"one\ntwo\n", b"one\nthree\nfour\n")
    assert (" ", "one") in lines
    assert ("-", "two") in lines
    assert ("+", "three") in lines
    assert ("+", "four") in lines


def test_binary_content_uses_placeholder():
    lines = compute_diff(b"\x00\x01\x02", b"\x00\x01\x03")
    assert lines == [(" ", BINARY_PLACEHOLDER)]


def test_split_lines_drops_trailing_fragment_only():
    assert split_lines("") == []
    assert split_lines("a\n") == ["a"]
    assert split_lines("a\n\n") == ["a", ""]
    assert split_lines("a\nb") == ["a", "b"]


def test_display_diff_counts_changes():
    out = io.StringIO()
    console = Console(file=out, width=120)
    display_diff(unified_diff("f.txt", b"a\nb\n", b"a\nc\nd\n"), console)
    rendered = out.getvalue()
    assert "--- a/f.txt" in rendered
    assert "+2 insertions" in rendered
    assert "-1 deletions" in rendered


def test_display_diff_empty():
    out = io.StringIO()
    display_diff("", Console(file=out, width=120))
    assert "No changes" in out.getvalue()
