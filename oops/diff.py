import difflib

from rich.console import Console
from rich.text import Text

BINARY_SNIFF_BYTES = 8192
BINARY_PLACEHOLDER = "[binary file changed]"


def is_binary(data):
    """Treat content with a NUL byte near the start as binary."""
    return b"\x00" in data[:BINARY_SNIFF_BYTES]


def split_lines(text):
    """Split on newlines without a trailing empty fragment."""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def compute_diff(old, new):
    """Compare two byte strings. Returns a list of (tag, line) pairs.

    tag is " " for context, "-" for removed and "+" for added lines.
    Identical inputs give an empty list.
    """
    if old == new:
        return []
    if is_binary(old) or is_binary(new):
        return [(" ", BINARY_PLACEHOLDER)]

    old_text = split_lines(old.decode(errors="replace"))
    new_text = split_lines(new.decode(errors="replace"))

    lines = []
    for tag, i1, i2, j1, j2 in difflib.SequenceMatcher(None, old_text, new_text, autojunk=False).get_opcodes():
        if tag == "equal":
            for line in old_text[i1:i2]:
                lines.append((" ", line))
        elif tag == "delete":
            for line in old_text[i1:i2]:
                lines.append(("-", line))
        elif tag == "insert":
            for line in new_text[j1:j2]:
                lines.append(("+", line))
        elif tag == "replace":
            for line in old_text[i1:i2]:
                lines.append(("-", line))
            for line in new_text[j1:j2]:
                lines.append(("+", line))
    return lines


def diff_to_text(file_name, lines):
    """Render (tag, line) pairs as unified-diff-style text."""
    if not lines:
        return ""
    parts = [f"--- a/{file_name}", f"+++ b/{file_name}"]
    for tag, content in lines:
        parts.append(f"{tag}{content}")
    return "\n".join(parts) + "\n"


def unified_diff(file_name, old, new):
    return diff_to_text(file_name, compute_diff(old, new))


def display_diff(text, console=None):
    """Print diff text to the terminal with colors."""
    console = console or Console()

    if not text:
        console.print("  [dim]No changes[/dim]")
        return

    insertions = 0
    deletions = 0
    for i, line in enumerate(split_lines(text)):
        if i < 2 and line.startswith(("--- ", "+++ ")):
            console.print(Text(line, style="bold"))
        elif line.startswith("+"):
            insertions += 1
            console.print(Text(line, style="green"))
        elif line.startswith("-"):
            deletions += 1
            console.print(Text(line, style="red"))
        else:
            console.print(Text(line, style="dim"))

    console.print()
    console.print(f"[green]+{insertions} insertions[/green] | [red]-{deletions} deletions[/red]")
