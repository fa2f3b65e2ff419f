from oops.gitignore import ensure_gitignore, has_entry


def test_never_creates_gitignore(work):
    assert ensure_gitignore(work) is False
    assert not (work / ".gitignore").exists()


def test_appends_entry(work):
    gitignore = work / ".gitignore"
    gitignore.write_text("node_modules/\n")
    assert ensure_gitignore(work) is True
    assert gitignore.read_text() == "node_modules/\n.oops/\n"


def test_adds_missing_trailing_newline(work):
    gitignore = work / ".gitignore"
    gitignore.write_text("*.log")
    ensure_gitignore(work)
    assert gitignore.read_text() == "*.log\n.oops/\n"


def test_idempotent(work):
    gitignore = work / ".gitignore"
    gitignore.write_text("")
    assert ensure_gitignore(work) is True
    assert ensure_gitignore(work) is False
    assert gitignore.read_text() == ".oops/\n"


def test_entry_without_slash_counts(work):
    gitignore = work / ".gitignore"
    gitignore.write_text("build\n  .oops  \n")
    assert has_entry(gitignore)
    assert ensure_gitignore(work) is False
