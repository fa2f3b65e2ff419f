import pytest


@pytest.fixture(autouse=True)
def _isolate_home(monkeypatch, tmp_path):
    """Keep ~/.oops (global stores, config, logs) inside the test's tmp dir."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.setenv("COLUMNS", "250")
    monkeypatch.delenv("OOPS_DEFAULT_GLOBAL", raising=False)
    monkeypatch.delenv("OOPS_AUDIT_LOG", raising=False)
    return home


@pytest.fixture
def home(tmp_path):
    return tmp_path / "home"


@pytest.fixture
def work(tmp_path):
    """Directory holding the files under test, separate from $HOME."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def notes(work):
    path = work / "notes.txt"
    path.write_bytes(b"v1")
    return path
