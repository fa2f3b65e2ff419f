"""Release check and self-upgrade.

Looks up the latest GitHub release and, on request, upgrades the installed
distribution with pip in the running interpreter.
"""

import json
import re
import subprocess
import sys
import urllib.error
import urllib.request
from dataclasses import dataclass

from oops.errors import UpdateError

GITHUB_REPO = "iyulab/oops"
GITHUB_API_URL = f"https://api.github.com/repos/{GITHUB_REPO}/releases/latest"
DISTRIBUTION = "oops-cli"

_TIMEOUT = 15


@dataclass(frozen=True)
class Release:
    tag_name: str
    html_url: str

    @property
    def version(self):
        return self.tag_name.lstrip("v")


def parse_version(version):
    """'v1.10.2' -> (1, 10, 2). Non-numeric suffixes are ignored."""
    parts = []
    for piece in version.lstrip("v").split("."):
        match = re.match(r"\d+", piece)
        if not match:
            break
        parts.append(int(match.group()))
    return tuple(parts)


def get_latest_release():
    req = urllib.request.Request(
        GITHUB_API_URL,
        headers={
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "oops-updater",
        },
    )
    try:
        with urllib.request.urlopen(req, timeout=_TIMEOUT) as resp:
            body = json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as e:
        if e.code == 404:
            raise UpdateError("no releases found") from e
        raise UpdateError(f"GitHub API error: HTTP {e.code}") from e
    except urllib.error.URLError as e:
        raise UpdateError(f"failed to check for updates: {e.reason}") from e
    except json.JSONDecodeError as e:
        raise UpdateError(f"failed to parse release info: {e}") from e

    if "tag_name" not in body:
        raise UpdateError("release info has no tag_name")
    return Release(tag_name=body["tag_name"], html_url=body.get("html_url", ""))


def check_for_update(current_version):
    """Return (release, has_update)."""
    release = get_latest_release()
    has_update = parse_version(release.version) > parse_version(current_version)
    return release, has_update


def install_update(release):
    """pip-install the released version into the running interpreter."""
    cmd = [sys.executable, "-m", "pip", "install", "--upgrade", f"{DISTRIBUTION}=={release.version}"]
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        detail = (result.stderr or result.stdout).strip().splitlines()
        raise UpdateError(detail[-1] if detail else "pip install failed")
