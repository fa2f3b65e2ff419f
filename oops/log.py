"""Command audit logging.

Appends structured JSON entries to ~/.oops/logs.jsonl.
Each entry records a state-changing command (start, save, back, undo, done,
gc) with timestamp, file path, storage mode and snapshot number.
"""

import json
from datetime import datetime

from oops.paths import global_root

LOGS_FILE_NAME = "logs.jsonl"


def logs_file():
    return global_root() / LOGS_FILE_NAME


def write_log(entry):
    """Append an audit log entry."""
    path = logs_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    entry["timestamp"] = datetime.now().isoformat()
    with open(path, "a") as f:
        f.write(json.dumps(entry) + "\n")


def read_logs(file_filter=None):
    """Parsed log entries, oldest first. Malformed lines are skipped."""
    path = logs_file()
    if not path.exists():
        return []

    entries = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if file_filter and entry.get("file") != file_filter:
            continue
        entries.append(entry)
    return entries
