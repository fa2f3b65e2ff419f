from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from oops import __version__
from oops.config import config_path, load_config, save_config
from oops.diff import display_diff
from oops.errors import (
    IntegrityError,
    NoChangesError,
    NotInitializedError,
    NoTrackedFileError,
    OopsError,
    UncommittedChangesError,
    UpdateError,
    VersionNotFoundError,
)
from oops.gitignore import ensure_gitignore
from oops.log import read_logs, write_log
from oops.paths import absolute_path
from oops.store import (
    Store,
    detect_duplicate_tracking,
    find_orphans,
    find_tracked,
    list_global,
    list_local,
    remove_orphan,
)
from oops.updater import DISTRIBUTION, check_for_update, install_update

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)

ALIASES = {
    "track": "start",
    "watch": "start",
    "commit": "save",
    "snap": "save",
    "checkout": "back",
    "goto": "back",
    "diff": "changes",
    "show": "changes",
    "log": "history",
    "list": "history",
    "status": "now",
    "info": "now",
    "undo": "oops!",
    "untrack": "done",
    "forget": "done",
    "ls": "files",
}


class AliasedGroup(click.Group):
    """Group that also accepts the git-style aliases in ALIASES."""

    def get_command(self, ctx, cmd_name):
        return super().get_command(ctx, ALIASES.get(cmd_name, cmd_name))

    def resolve_command(self, ctx, args):
        _, cmd, args = super().resolve_command(ctx, args)
        return (cmd.name if cmd else None), cmd, args


def success(message):
    console.print(Text.assemble(("✓ ", "bold green"), message))


def info(message):
    console.print(Text("  " + message))


def warn(message):
    err_console.print(Text("⚠ " + message, style="yellow"))


def fail(message):
    err_console.print(Text("✗ " + message, style="red"))


def abort(message, *hints):
    fail(message)
    for hint in hints:
        info(hint)
    raise SystemExit(1)


def format_time_ago(timestamp, now=None):
    now = now or datetime.now()
    seconds = (now - timestamp).total_seconds()

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        mins = int(seconds // 60)
        return "1 minute ago" if mins == 1 else f"{mins} minutes ago"
    if seconds < 86400:
        hours = int(seconds // 3600)
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    if seconds < 7 * 86400:
        days = int(seconds // 86400)
        return "yesterday" if days == 1 else f"{days} days ago"
    return f"{timestamp:%b} {timestamp.day}, {timestamp.year}"


def _version_label(current, latest):
    if current == latest:
        return f"#{current}"
    return f"#{current} (latest #{latest})"


def mode_options(f):
    f = click.option("-l", "--local", "local_flag", is_flag=True,
                     help="Use local storage (.oops/), overriding the config default.")(f)
    f = click.option("-g", "--global", "global_flag", is_flag=True,
                     help="Use global storage (~/.oops/) instead of local (.oops/).")(f)
    return f


def file_option(f):
    return click.option("--file", "file_path", type=click.Path(dir_okay=False), default=None,
                        help="Tracked file to act on (default: the only tracked file here).")(f)


def _use_global(ctx, global_flag=False, local_flag=False):
    # Explicit -l beats -g, which beats the config default
    if local_flag:
        return False
    if global_flag:
        return True
    return ctx.obj["global"]


def _tracked_store(ctx, file_path, global_flag, local_flag):
    """Find the store a command acts on, or exit with guidance."""
    use_global = _use_global(ctx, global_flag, local_flag)
    try:
        if file_path:
            store = Store(file_path, global_mode=use_global)
            if not store.exists():
                raise NotInitializedError(store.file_name)
            return store
        return find_tracked(global_mode=use_global)
    except NoTrackedFileError as e:
        if "multiple" in str(e):
            abort(str(e), "Use 'oops files' to see the list, then pass --file")
        abort(str(e), "Use 'oops start <file>' to begin")
    except NotInitializedError as e:
        abort(str(e), f"Use 'oops start {file_path}' to begin")
    except OopsError as e:
        abort(str(e))


def _parse_version(value):
    try:
        num = int(value)
    except ValueError:
        num = 0
    if num < 1:
        abort(f"Invalid snapshot number: {value}")
    return num


def _audit(ctx, event, store, version=None):
    if not ctx.obj["config"].get("audit_log", True):
        return
    entry = {"event": event, "file": str(store.file_path), "mode": store.mode}
    if version is not None:
        entry["version"] = version
    try:
        write_log(entry)
    except (OSError, OopsError) as e:
        warn(f"Could not write audit log: {e}")


def _warn_duplicate(store):
    has_local, has_global = detect_duplicate_tracking(store.file_path)
    if has_local and has_global:
        console.print()
        warn("This file is tracked in both local and global storage!")
        info("  oops done -l   Stop local tracking")
        info("  oops done -g   Stop global tracking")


@click.group(cls=AliasedGroup)
@click.version_option(version=__version__)
@mode_options
@click.pass_context
def main(ctx, global_flag, local_flag):
    """Oops - Simple file versioning for everyone.

    \b
    Quick start:
      oops start myfile.txt     Start versioning
      oops save "first draft"   Save a snapshot
      oops history              View all snapshots
      oops back 1               Go back to snapshot #1
      oops oops!                Undo last change

    Git-style aliases also work: track, commit, log, checkout, diff,
    status, undo, untrack.
    """
    config = load_config()
    ctx.obj = {
        "config": config,
        "global": False if local_flag else (global_flag or config["default_global"]),
    }


@main.command()
@click.argument("file", type=click.Path())
@mode_options
@click.pass_context
def start(ctx, file, global_flag, local_flag):
    """Start versioning a file. Creates snapshot #1 automatically."""
    if not Path(file).is_file():
        abort(f"'{file}' is not a valid file")

    try:
        store = Store(file, global_mode=_use_global(ctx, global_flag, local_flag))
    except OopsError as e:
        abort(str(e))

    if store.exists():
        warn(f"'{store.file_name}' is already being tracked")
        info("Use 'oops now' to see current status")
        return

    try:
        store.initialize()
    except (OopsError, OSError) as e:
        abort(f"Failed to start tracking: {e}")

    if not store.global_mode:
        try:
            ensure_gitignore(store.base_dir)
        except OSError as e:
            warn(f"Could not update .gitignore: {e}")

    _audit(ctx, "start", store, 1)
    success(f"Now watching '{store.file_name}' (snapshot #1)")
    info("Use 'oops save \"message\"' to save changes")
    _warn_duplicate(store)


@main.command()
@click.argument("message", required=False, default="")
@file_option
@mode_options
@click.pass_context
def save(ctx, message, file_path, global_flag, local_flag):
    """Save the current state of the file as a new snapshot."""
    store = _tracked_store(ctx, file_path, global_flag, local_flag)
    try:
        snapshot = store.save(message)
    except NoChangesError:
        info("No changes to save")
        return
    except (OopsError, OSError) as e:
        abort(f"Failed to save: {e}")

    _audit(ctx, "save", store, snapshot.number)
    success(f"Snapshot #{snapshot.number} saved: {snapshot.message}")


@main.command()
@click.argument("version")
@click.option("-f", "--force", is_flag=True, help="Discard unsaved changes.")
@file_option
@mode_options
@click.pass_context
def back(ctx, version, force, file_path, global_flag, local_flag):
    """Go back to a specific snapshot.

    \b
    Examples:
      oops back 1      Go to snapshot #1
      oops back -f 1   Force (discard unsaved changes)
    """
    num = _parse_version(version)
    store = _tracked_store(ctx, file_path, global_flag, local_flag)
    try:
        store.restore(num, force=force)
    except VersionNotFoundError:
        abort(f"Snapshot #{num} not found", "Use 'oops history' to see available snapshots")
    except UncommittedChangesError:
        warn("You have unsaved changes")
        info("oops save     Save your changes first")
        info("oops back -f  Discard changes and go back")
        raise SystemExit(1)
    except (OopsError, OSError) as e:
        abort(f"Failed: {e}")

    _audit(ctx, "back", store, num)
    success(f"Restored to snapshot #{num}")


@main.command()
@click.argument("versions", nargs=-1)
@file_option
@mode_options
@click.pass_context
def changes(ctx, versions, file_path, global_flag, local_flag):
    """See what changed.

    \b
    Examples:
      oops changes         Show unsaved changes
      oops changes 1       Compare current file with snapshot #1
      oops changes 1 3     Compare snapshot #1 with #3
    """
    if len(versions) > 2:
        abort("At most two snapshot numbers can be compared")
    nums = [_parse_version(v) for v in versions]
    store = _tracked_store(ctx, file_path, global_flag, local_flag)

    try:
        text = store.diff(*nums)
    except VersionNotFoundError as e:
        abort(f"Snapshot #{e.version} not found", "Use 'oops history' to see available snapshots")
    except (OopsError, OSError) as e:
        abort(f"Failed to get changes: {e}")

    if not text:
        info("No changes")
        return
    display_diff(text, console)


@main.command()
@file_option
@mode_options
@click.pass_context
def history(ctx, file_path, global_flag, local_flag):
    """View snapshot history."""
    store = _tracked_store(ctx, file_path, global_flag, local_flag)
    try:
        snapshots = store.history()
        current, _, _ = store.status()
    except (OopsError, OSError) as e:
        abort(f"Failed to get history: {e}")

    table = Table(title=f"{store.file_name} history")
    table.add_column("", style="bold green")
    table.add_column("#", style="bold cyan", justify="right")
    table.add_column("Message")
    table.add_column("When", style="dim")

    for snap in snapshots:
        table.add_row(
            "→" if snap.number == current else "",
            str(snap.number),
            snap.message,
            format_time_ago(snap.created),
        )

    console.print(table)


@main.command()
@file_option
@mode_options
@click.pass_context
def now(ctx, file_path, global_flag, local_flag):
    """Show current status."""
    store = _tracked_store(ctx, file_path, global_flag, local_flag)
    try:
        current, latest, has_changes = store.status()
    except (OopsError, OSError) as e:
        abort(f"Failed to get status: {e}")

    console.print(Text(f"File:     {store.file_name}"))
    if store.global_mode:
        console.print(Text(f"Mode:     Global ({store.storage_dir})"))
    else:
        console.print(Text("Mode:     Local"))

    if current == latest:
        console.print(Text(f"Snapshot: #{current} (latest)"))
    else:
        console.print(Text(f"Snapshot: #{current} (latest is #{latest})"))

    if has_changes:
        console.print("Status:   [yellow]Modified[/yellow]")
        console.print()
        info("You have unsaved changes")
        info("  oops save    Save your changes")
        info("  oops oops!   Undo changes")
    else:
        console.print("Status:   [green]Clean[/green]")

    _warn_duplicate(store)


@main.command("oops!")
@click.argument("version", required=False)
@file_option
@mode_options
@click.pass_context
def oops_back(ctx, version, file_path, global_flag, local_flag):
    """Quick undo: drop unsaved changes, or go back one snapshot.

    \b
    Examples:
      oops oops!       Undo unsaved changes, else go to the previous snapshot
      oops oops! 2     Go to snapshot #2 (same as 'back -f 2')
    """
    num = _parse_version(version) if version is not None else None
    store = _tracked_store(ctx, file_path, global_flag, local_flag)

    try:
        if num is None:
            current, _, has_changes = store.status()
            if has_changes:
                store.restore_to_current()
                _audit(ctx, "undo", store, current)
                success("Undid unsaved changes")
                return
            if current <= 1:
                info("Already at the first snapshot")
                return
            num = current - 1
        store.restore(num, force=True)
    except VersionNotFoundError:
        abort(f"Snapshot #{num} not found")
    except (OopsError, OSError) as e:
        abort(f"Failed to undo: {e}")

    _audit(ctx, "back", store, num)
    success(f"Went back to snapshot #{num}")


@main.command()
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation.")
@file_option
@mode_options
@click.pass_context
def done(ctx, yes, file_path, global_flag, local_flag):
    """Stop versioning and remove all history. This cannot be undone."""
    store = _tracked_store(ctx, file_path, global_flag, local_flag)
    try:
        latest = store.latest_version()
    except IntegrityError:
        latest = 0  # damaged history can still be removed

    if not yes:
        warn(f"This will delete all {latest} snapshots of '{store.file_name}'")
        if not click.confirm("Are you sure?", default=False):
            info("Cancelled")
            return

    try:
        store.delete()
    except OSError as e:
        abort(f"Failed to stop tracking: {e}")

    _audit(ctx, "done", store, latest)
    success(f"Stopped tracking '{store.file_name}' ({latest} snapshots removed)")


def _status_row(store):
    """(marker, version label) for a listing; damaged stores are flagged."""
    try:
        current, latest, has_changes = store.status()
    except (OopsError, OSError):
        return "!", "damaged"
    if not store.file_path.exists():
        return "?", _version_label(current, latest)
    return ("✏" if has_changes else "✓"), _version_label(current, latest)


def _files_table(title, stores, show_path):
    table = Table(title=title)
    table.add_column("", style="bold")
    table.add_column("File")
    table.add_column("Snapshot", style="cyan")
    for store in stores:
        marker, label = _status_row(store)
        table.add_row(marker, str(store.file_path) if show_path else store.file_name, label)
    return table


@main.command()
@click.option("-a", "--all", "show_all", is_flag=True, help="Show both local and global tracked files.")
@mode_options
@click.pass_context
def files(ctx, show_all, global_flag, local_flag):
    """List tracked files."""
    use_global = _use_global(ctx, global_flag, local_flag)
    try:
        local = list_local() if show_all or not use_global else []
        global_ = [Store(g.file_path, global_mode=True) for g in list_global()] if show_all or use_global else []
    except (OopsError, OSError) as e:
        abort(f"Error: {e}")
    global_ = [s for s in global_ if s.exists()]

    if not local and not global_:
        info("No tracked files")
        info("Use 'oops start <file>' to begin")
        return

    if local:
        console.print(_files_table("Tracked files", local, show_path=False))
    if global_:
        console.print(_files_table("Globally tracked files", global_, show_path=True))


@main.command()
@click.option("--dry-run", is_flag=True, help="Preview what would be cleaned without removing.")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation.")
@mode_options
@click.pass_context
def gc(ctx, dry_run, yes, global_flag, local_flag):
    """Remove stores for files that no longer exist."""
    use_global = _use_global(ctx, global_flag, local_flag)
    try:
        orphans = find_orphans(global_mode=use_global)
    except (OopsError, OSError) as e:
        abort(f"Error: {e}")

    scope = "global " if use_global else ""
    if not orphans:
        success(f"No orphaned {scope}stores found")
        return

    console.print(Text(f"Found {len(orphans)} orphaned {scope}store(s):", style="bold"))
    for orphan in orphans:
        console.print(Text(f"  - {orphan.file_path}"))

    if dry_run:
        info("Dry run - no changes made")
        return

    if not yes and not click.confirm("\nRemove these stores?", default=False):
        info("Cancelled")
        return

    removed = 0
    for orphan in orphans:
        try:
            remove_orphan(orphan)
            removed += 1
        except OSError as e:
            warn(f"Failed to remove {orphan.file_path}: {e}")

    if ctx.obj["config"].get("audit_log", True):
        try:
            write_log({"event": "gc", "mode": "global" if use_global else "local", "removed": removed})
        except (OSError, OopsError) as e:
            warn(f"Could not write audit log: {e}")
    success(f"Removed {removed} orphaned {scope}store(s)")


@main.command("config")
@click.option("--default-global/--default-local", "default_global", default=None,
              help="Set the default storage mode for new files.")
@click.option("--audit-log/--no-audit-log", "audit_log", default=None,
              help="Record commands in ~/.oops/logs.jsonl.")
def config_cmd(default_global, audit_log):
    """View or change configuration (~/.oops/config)."""
    updates = {}
    if default_global is not None:
        updates["default_global"] = default_global
    if audit_log is not None:
        updates["audit_log"] = audit_log

    try:
        if updates:
            save_config(updates)
            if "default_global" in updates:
                success(f"Default mode set to: {'global' if default_global else 'local'}")
            if "audit_log" in updates:
                success(f"Audit log {'enabled' if audit_log else 'disabled'}")
            return

        config = load_config()
        path = config_path()
    except (OopsError, OSError) as e:
        abort(f"Failed to access config: {e}")

    console.print("[bold]Oops configuration[/bold]")
    console.print()
    console.print(Text(f"  Config file: {path}"))
    console.print()
    console.print(Text(f"  default_global = {'true' if config['default_global'] else 'false'}"))
    console.print(Text(f"  audit_log = {'true' if config['audit_log'] else 'false'}"))
    if config["default_global"]:
        info("New files will be tracked globally by default")
        info("Use -l/--local to override")
    else:
        info("New files will be tracked locally by default")
        info("Use -g/--global to override")


@main.command()
@click.option("-n", "--limit", default=20, type=click.IntRange(min=1), help="Number of log entries to show.")
@click.option("--file", "file_path", type=click.Path(dir_okay=False), default=None,
              help="Only show entries for this file.")
def logs(limit, file_path):
    """Show the command audit log."""
    file_filter = str(absolute_path(file_path)) if file_path else None
    try:
        entries = read_logs(file_filter)
    except (OopsError, OSError) as e:
        abort(f"Failed to read logs: {e}")

    if not entries:
        console.print("[dim]No logs yet.[/dim]")
        return

    table = Table(title="Oops Log")
    table.add_column("Time", style="dim")
    table.add_column("Event", style="bold")
    table.add_column("File")
    table.add_column("Snapshot", style="cyan")

    for entry in entries[-limit:]:
        ts = entry.get("timestamp", "")
        if ts:
            try:
                ts = datetime.fromisoformat(ts).strftime("%m-%d %H:%M")
            except ValueError:
                pass
        version = entry.get("version")
        table.add_row(
            ts,
            entry.get("event", ""),
            entry.get("file", ""),
            f"#{version}" if version is not None else "",
        )

    console.print(table)


@main.command()
@click.option("-c", "--check", "check_only", is_flag=True, help="Only check for updates, don't install.")
def update(check_only):
    """Update oops to the latest version."""
    info("Checking for updates...")
    try:
        release, has_update = check_for_update(__version__)
    except UpdateError as e:
        abort(f"Failed to check for updates: {e}")

    if not has_update:
        success(f"You're running the latest version (v{__version__})")
        return

    console.print()
    info(f"New version available: {release.tag_name} (current: v{__version__})")
    if release.html_url:
        info(f"Release: {release.html_url}")

    if check_only:
        console.print()
        info("Run 'oops update' to install")
        return

    console.print()
    info(f"Installing {DISTRIBUTION} {release.version}...")
    try:
        install_update(release)
    except UpdateError as e:
        abort(f"Update failed: {e}", f"Install manually: pip install --upgrade {DISTRIBUTION}")

    console.print()
    success(f"Updated to {release.tag_name}!")
    info("Restart oops to use the new version")
