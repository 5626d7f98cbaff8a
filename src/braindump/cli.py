"""
CLI for Braindump.

Minimal CLI using stdlib for fast startup on the capture path.
Subcommands are imported lazily to avoid startup overhead.

Usage:
    braindump "your thought here"   # Capture (primary interface)
    braindump organize              # Organize pending fragments
    braindump --help                # Show help
"""

import logging
import os
import sys


def print_help() -> None:
    """Print help message."""
    print("""braindump - turn brain dumps into organized action items

Usage:
    braindump "your thought here"     Capture a thought

Commands:
    braindump organize [options]      Organize pending thoughts
        --anchor YYYY-MM-DD           Use this date as "today"
        --tz ZONE                     Timezone for "today" (e.g. Europe/London)
        --rules                       Use the offline rule-based classifier
    braindump list [--all]            List organized items by category
    braindump done <id>               Mark an item as completed
    braindump undo <id>               Mark an item as open again
    braindump pending                 List thoughts not yet organized
    braindump drop <id>               Discard a thought before organizing
    braindump stats                   Show store statistics

Options:
    braindump --help, -h              Show this help
    braindump --version, -v           Show version

Examples:
    braindump "Dentist tomorrow 3pm"
    braindump "Buy milk"
    braindump organize --tz America/New_York
    braindump list

Capture is instant. Organizing happens when you ask for it.""")


def print_version() -> None:
    """Print version."""
    from braindump import __version__
    print(f"braindump {__version__}")


def setup_logging() -> None:
    """Configure logging from BRAINDUMP_LOG_LEVEL (default WARNING)."""
    level = os.environ.get("BRAINDUMP_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level, logging.WARNING),
    )


def _owner(config: dict) -> str:
    return os.environ.get("BRAINDUMP_OWNER") or config.get("braindump", {}).get("owner", "default")


def capture(text: str) -> str:
    """
    Capture a thought as a pending fragment.

    Returns the fragment ID.
    """
    from braindump.config import ensure_dirs, load_config
    from braindump.db import Database
    from braindump.ingress import capture as capture_fragment

    ensure_dirs()
    config = load_config()
    return capture_fragment(text, Database(), _owner(config))


def _parse_organize_args(args: list[str]) -> dict:
    options: dict = {"anchor": None, "tz": None, "classifier": None}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--anchor" and i + 1 < len(args):
            options["anchor"] = args[i + 1]
            i += 2
        elif arg == "--tz" and i + 1 < len(args):
            options["tz"] = args[i + 1]
            i += 2
        elif arg == "--rules":
            options["classifier"] = "rules"
            i += 1
        else:
            raise ValueError(f"Unknown option: {arg}")
    return options


def cmd_organize(args: list[str]) -> int:
    """Run one organize pass over the pending fragments."""
    from datetime import date

    from braindump.classifier import build_oracle
    from braindump.config import load_config
    from braindump.db import Database
    from braindump.errors import BrainDumpError, InputEmptyError, PurgeError
    from braindump.pipeline import Organizer
    from braindump.surfacing import format_items_by_category

    try:
        options = _parse_organize_args(args)
        anchor = date.fromisoformat(options["anchor"]) if options["anchor"] else None
        config = load_config()
        oracle = build_oracle(config, options["classifier"])
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    organizer_config = config.get("organizer", {})
    owner_id = _owner(config)

    with Database() as db:
        organizer = Organizer(
            oracle=oracle,
            fragments=db,
            organized=db,
            archive=db,
            timezone=organizer_config.get("timezone", "UTC"),
            timeout_seconds=float(organizer_config.get("timeout_seconds", 60.0)),
        )
        try:
            result = organizer.organize(owner_id, timezone=options["tz"], anchor_date=anchor)
        except InputEmptyError:
            print("Nothing pending. Capture something first.")
            return 0
        except PurgeError as e:
            print(f"Error: {e}", file=sys.stderr)
            print("Organized items were saved; the same thoughts will be offered again.", file=sys.stderr)
            return 1
        except (BrainDumpError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        print(
            f"Organized for {result.anchor_date.isoformat()}: "
            f"{len(result.inserted)} new, {len(result.enriched)} updated, "
            f"{len(result.skipped)} duplicates."
        )
        if result.report and result.report.archive_error:
            print(f"Warning: archive failed: {result.report.archive_error}", file=sys.stderr)
        if result.inserted or result.enriched:
            print()
            print(format_items_by_category(result.inserted + result.enriched))
    return 0


def cmd_list(args: list[str]) -> int:
    """List organized items grouped by category."""
    from braindump.config import load_config
    from braindump.db import Database
    from braindump.surfacing import format_items_by_category

    include_completed = any(arg in ("--all", "-a") for arg in args)

    try:
        db = Database()
        items = db.get_items(_owner(load_config()), include_completed=include_completed)
        print(format_items_by_category(items))
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_done(args: list[str], completed: bool = True) -> int:
    """Mark an item as completed (or open again)."""
    from braindump.config import load_config
    from braindump.db import Database
    from braindump.errors import ItemConflictError

    if not args:
        print(f"Usage: braindump {'done' if completed else 'undo'} <id>", file=sys.stderr)
        return 1

    prefix = args[0].replace("-", "")

    try:
        db = Database()
        items = db.get_items(_owner(load_config()), include_completed=True)
        matches = [item for item in items if item.id.startswith(prefix)]
        if len(matches) != 1:
            print(f"No single item matches: {args[0]}", file=sys.stderr)
            return 1
        if db.set_completed(matches[0].id, completed):
            print(f"{'Completed' if completed else 'Reopened'}: {matches[0].content}")
            return 0
        print(f"Already {'completed' if completed else 'open'}: {matches[0].content}", file=sys.stderr)
        return 1
    except ItemConflictError:
        print(
            f"Cannot reopen: {matches[0].content!r} is already open again. Complete that one first.",
            file=sys.stderr,
        )
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_pending() -> int:
    """List captured thoughts waiting for the next organize pass."""
    from braindump.config import load_config
    from braindump.db import Database

    try:
        fragments = Database().fetch_pending_fragments(_owner(load_config()))
        if not fragments:
            print("Nothing pending.")
            return 0
        for fragment in fragments:
            print(f"  {fragment.id}  {fragment.content}")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_drop(args: list[str]) -> int:
    """Discard a pending thought before it is organized."""
    from braindump.config import load_config
    from braindump.db import Database

    if not args:
        print("Usage: braindump drop <id>", file=sys.stderr)
        return 1

    try:
        db = Database()
        owner_id = _owner(load_config())
        matches = [f for f in db.fetch_pending_fragments(owner_id) if f.id.startswith(args[0])]
        if len(matches) != 1:
            print(f"No single pending thought matches: {args[0]}", file=sys.stderr)
            return 1
        db.delete_fragment(owner_id, matches[0].id)
        print(f"Dropped: {matches[0].content}")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_stats() -> int:
    """Show store statistics."""
    from braindump.config import load_config
    from braindump.db import Database

    try:
        stats = Database().get_stats(_owner(load_config()))

        print("Braindump Statistics")
        print("-" * 30)
        print(f"Pending fragments: {stats['pending_fragments']}")
        print("\nOpen by category:")
        for category, count in stats.get("open_by_category", {}).items():
            print(f"  {category}: {count}")
        print(f"\nCompleted: {stats['completed']}")
        print(f"Archived: {stats['archived']}")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main() -> int:
    """
    Main entry point.

    Optimized for minimal startup time on the capture path.
    """
    args = sys.argv[1:]
    setup_logging()

    # No args - check for piped input
    if not args:
        if not sys.stdin.isatty():
            text = sys.stdin.read().strip()
            if text:
                print(capture(text))
                return 0
        print_help()
        return 0

    first_arg = args[0]

    if first_arg in ("--help", "-h", "help"):
        print_help()
        return 0

    if first_arg in ("--version", "-v", "version"):
        print_version()
        return 0

    # Subcommands (lazy import to keep startup fast)
    if first_arg == "organize":
        return cmd_organize(args[1:])

    if first_arg == "list":
        return cmd_list(args[1:])

    if first_arg == "done":
        return cmd_done(args[1:])

    if first_arg == "undo":
        return cmd_done(args[1:], completed=False)

    if first_arg == "pending":
        return cmd_pending()

    if first_arg == "drop":
        return cmd_drop(args[1:])

    if first_arg == "stats":
        return cmd_stats()

    # Everything else is a thought to capture
    text = " ".join(args)

    if not text.strip():
        print("Error: Empty thought", file=sys.stderr)
        return 1

    print(capture(text))
    return 0


if __name__ == "__main__":
    sys.exit(main())
