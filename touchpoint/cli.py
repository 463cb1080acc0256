"""
touchpoint/cli.py
Command-line interface for Touchpoint.
Works on Windows, Linux, Mac, and Android Termux.

USAGE:
  touchpoint add "Jane Smith" +16125550002 --cadence weekly --action call
  touchpoint list [--category personal]
  touchpoint contact <id>          # message/call, then offer a reset
  touchpoint reset <id>
  touchpoint delete <id>
  touchpoint watch                 # live list, redrawn at every local midnight
  touchpoint demo                  # seed sample touchpoints

Ids may be shortened to any unique prefix.
"""

import argparse
import logging
import sys
import threading
from datetime import timedelta
from pathlib import Path
from typing import Optional

from touchpoint.config import ensure_config, resolve_timezone
from touchpoint.errors import TouchpointError, ValidationError
from touchpoint.models.record import Category, PreferredAction
from touchpoint.scheduler import DayBoundaryScheduler
from touchpoint.stores.sqlite_store import SqliteTouchpointStore
from touchpoint.tracker import TouchpointTracker
from touchpoint.urgency import Severity
from touchpoint.validation import parse_category

logger = logging.getLogger(__name__)

# ANSI colors
GREEN  = '\033[92m'
YELLOW = '\033[93m'
RED    = '\033[91m'
CYAN   = '\033[96m'
DIM    = '\033[2m'
RESET  = '\033[0m'
BOLD   = '\033[1m'

SEVERITY_COLORS = {
    Severity.OVERDUE:  RED,
    Severity.DUE_SOON: YELLOW,
    Severity.ON_TRACK: GREEN,
}

# Sample data from the original app: (name, channel, cadence, days since contact)
DEMO_TOUCHPOINTS = [
    ("John Doe",      "+15555550101", 2,  2),
    ("Jane Smith",    "+15555550102", 1,  3),
    ("Alice Johnson", "+15555550103", 1,  5),
    ("Robert Brown",  "+15555550104", 7,  3),
    ("Emily Davis",   "+15555550105", 30, 25),
    ("Chris Wilson",  "+15555550106", 14, 20),
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog        = 'touchpoint',
        description = 'Touchpoint: keep in touch on a cadence',
        formatter_class = argparse.RawDescriptionHelpFormatter,
        epilog = """
Urgency counts calendar days in local time: a contact made at 11pm
is one day old at 1am.
        """
    )
    parser.add_argument(
        '--db',
        type    = Path,
        default = None,
        help    = 'SQLite database path (default: from touchpoint_config.json)',
    )
    parser.add_argument(
        '--timezone',
        default = None,
        help    = 'IANA timezone for day boundaries (default: system local)',
    )
    parser.add_argument(
        '--verbose', '-v',
        action  = 'store_true',
        help    = 'Enable debug logging',
    )

    sub = parser.add_subparsers(dest='command', required=True)

    add = sub.add_parser('add', help='Track a new person')
    add.add_argument('name')
    add.add_argument('channel', help='Phone number (used for message/call)')
    add.add_argument(
        '--cadence', '-c',
        default = None,
        help    = 'daily, weekly, monthly or a number of days 1-365 (default: from config)',
    )
    add.add_argument(
        '--action', '-a',
        default = PreferredAction.MESSAGE.value,
        choices = [a.value for a in PreferredAction],
        help    = 'Preferred action (default: message)',
    )
    add.add_argument(
        '--category',
        choices = [c.value for c in Category],
        help    = 'Optional category for filtering',
    )

    lst = sub.add_parser('list', help='Show touchpoints, most urgent first')
    lst.add_argument('--category', choices=[c.value for c in Category])

    contact = sub.add_parser('contact', help='Run the preferred action, then offer a reset')
    contact.add_argument('id')
    contact.add_argument('--yes', '-y', action='store_true', help='Reset without asking')

    reset = sub.add_parser('reset', help='Mark contact made today')
    reset.add_argument('id')

    delete = sub.add_parser('delete', help='Stop tracking a person')
    delete.add_argument('id')
    delete.add_argument('--yes', '-y', action='store_true', help='Delete without asking')

    watch = sub.add_parser('watch', help='Live list, redrawn at each local midnight')
    watch.add_argument('--category', choices=[c.value for c in Category])
    watch.add_argument(
        '--poll-interval',
        type    = float,
        default = None,
        help    = 'Seconds between day-boundary checks (default: from config)',
    )

    sub.add_parser('demo', help='Seed the sample touchpoints')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    # ── LOGGING SETUP ────────────────────────────────────────
    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level   = log_level,
        format  = '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt = '%H:%M:%S',
    )

    config  = ensure_config(Path.cwd())
    tz      = resolve_timezone(args.timezone or config.get("timezone"))
    db_path = args.db or Path(config["db_path"])
    tracker = TouchpointTracker(SqliteTouchpointStore(db_path), tz=tz)

    commands = {
        'add':     _cmd_add,
        'list':    _cmd_list,
        'contact': _cmd_contact,
        'reset':   _cmd_reset,
        'delete':  _cmd_delete,
        'watch':   _cmd_watch,
        'demo':    _cmd_demo,
    }
    try:
        commands[args.command](args, tracker, config)
    except TouchpointError as e:
        _print(f"{RED}Error: {e}{RESET}")
        sys.exit(1)


# ── COMMANDS ─────────────────────────────────────────────────

def _cmd_add(args, tracker: TouchpointTracker, config: dict) -> None:
    cadence = args.cadence or config.get("default_cadence_days", 7)
    record = tracker.create(args.name, args.channel, cadence, args.action, args.category)
    _ok(f"Tracking {BOLD}{record.name}{RESET} every {record.cadence_days} day(s) "
        f"{DIM}[{record.id[:8]}]{RESET}")


def _cmd_list(args, tracker: TouchpointTracker, config: dict) -> None:
    _render(tracker, parse_category(args.category))


def _cmd_contact(args, tracker: TouchpointTracker, config: dict) -> None:
    record = tracker.invoke_action(_resolve_id(tracker, args.id))
    if record.preferred_action is PreferredAction.MEET_UP:
        _step(f"Meet up with {record.name}")
    else:
        _step(f"{record.preferred_action.value.capitalize()} sent to the dialer for {record.name}")

    if args.yes or _confirm(f"Reset the touchpoint for {record.name}?"):
        tracker.confirm_reset()
        _ok(f"{record.name} reset, next contact due in {record.cadence_days} day(s)")
    else:
        tracker.cancel()
        _print(f"  {DIM}Left unchanged{RESET}")


def _cmd_reset(args, tracker: TouchpointTracker, config: dict) -> None:
    record = tracker.reset(_resolve_id(tracker, args.id))
    _ok(f"{record.name} reset")


def _cmd_delete(args, tracker: TouchpointTracker, config: dict) -> None:
    record = tracker.request_delete(_resolve_id(tracker, args.id))
    if args.yes or _confirm(f"Stop tracking {record.name}?"):
        tracker.confirm_delete()
        _ok(f"{record.name} deleted")
    else:
        tracker.cancel()
        _print(f"  {DIM}Kept{RESET}")


def _cmd_watch(args, tracker: TouchpointTracker, config: dict) -> None:
    category = parse_category(args.category)
    poll     = args.poll_interval or config["poll_interval_seconds"]
    redraw   = threading.Event()

    scheduler = DayBoundaryScheduler(callback=redraw.set, tz=tracker.tz, poll_interval=poll)
    tracker.add_listener(redraw.set)

    _render(tracker, category)
    with scheduler:
        try:
            while True:
                if redraw.wait(timeout=poll):
                    redraw.clear()
                    _print("")
                    _render(tracker, category)
        except KeyboardInterrupt:
            _print(f"\n{DIM}Stopped{RESET}")


def _cmd_demo(args, tracker: TouchpointTracker, config: dict) -> None:
    now = tracker.now()
    for name, channel, cadence, days_ago in DEMO_TOUCHPOINTS:
        try:
            tracker.create(name, channel, cadence, PreferredAction.MESSAGE,
                           Category.PERSONAL, now=now - timedelta(days=days_ago))
        except ValidationError as e:
            _print(f"  {YELLOW}⚠ {name}: {e}{RESET}")
            continue
        _ok(f"Seeded {name}")


# ── HELPERS ──────────────────────────────────────────────────

def _resolve_id(tracker: TouchpointTracker, prefix: str) -> str:
    """Full id for a unique prefix. Exact matches win."""
    ids = [r.id for r in tracker.refresh()]
    if prefix in ids:
        return prefix
    matches = [i for i in ids if i.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise ValidationError(f"No touchpoint id starts with {prefix!r}", 'id')
    raise ValidationError(f"Id prefix {prefix!r} is ambiguous ({len(matches)} matches)", 'id')


def _render(tracker: TouchpointTracker, category: Optional[Category] = None) -> None:
    view = tracker.ranked_view(category=category)
    heading = f"Touchpoints: {category.value}" if category else "Touchpoints"
    _print(f"{BOLD}{heading}{RESET}  {DIM}{tracker.now():%a %d %b %Y}{RESET}")
    if not view:
        _print(f"  {DIM}Nothing tracked yet. Try: touchpoint add NAME NUMBER{RESET}")
        return
    for entry in view:
        color = SEVERITY_COLORS[entry.severity]
        _print(
            f"  {color}●{RESET} {entry.record.name:<24} {entry.status.label:<20} "
            f"{DIM}{entry.record.id[:8]}{RESET}"
        )


def _confirm(question: str) -> bool:
    try:
        answer = input(f"  {CYAN}?{RESET} {question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ('y', 'yes')


def _step(msg):  _print(f"  {CYAN}→{RESET} {msg}")
def _ok(msg):    _print(f"  {GREEN}✓{RESET} {msg}")
def _print(msg): print(msg)


if __name__ == '__main__':
    main()
