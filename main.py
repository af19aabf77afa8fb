"""CLI entry point for Focus Groups."""

import logging
import signal
import sys

from config import STORE_PATH, WATCH_INTERVAL
from dns_server import FocusGroupsDNS, IS_WINDOWS
from errors import FocusGroupsError
from group_store import GroupStore, read_groups
from logutil import setup_logging
from rule_compiler import compile_patterns, first_match
from rule_engine import RequestInterceptor, RuleStateMachine
from storage import KeyValueStore
from store_watcher import StoreWatcher

ELEVATION_CMD = "Run as Administrator" if IS_WINDOWS else "sudo python"

logger = logging.getLogger(__name__)


def print_usage():
    """Print usage information."""
    print(
        f"""Focus Groups - Block groups of distracting websites

Usage:
    python main.py <command> [arguments]

Commands:
    start                       Start the blocking service (foreground)
    status                      Show groups and what is currently blocked
    list                        List groups and their websites
    patterns                    Show the match patterns of active groups
    check <url>                 Tell whether a URL would be blocked
    add-group <title>           Create a new, active group
    remove-group <title>        Delete a group
    add-site <title> <url>      Add a website to a group
    remove-site <title> <site>  Remove a website from a group
    toggle <title>              Turn blocking for a group on or off
    toggle-expanded <title>     Expand or collapse a group in listings

Examples:
    python main.py add-group Work
    python main.py add-site Work https://www.reddit.com/r/all
    {ELEVATION_CMD} main.py start

Groups are stored in {STORE_PATH}.
"""
    )


def open_group_store() -> GroupStore:
    groups = GroupStore(KeyValueStore(STORE_PATH))
    groups.load()
    return groups


def start_enforcement(
    store: KeyValueStore,
    interceptor: RequestInterceptor,
    check_interval: float = WATCH_INTERVAL,
) -> tuple[RuleStateMachine, StoreWatcher]:
    """
    Install the current rules and keep them in sync with the store.

    The watcher takes its baseline before the initial transition reads
    the groups, so a write landing in between is either part of that
    read or reported as a change by the next poll.
    """
    machine = RuleStateMachine(lambda: read_groups(store), interceptor)
    watcher = StoreWatcher(store, machine.handle_change, check_interval=check_interval)
    watcher.start()
    machine.on_event()
    return machine, watcher


def cmd_start():
    """Start the blocking service in foreground."""
    store = KeyValueStore(STORE_PATH)
    interceptor = RequestInterceptor()
    server = FocusGroupsDNS(interceptor)
    _, watcher = start_enforcement(store, interceptor)

    def signal_handler(signum, frame):
        logger.info("Shutting down")
        watcher.stop()
        server.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        server.start()
    except PermissionError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except OSError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        watcher.stop()


def cmd_list():
    """List groups and their websites."""
    groups = open_group_store().groups
    if not groups:
        print("No groups yet. Create one with: python main.py add-group <title>")
        return

    for group in groups:
        marker = "on " if group.active else "off"
        arrow = "v" if group.expanded else ">"
        print(f"{arrow} [{marker}] {group.title} ({len(group.websites)} websites)")
        if group.expanded:
            for website in group.websites:
                print(f"      - {website}")


def cmd_patterns():
    """Print the match patterns of all active groups."""
    for pattern in sorted(compile_patterns(open_group_store().groups)):
        print(pattern)


def cmd_status():
    """Show current status."""
    groups = open_group_store().groups
    active = [g for g in groups if g.active]
    patterns = compile_patterns(groups)

    print("=" * 50)
    print("Focus Groups Status")
    print("=" * 50)
    print()
    print(f"Groups:    {len(groups)} ({len(active)} active)")
    print(f"Patterns:  {len(patterns)}")
    print()
    if patterns:
        blocked = sorted({w for g in active for w in g.websites})
        print(f"Blocking is ACTIVE for: {', '.join(blocked)}")
    else:
        print("Blocking is INACTIVE. No active group has websites.")
    print()


def cmd_check(url: str):
    """Tell whether a URL would be redirected by the current groups."""
    store = KeyValueStore(STORE_PATH)
    interceptor = RequestInterceptor()
    RuleStateMachine(lambda: read_groups(store), interceptor).on_event()

    redirect = interceptor.intercept(url)
    if redirect:
        pattern = first_match(interceptor.patterns, url)
        print(f"BLOCKED: {url} -> {redirect} (matched {pattern})")
    else:
        print(f"ALLOWED: {url}")


def cmd_add_group(title: str):
    if open_group_store().add_group(title):
        print(f"Added group: {title.strip()}")


def cmd_remove_group(title: str):
    if open_group_store().remove_group(title):
        print(f"Removed group: {title}")
    else:
        print(f"No such group: {title}")


def cmd_add_site(title: str, url: str):
    groups = open_group_store()
    if groups.add_website(title, url):
        print(f"Added {groups.get(title).websites[-1]} to {title}")
    else:
        print(f"Nothing added to {title}")


def cmd_remove_site(title: str, website: str):
    if open_group_store().remove_website(title, website):
        print(f"Removed {website} from {title}")
    else:
        print(f"{website} is not in {title}")


def cmd_toggle(title: str):
    active = open_group_store().toggle_active(title)
    print(f"{title} is now {'active' if active else 'inactive'}")


def cmd_toggle_expanded(title: str):
    expanded = open_group_store().toggle_expanded(title)
    print(f"{title} is now {'expanded' if expanded else 'collapsed'}")


COMMANDS = {
    "start": (cmd_start, 0),
    "status": (cmd_status, 0),
    "list": (cmd_list, 0),
    "patterns": (cmd_patterns, 0),
    "check": (cmd_check, 1),
    "add-group": (cmd_add_group, 1),
    "remove-group": (cmd_remove_group, 1),
    "add-site": (cmd_add_site, 2),
    "remove-site": (cmd_remove_site, 2),
    "toggle": (cmd_toggle, 1),
    "toggle-expanded": (cmd_toggle_expanded, 1),
}


def main(argv=None):
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print_usage()
        sys.exit(1)

    setup_logging()
    command, args = argv[0].lower(), argv[1:]

    if command in ("-h", "--help", "help"):
        print_usage()
        return

    if command not in COMMANDS:
        print(f"Unknown command: {command}")
        print_usage()
        sys.exit(1)

    func, arity = COMMANDS[command]
    if len(args) != arity:
        print(f"Error: {command} takes {arity} argument(s), got {len(args)}")
        sys.exit(1)

    try:
        func(*args)
    except FocusGroupsError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
