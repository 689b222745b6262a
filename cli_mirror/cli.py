"""Command line interface for the Glass timeline"""

import argparse
import json
import logging
import sys

from rich.console import Console
from rich.markup import escape

from cli_mirror.errors import BatchDeleteError, GlassError, PartialFailure
from cli_mirror.glass import Glass

console = Console(highlight=False, emoji=False)
# status lines, silenced by --quiet; results always go to console
status = Console(highlight=False, emoji=False)
err_console = Console(stderr=True, highlight=False, emoji=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cli_mirror",
        description="Manage the timeline of a Google Glass through the Mirror API",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose debug output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Don't show any log output")
    parser.add_argument("--glassid", "-o", default=None,
                        help="Specify which Google Glass to communicate with")

    actions = parser.add_mutually_exclusive_group()
    actions.add_argument("--list", "-l", action="store_true",
                         help="List active timeline (no deleted entries)")
    actions.add_argument("--listids", "-L", action="store_true",
                         help="List active timeline (no deleted entries) as id list")
    actions.add_argument("--delete", "-d", metavar="ID", help="Delete timeline entry with ID")
    actions.add_argument("--deleteall", "-D", action="store_true",
                         help="Delete ALL entries in the timeline")
    actions.add_argument("--get", "-g", metavar="ID", help="Get timeline entry with ID")
    actions.add_argument("--insert", "-i", nargs=2, metavar=("CONTENT", "ATTACHMENT"),
                         help="Insert text timeline content and optional attachment "
                              "(use - for no attachment, @file to read content from a file)")
    actions.add_argument("--insertJson", "-I", nargs=2, metavar=("CONTENT", "ATTACHMENT"),
                         help="Insert JSON timeline object and optional attachment "
                              "(use - for no attachment)")
    actions.add_argument("--update", "-u", nargs=3, metavar=("ID", "CONTENT", "ATTACHMENT"),
                         help="Update text timeline content and optional attachment")
    actions.add_argument("--updateJson", "-U", nargs=3, metavar=("ID", "CONTENT", "ATTACHMENT"),
                         help="Update JSON timeline content and optional attachment")

    parser.add_argument("--position", "-p", nargs=4, metavar=("LAT", "LON", "MARKER", "ZOOM"),
                        help="Attach a position as Google Map (use - for no marker/zoom)")
    return parser


def configure_logging(verbose: bool, quiet: bool):
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    for level_no, name in ((logging.DEBUG, "DBG"), (logging.INFO, "INF"),
                           (logging.WARNING, "WRN"), (logging.ERROR, "ERR")):
        logging.addLevelName(level_no, name)
    logging.basicConfig(level=level, format="[%(levelname).3s] %(message)s")
    logging.disable(logging.CRITICAL if quiet else logging.NOTSET)
    status.quiet = quiet


def ok(message: str):
    status.print(f"[green]\\[OK ][/green] {escape(message)}")


def report_error(error: GlassError):
    err_console.print("[red]\\[ERR] cli_mirror completed with errors[/red]")
    err_console.print(f"[red]\\[ERR][/red] {escape(error.message)}")
    if isinstance(error, PartialFailure):
        err_console.print(f"[yellow]\\[WRN][/yellow] Timeline entry {error.entry_id} "
                          "was saved without its attachment")
    if isinstance(error, BatchDeleteError):
        err_console.print(f"[yellow]\\[WRN][/yellow] {error.deleted} timeline entries "
                          "were deleted before the failure")
    if error.detail:
        err_console.print(json.dumps(error.detail, indent=2), markup=False)


def run(args, glass: Glass):
    # list timeline
    if args.list:
        data = glass.list_timeline()
        ok("Glass timeline:")
        console.print(json.dumps({"items": data}, indent=2), markup=False)

    # list timeline as id's
    elif args.listids:
        ids = glass.list_timeline_ids()
        ok("Glass timeline id's:")
        for entry_id in ids:
            console.print(entry_id, markup=False)
        ok(f"Listed {len(ids)} timeline entries")

    # delete a specific timeline entry
    elif args.delete:
        glass.delete_entry(args.delete)
        ok(f"Timeline entry deleted: {args.delete}")

    # delete ALL timeline entries
    elif args.deleteall:
        count = glass.delete_all()
        ok("Timeline entries deleted")
        console.print(count)

    # get a specific timeline entry
    elif args.get:
        entry = glass.get_entry(args.get)
        ok("Timeline entry")
        console.print(json.dumps(entry, indent=2), markup=False)

    # add entry to timeline
    elif args.insert or args.insertJson:
        is_json = bool(args.insertJson)
        content, attachment = args.insertJson if is_json else args.insert
        entry = glass.insert_entry(content, attachment, args.position, is_json=is_json)
        ok("Timeline entry ID")
        console.print(entry.get("id"), markup=False)

    # update entry in timeline
    elif args.update or args.updateJson:
        is_json = bool(args.updateJson)
        entry_id, content, attachment = args.updateJson if is_json else args.update
        entry = glass.update_entry(entry_id, content, attachment, args.position, is_json=is_json)
        ok("Timeline entry ID")
        console.print(entry.get("id"), markup=False)


def main(argv=None, glass: Glass = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    has_action = any([args.list, args.listids, args.delete, args.deleteall, args.get,
                      args.insert, args.insertJson, args.update, args.updateJson])
    if not has_action:
        parser.print_help()
        return 0

    if glass is None:
        glass = Glass(glass_id=args.glassid)

    try:
        run(args, glass)
    except GlassError as e:
        report_error(e)
        return 1

    ok("cli_mirror completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
