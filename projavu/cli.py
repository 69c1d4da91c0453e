"""
projavu CLI — On-Disk Storing and Managing of Project Ideas

Commands:
    projavu init                              — create the idea book
    projavu add TITLE... [--content T|--stdin] — stash an idea
    projavu view ID                           — print an idea's content
    projavu edit ID [--content T|--stdin]     — replace an idea's content
    projavu rename ID TITLE...                — change an idea's title
    projavu progress ID STAGE                 — move an idea to another stage
    projavu delete ID [--no-prompt]           — drop an idea (content kept until purge)
    projavu purge [--no-delay]                — delete unreferenced content
    projavu tag add|remove ID TAGS...         — append or remove tags
    projavu list [-t TAG] [-p STAGE] [-i ID] [WORDS...]
                                              — filtered table of ideas (default)

Environment variables:
    PROJAVU_HOME    Idea book directory (default: $XDG_DATA_HOME/projavu)
    PROJAVU_CONFIG  Path to a JSON config file
    EDITOR          Editor used by add/edit when no content is given

Precedence (invariant):
    CLI --flag  >  PROJAVU_* env var  >  config file  >  compiled default

Exit codes:
    0  Success
    1  Operational error (invalid id, bad stage, aborted prompt, no content,
       invalid config)
    2  Internal failure (unexpected exception)
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from typing import List, NoReturn, Optional

from projavu import __version__
from projavu.book import IdeaBook
from projavu.config import (
    BookConfig,
    ValidationError,
    load_config,
    resolve_config_path,
    resolve_root,
)
from projavu.editor import EditorError, edit_text
from projavu.errors import IdeaBookError
from projavu.query import IdeaFilter, filter_ideas
from projavu.types import Idea, IdeaProgress

logger = logging.getLogger(__name__)

_CONTENT_PLACEHOLDER = "idea content"


# ---------------------------------------------------------------------------
# Stderr helpers (respect --quiet)
# ---------------------------------------------------------------------------

_quiet = False


def _info(msg: str) -> None:
    """Print progress to stderr (suppressed by --quiet)."""
    if not _quiet:
        print(msg, file=sys.stderr)


def _warn(msg: str) -> None:
    """Print warning to stderr (always visible)."""
    print(msg, file=sys.stderr)


def _fail(msg: str) -> NoReturn:
    """Report an operational error and exit 1."""
    _warn(f"Error: {msg}")
    sys.exit(1)


# ---------------------------------------------------------------------------
# Book factory
# ---------------------------------------------------------------------------


def _load_config(args: argparse.Namespace) -> BookConfig:
    """Config from --config / PROJAVU_CONFIG / <root>/config.json."""
    root = resolve_root(getattr(args, "target_path", None))
    path = resolve_config_path(getattr(args, "config", None), root)
    return load_config(path, strict=True)


def _open_book(args: argparse.Namespace, config: BookConfig) -> IdeaBook:
    """Open (and initialize if needed) the idea book."""
    root = resolve_root(getattr(args, "target_path", None), config)
    logger.debug("using '%s' as the root path", root)
    book = IdeaBook(root, table_basename=config.store.table_basename)
    book.initialize()
    return book


def _content_from_args(args: argparse.Namespace, initial: str) -> Optional[str]:
    """Content from --content, --stdin, or the editor (None = nothing given)."""
    if getattr(args, "content", None) is not None:
        return args.content
    if getattr(args, "stdin", False):
        text = sys.stdin.read()
        return text if text.strip() else None
    return edit_text(initial)


def _join_words(words: List[str]) -> str:
    return " ".join(words).strip()


def _json_out(payload) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


# ===========================================================================
# Commands
# ===========================================================================


def cmd_init(args: argparse.Namespace, book: IdeaBook, config: BookConfig) -> None:
    """Create the idea book (idempotent)."""
    _info(f"Idea book ready: {book.root}")
    print(f'export PROJAVU_HOME="{book.root}"')


def cmd_add(args: argparse.Namespace, book: IdeaBook, config: BookConfig) -> None:
    """Stash a new idea."""
    title = _join_words(args.title)
    if not title:
        _fail("No title was provided")
    progress = IdeaProgress.from_string(args.progress)
    content = _content_from_args(args, _CONTENT_PLACEHOLDER)
    if content is None:
        _fail("No content was provided")

    try:
        idea_id = book.add(title, content, progress, args.tag or [])
    except IdeaBookError:
        logger.warning(
            "The following content could not be added, "
            "thus it is printed for recovery: %s", content,
        )
        raise

    if getattr(args, "json", False):
        _json_out({"status": "ok", "id": idea_id})
    else:
        print(f"The idea has been added under the id: {idea_id}")


def cmd_view(args: argparse.Namespace, book: IdeaBook, config: BookConfig) -> None:
    """Print an idea's content."""
    idea = book.read(args.id)
    if getattr(args, "json", False):
        _json_out(idea.to_dict())
    else:
        sys.stdout.write(idea.text)
        sys.stdout.flush()


def cmd_edit(args: argparse.Namespace, book: IdeaBook, config: BookConfig) -> None:
    """Replace an idea's content."""
    idea = book.read(args.id)
    content = _content_from_args(args, idea.text)
    if content is None:
        _fail("No content was provided")
    book.edit_content(idea.id, content)
    print("The idea has been edited.")


def cmd_rename(args: argparse.Namespace, book: IdeaBook, config: BookConfig) -> None:
    """Change an idea's title."""
    title = _join_words(args.title)
    if not title:
        _fail("No title was provided")
    idea = book.read(args.id)
    book.edit_title(idea.id, title)
    print(f'The idea has been renamed: "{idea.title}" -> "{title}"')


def cmd_progress(args: argparse.Namespace, book: IdeaBook, config: BookConfig) -> None:
    """Update an idea's progress stage."""
    progress = IdeaProgress.from_string(args.stage)
    book.edit_progress(args.id, progress)
    print("The progress status was updated.")


def cmd_delete(args: argparse.Namespace, book: IdeaBook, config: BookConfig) -> None:
    """Remove an idea from the table."""
    idea = book.read(args.id)

    if config.cli.confirm_delete and not args.no_prompt:
        sys.stdout.write(f'Delete "{idea.title}"? (y/n) ')
        sys.stdout.flush()
        answer = sys.stdin.readline().strip()
        if answer != "y":
            _fail("No idea was deleted, the deletion was aborted")

    book.remove(idea.id)
    print(f'The idea with the title "{idea.title}" has been deleted.')


def cmd_purge(args: argparse.Namespace, book: IdeaBook, config: BookConfig) -> None:
    """Delete all content no idea references anymore."""
    delay = 0 if args.no_delay else config.cli.purge_delay_seconds
    if delay:
        _warn(f"All unreferenced ideas will be permanently deleted in {delay} seconds...")
        time.sleep(delay)

    deleted = book.clean_invalid_references()

    if getattr(args, "json", False):
        _json_out({"status": "ok", "deleted": deleted})
    else:
        print(f"All invalid references have been deleted ({len(deleted)} removed).")


def cmd_tag(args: argparse.Namespace, book: IdeaBook, config: BookConfig) -> None:
    """Append tags to or remove tags from an idea."""
    idea = book.read(args.id)
    if args.tag_action == "add":
        updated = book.add_tags(idea.id, args.tags)
    else:
        updated = book.remove_tags(idea.id, args.tags)
    print(f"The tags were updated: {', '.join(updated.tags)}")


def _render_table(ideas: List[Idea]) -> List[str]:
    """Plain aligned columns: id, progress, title, tags."""
    rows = [("id", "progress", "title", "tags")]
    for idea in ideas:
        rows.append((str(idea.id), idea.progress.value, idea.title, ", ".join(idea.tags)))
    widths = [max(len(r[i]) for r in rows) for i in range(3)]
    lines = []
    for r in rows:
        cells = [r[i].ljust(widths[i]) for i in range(3)] + [r[3]]
        lines.append("  ".join(cells).rstrip())
    return lines


def cmd_list(args: argparse.Namespace, book: IdeaBook, config: BookConfig) -> None:
    """List ideas matching the filters."""
    flt = IdeaFilter(
        tags=getattr(args, "filter_tag", None) or [],
        progress=[IdeaProgress.from_string(p) for p in getattr(args, "filter_progress", None) or []],
        id=getattr(args, "filter_id", None),
        title_words=getattr(args, "words", None) or [],
        max_distance=config.cli.fuzzy_distance,
        min_length=config.cli.min_word_length,
    )
    result = filter_ideas(book.iterate(), flt)

    if getattr(args, "json", False):
        _json_out({
            "status": "ok",
            "total": result.total,
            "matched": len(result.matched),
            "ideas": [idea.to_dict() for idea in result.matched],
        })
        return

    for line in _render_table(result.matched):
        print(line)
    print(f"\n{result.total} ideas, filtered {len(result.matched)} ideas")


def cmd_version(args: argparse.Namespace, book: Optional[IdeaBook], config: BookConfig) -> None:
    """Print the program's version."""
    print(__version__)


# ===========================================================================
# Parser
# ===========================================================================


def _progress_help() -> str:
    lines = ["Options are:"]
    for p in IdeaProgress:
        lines.append(f"  {p.value} - {p.describe()}")
    return "\n".join(lines)


def _add_list_arguments(p: argparse.ArgumentParser) -> None:
    """Register listing filters on a parser. Single source of truth."""
    p.add_argument("-t", "--filter-tag", action="append", default=argparse.SUPPRESS,
                   help="Filter for a specific tag (repeatable)")
    p.add_argument("-p", "--filter-progress", action="append", default=argparse.SUPPRESS,
                   help="Filter for a specific progress (repeatable)")
    p.add_argument("-i", "--filter-id", type=int, default=argparse.SUPPRESS,
                   help="Filter for a specific id")


def _add_content_arguments(p: argparse.ArgumentParser) -> None:
    group = p.add_mutually_exclusive_group()
    group.add_argument("--content", default=None, help="Content text (skips $EDITOR)")
    group.add_argument("--stdin", action="store_true", help="Read content from stdin")


def build_parser() -> argparse.ArgumentParser:
    """Build the projavu argument parser."""
    # SUPPRESS defaults keep subparser defaults from overriding values
    # parsed at the main-parser level (argparse parents quirk).
    _common = argparse.ArgumentParser(add_help=False)
    _common.add_argument(
        "--target-path", default=argparse.SUPPRESS,
        help="Override the default ideabook location",
    )
    _common.add_argument(
        "--config", default=argparse.SUPPRESS,
        help="Path to a JSON config file (default: PROJAVU_CONFIG or <root>/config.json)",
    )
    _common.add_argument(
        "--quiet", "-q", action="store_true", default=argparse.SUPPRESS,
        help="Suppress stderr progress messages",
    )
    _common.add_argument(
        "--json", action="store_true", default=argparse.SUPPRESS,
        help="Machine-readable JSON output (add, view, purge, list)",
    )
    _common.add_argument(
        "-v", "--verbose", action="store_true", default=argparse.SUPPRESS,
        help="Enable verbose logging",
    )

    parser = argparse.ArgumentParser(
        prog="projavu",
        description="projavu - on-disk storing and managing of project ideas",
        parents=[_common],
    )
    parser.add_argument("--version", action="version", version=__version__)
    _add_list_arguments(parser)

    sub = parser.add_subparsers(dest="command", help="Available commands")

    p_init = sub.add_parser("init", parents=[_common], help="Create the idea book")
    p_init.set_defaults(func=cmd_init)

    p_add = sub.add_parser("add", parents=[_common], help="Stash an idea to the ideabook")
    p_add.add_argument("title", nargs="*", help="Title of the idea")
    p_add.add_argument("--progress", default=IdeaProgress.pending.value,
                       help="Initial progress stage (default: pending)")
    p_add.add_argument("--tag", action="append", default=None, help="Tag (repeatable)")
    _add_content_arguments(p_add)
    p_add.set_defaults(func=cmd_add)

    p_view = sub.add_parser("view", parents=[_common], help="Print an existing idea")
    p_view.add_argument("id", type=int)
    p_view.set_defaults(func=cmd_view)

    p_edit = sub.add_parser("edit", parents=[_common], help="Edit an existing idea")
    p_edit.add_argument("id", type=int)
    _add_content_arguments(p_edit)
    p_edit.set_defaults(func=cmd_edit)

    p_rename = sub.add_parser("rename", parents=[_common], help="Change the title of an idea")
    p_rename.add_argument("id", type=int)
    p_rename.add_argument("title", nargs="*", help="New title")
    p_rename.set_defaults(func=cmd_rename)

    p_progress = sub.add_parser(
        "progress", parents=[_common],
        help="Update the progress status of an idea",
        description=_progress_help(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p_progress.add_argument("id", type=int)
    p_progress.add_argument("stage", help="New progress stage")
    p_progress.set_defaults(func=cmd_progress)

    p_delete = sub.add_parser("delete", parents=[_common],
                              help="Delete an idea's reference, invalidating it")
    p_delete.add_argument("id", type=int)
    p_delete.add_argument("--no-prompt", action="store_true",
                          help="Do not ask for interactive confirmation")
    p_delete.set_defaults(func=cmd_delete)

    p_purge = sub.add_parser("purge", parents=[_common],
                             help="Delete all on-disk content that is not referenced anymore")
    p_purge.add_argument("--no-delay", action="store_true",
                         help="Skip the grace period before deleting")
    p_purge.set_defaults(func=cmd_purge)

    p_tag = sub.add_parser("tag", parents=[_common], help="Append to or remove tags from an idea")
    tag_sub = p_tag.add_subparsers(dest="tag_action")
    tag_sub.required = True
    for action, text in (("add", "The tags to append"), ("remove", "The tags to remove")):
        p = tag_sub.add_parser(action, parents=[_common])
        p.add_argument("id", type=int)
        p.add_argument("tags", nargs="+", help=text)
    p_tag.set_defaults(func=cmd_tag)

    p_list = sub.add_parser("list", parents=[_common], help="List ideas matching filters")
    _add_list_arguments(p_list)
    p_list.add_argument("words", nargs="*", help="Fuzzy-match words in titles")
    p_list.set_defaults(func=cmd_list)

    p_version = sub.add_parser("version", parents=[_common], help="Print the version")
    p_version.set_defaults(func=cmd_version)

    return parser


# ===========================================================================
# Entry point
# ===========================================================================


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point: projavu <command> [args]."""
    global _quiet

    parser = build_parser()
    args = parser.parse_args(argv)

    _quiet = getattr(args, "quiet", False)

    if getattr(args, "verbose", False):
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s %(levelname)s %(message)s",
        )
    else:
        logging.basicConfig(level=logging.WARNING)

    func = getattr(args, "func", cmd_list)

    try:
        config = _load_config(args)
        if func is cmd_version:
            func(args, None, config)
            return
        book = _open_book(args, config)
        func(args, book, config)
    except (IdeaBookError, EditorError, ValidationError) as e:
        _fail(str(e))
    except BrokenPipeError:
        # Handle broken pipe gracefully (e.g. projavu list | head)
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        sys.exit(0)
    except KeyboardInterrupt:
        sys.exit(0)
    except Exception as e:
        _warn(f"Internal error: {e}")
        if getattr(args, "verbose", False):
            import traceback
            traceback.print_exc(file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
