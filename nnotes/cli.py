"""
CLI interface for nnotes.

Usage:
    nnotes "Title" "Content"     create a note
    nnotes -l                    list all notes
    nnotes "query text"          search notes
    nnotes -d <id>               delete a note
"""

import json
import os
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .api import NoteRepository
from .errors import NoteStoreError, NotFound, PartialFailure
from .logging_config import configure_quiet_mode, enable_debug_mode
from .types import Note, SearchHit

SEPARATOR = "-----------------------"

USAGE = """\
Usage:
  nnotes TITLE CONTENT     Create a note
  nnotes QUERY             Search notes
  nnotes -l                List all notes
  nnotes -d ID             Delete a note
  nnotes --rebuild         Rebuild the search index from the stored notes
  nnotes --check           Compare stored notes with the search index
  nnotes --reindex ID      Index one stored note again

Options: --store PATH, --json, --limit N, --verbose"""


# Configure quiet mode by default
# Set NNOTES_VERBOSE=1 to enable debug mode via environment
if os.environ.get("NNOTES_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# --store value, so main() can put the error log beside the store
_store_override: Optional[Path] = None


app = typer.Typer(
    name="nnotes",
    help="Personal notes with full-text search.",
    add_completion=False,
    rich_markup_mode=None,
)


# -----------------------------------------------------------------------------
# Output Formatting
# -----------------------------------------------------------------------------

def _format_note(note: Note, score: Optional[float] = None) -> str:
    lines = [
        f"Note Id: {note.id}",
        f"Title: {note.title}",
        f"Content: {note.content}",
    ]
    if score is not None:
        lines.append(f"Score: {score:.4f}")
    lines.append(SEPARATOR)
    return "\n".join(lines)


def _echo_notes(notes: list[Note], as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps([n.to_dict() for n in notes], indent=2, ensure_ascii=False))
    elif not notes:
        typer.echo("No notes found")
    else:
        for note in notes:
            typer.echo(_format_note(note))


def _echo_hits(hits: list[SearchHit], as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps([h.to_dict() for h in hits], indent=2, ensure_ascii=False))
    elif not hits:
        typer.echo("No notes found")
    else:
        for hit in hits:
            typer.echo(_format_note(hit.note, hit.score))


def _report_error(e: NoteStoreError) -> None:
    """Print a failure, naming the stage (store or index) that failed."""
    if isinstance(e, NotFound):
        typer.echo(str(e), err=True)
        return
    typer.echo(f"Error ({e.stage}): {e}", err=True)
    if isinstance(e, PartialFailure):
        typer.echo(f"Run `nnotes --reindex {e.note_id}` to make it searchable.", err=True)


def _usage_error() -> None:
    typer.echo(USAGE, err=True)
    raise typer.Exit(2)


# -----------------------------------------------------------------------------
# Command
# -----------------------------------------------------------------------------

StoreOption = Annotated[
    Optional[Path],
    typer.Option(
        "--store", "-s",
        envvar="NNOTES_STORE_PATH",
        help="Path to the store directory (default: ~/.nnotes/)"
    )
]


@app.command()
def nnotes(
    args: Annotated[Optional[list[str]], typer.Argument(
        help="TITLE CONTENT to create a note, or QUERY to search",
        show_default=False,
    )] = None,
    list_notes: Annotated[bool, typer.Option(
        "--list", "-l",
        help="List all notes",
    )] = False,
    delete_id: Annotated[Optional[str], typer.Option(
        "--delete", "-d",
        help="Delete the note with this ID",
    )] = None,
    rebuild: Annotated[bool, typer.Option(
        "--rebuild",
        help="Rebuild the search index from the stored notes",
    )] = False,
    check: Annotated[bool, typer.Option(
        "--check",
        help="Compare stored notes with the search index",
    )] = False,
    reindex_id: Annotated[Optional[str], typer.Option(
        "--reindex",
        help="Index the stored note with this ID again",
    )] = None,
    limit: Annotated[Optional[int], typer.Option(
        "--limit", "-n",
        min=1,
        help="Maximum search results (default: 10)",
    )] = None,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
    )] = False,
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    store: StoreOption = None,
):
    """
    Create, list, search and delete notes.

    \b
    Examples:
        nnotes "Groceries" "buy milk and eggs"
        nnotes milk
        nnotes '"milk and eggs" -bread'
        nnotes -l
        nnotes -d 0b6c0c3e-...
    """
    global _store_override
    _store_override = store.expanduser() if store is not None else None
    args = args or []
    modes = [
        name for name, selected in (
            ("list", list_notes),
            ("delete", delete_id is not None),
            ("rebuild", rebuild),
            ("check", check),
            ("reindex", reindex_id is not None),
        )
        if selected
    ]
    if len(modes) > 1 or (modes and args) or (not modes and len(args) not in (1, 2)):
        _usage_error()

    try:
        repo = NoteRepository(store)
    except NoteStoreError as e:
        _report_error(e)
        return
    except ValueError as e:
        typer.echo(f"Error (config): {e}", err=True)
        return

    with repo:
        try:
            if list_notes:
                _echo_notes(repo.list(), output_json)
            elif delete_id is not None:
                _delete(repo, delete_id)
            elif rebuild:
                count = repo.rebuild()
                typer.echo(f"Search index rebuilt: {count} notes indexed")
            elif check:
                _check(repo, output_json)
            elif reindex_id is not None:
                note = repo.reindex(reindex_id)
                typer.echo(f"Note {note.id} indexed successfully!")
            elif len(args) == 1:
                _echo_hits(repo.search(args[0], limit=limit), output_json)
            else:
                _create(repo, args[0], args[1], output_json)
        except NoteStoreError as e:
            _report_error(e)


def _create(repo: NoteRepository, title: str, content: str, as_json: bool) -> None:
    note = repo.create(title, content)
    if as_json:
        typer.echo(json.dumps(note.to_dict(), indent=2, ensure_ascii=False))
    else:
        typer.echo("Note saved successfully!")
        typer.echo(f"Note Id: {note.id}")


def _delete(repo: NoteRepository, note_id: str) -> None:
    if repo.delete(note_id):
        typer.echo(f"Note {note_id} deleted successfully!")
    else:
        typer.echo(f"Note {note_id} deleted, but its search index entry could not be removed.", err=True)
        typer.echo("Run `nnotes --rebuild` to clean up the index.", err=True)


def _check(repo: NoteRepository, as_json: bool) -> None:
    report = repo.check()
    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return
    if report.consistent:
        typer.echo("Notes and search index are consistent")
        return
    for label, ids in (
        ("Not searchable", report.missing),
        ("Deleted but still indexed", report.orphaned),
        ("Indexed more than once", report.duplicated),
    ):
        for note_id in ids:
            typer.echo(f"{label}: {note_id}")
    typer.echo("Run `nnotes --rebuild` to repair the search index.")


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="nnotes CLI", store_path=_store_override)
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
