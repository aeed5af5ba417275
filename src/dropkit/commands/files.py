"""File commands -- one subcommand per API operation.

Every command resolves the active profile, resumes its stored session and
makes a single call through :func:`~dropkit.commands.session.call`.  Paths
are interpreted below the profile's root (``sandbox`` or ``dropbox``).

Example::

    dropkit files ls /Photos
    dropkit files put ./notes.txt /Docs/notes.txt --overwrite
    dropkit --json files info /Docs/notes.txt | jq .rev
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer

from dropkit.commands.session import call
from dropkit.output import format_response, info, print_data, print_table, success

files_app = typer.Typer(no_args_is_help=True)


def _entry_row(entry: dict[str, Any]) -> list[str]:
    kind = "dir" if entry.get("is_dir") else "file"
    return [
        kind,
        "-" if entry.get("is_dir") else str(entry.get("size", "")),
        str(entry.get("modified", "")),
        str(entry.get("path", "")),
    ]


def _print_entries(entries: list[dict[str, Any]], title: str) -> None:
    print_table(["Type", "Size", "Modified", "Path"], [_entry_row(e) for e in entries], title)


@files_app.command("ls")
def files_ls(
    ctx: typer.Context,
    path: str = typer.Argument("/", help="Folder to list."),
    include_deleted: bool = typer.Option(False, "--deleted", help="Include deleted entries."),
) -> None:
    """List the contents of a folder."""
    data = call(ctx, lambda c: c.metadata(path, list=True, include_deleted=include_deleted or None))
    if not isinstance(data, dict) or not data.get("is_dir"):
        format_response(data)
        return
    _print_entries(data.get("contents", []), data.get("path") or path)


@files_app.command("info")
def files_info(
    ctx: typer.Context,
    path: str = typer.Argument(help="File or folder."),
    rev: Optional[str] = typer.Option(None, "--rev", help="Show a specific revision."),
) -> None:
    """Show metadata for a file or folder."""
    format_response(call(ctx, lambda c: c.metadata(path, list=False, rev=rev)))


@files_app.command("search")
def files_search(
    ctx: typer.Context,
    path: str = typer.Argument(help="Folder to search below."),
    query: str = typer.Argument(help="Text the file name must contain."),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of results."),
) -> None:
    """Search for files and folders by name."""
    data = call(ctx, lambda c: c.search(path, query, file_limit=limit))
    if isinstance(data, list):
        _print_entries(data, f'Matches for "{query}"')
    else:
        format_response(data)


@files_app.command("get")
def files_get(
    ctx: typer.Context,
    path: str = typer.Argument(help="File to download."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write to this file instead of stdout."
    ),
    rev: Optional[str] = typer.Option(None, "--rev", help="Download a specific revision."),
) -> None:
    """Download a file."""
    data: bytes = call(ctx, lambda c: c.get_file(path, rev=rev))
    if output is not None:
        output.write_bytes(data)
        success(f"Saved {len(data)} bytes to {output}")
        return
    stream = typer.get_binary_stream("stdout")
    stream.write(data)
    stream.flush()


@files_app.command("put")
def files_put(
    ctx: typer.Context,
    local: Path = typer.Argument(help="Local file to upload.", exists=True, dir_okay=False),
    remote: str = typer.Argument(help="Destination path."),
    overwrite: bool = typer.Option(
        False, "--overwrite", help="Replace an existing file instead of keeping both."
    ),
) -> None:
    """Upload a file."""
    body = local.read_bytes()
    data = call(ctx, lambda c: c.put_file(remote, body, overwrite=overwrite))
    if isinstance(data, dict):
        success(f"Uploaded {data.get('path', remote)} (rev {data.get('rev', '?')})")
    format_response(data)


@files_app.command("mkdir")
def files_mkdir(ctx: typer.Context, path: str = typer.Argument(help="Folder to create.")) -> None:
    """Create a folder."""
    format_response(call(ctx, lambda c: c.create_folder(path)))


@files_app.command("rm")
def files_rm(ctx: typer.Context, path: str = typer.Argument(help="File or folder to delete.")) -> None:
    """Delete a file or folder."""
    call(ctx, lambda c: c.delete(path))
    success(f"Deleted {path}")


@files_app.command("mv")
def files_mv(
    ctx: typer.Context,
    source: str = typer.Argument(help="Current path."),
    destination: str = typer.Argument(help="New path."),
) -> None:
    """Move or rename a file or folder."""
    format_response(call(ctx, lambda c: c.move(source, destination)))


@files_app.command("cp")
def files_cp(
    ctx: typer.Context,
    source: str = typer.Argument(help="Path to copy, or a copy reference with --ref."),
    destination: str = typer.Argument(help="Destination path."),
    from_ref: bool = typer.Option(False, "--ref", help="Treat SOURCE as a copy reference."),
) -> None:
    """Copy a file or folder."""
    if from_ref:
        data = call(ctx, lambda c: c.copy(None, destination, from_copy_ref=source))
    else:
        data = call(ctx, lambda c: c.copy(source, destination))
    format_response(data)


@files_app.command("share")
def files_share(
    ctx: typer.Context,
    path: str = typer.Argument(help="File or folder to share."),
    media: bool = typer.Option(False, "--media", help="Create a direct streaming link instead."),
) -> None:
    """Create a shareable link."""
    if media:
        data = call(ctx, lambda c: c.media(path))
    else:
        data = call(ctx, lambda c: c.shares(path, short_url=False))
    if isinstance(data, dict) and "url" in data:
        print_data(data["url"])
        if data.get("expires"):
            info(f"Expires: {data['expires']}")
    else:
        format_response(data)


@files_app.command("ref")
def files_ref(ctx: typer.Context, path: str = typer.Argument(help="File to reference.")) -> None:
    """Create a copy reference usable with ``cp --ref``."""
    data = call(ctx, lambda c: c.copy_ref(path))
    if isinstance(data, dict) and "copy_ref" in data:
        print_data(data["copy_ref"])
    else:
        format_response(data)


@files_app.command("revisions")
def files_revisions(
    ctx: typer.Context,
    path: str = typer.Argument(help="File whose history to list."),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of revisions."),
) -> None:
    """List previous revisions of a file."""
    data = call(ctx, lambda c: c.revisions(path, rev_limit=limit))
    if not isinstance(data, list):
        format_response(data)
        return
    rows = [
        [str(e.get("rev", "")), str(e.get("size", "")), str(e.get("modified", "")),
         "deleted" if e.get("is_deleted") else ""]
        for e in data
    ]
    print_table(["Rev", "Size", "Modified", "State"], rows, title=path)


@files_app.command("restore")
def files_restore(
    ctx: typer.Context,
    path: str = typer.Argument(help="File to restore."),
    rev: str = typer.Argument(help="Revision to restore."),
) -> None:
    """Restore a file to an earlier revision."""
    format_response(call(ctx, lambda c: c.restore(path, rev)))


@files_app.command("thumbnail")
def files_thumbnail(
    ctx: typer.Context,
    path: str = typer.Argument(help="Image file."),
    output: Path = typer.Option(..., "--output", "-o", help="Where to save the thumbnail."),
    size: Optional[str] = typer.Option(None, "--size", help="xs, s, m, l or xl."),
    format: Optional[str] = typer.Option(None, "--format", help="JPEG or PNG."),
) -> None:
    """Download a thumbnail of an image."""
    data: bytes = call(ctx, lambda c: c.thumbnails(path, size=size, format=format))
    output.write_bytes(data)
    success(f"Saved thumbnail to {output}")


@files_app.command("delta")
def files_delta(
    ctx: typer.Context,
    cursor: Optional[str] = typer.Option(None, "--cursor", help="Cursor from a previous call."),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Only report changes below this path."),
) -> None:
    """Show changes since a cursor."""
    data = call(ctx, lambda c: c.delta(cursor=cursor, path_prefix=prefix))
    format_response(data)
    if isinstance(data, dict):
        if data.get("has_more"):
            info("More changes are pending; call again with the new cursor.")
        if data.get("cursor"):
            info(f"Cursor: {data['cursor']}")


@files_app.command("account")
def files_account(ctx: typer.Context) -> None:
    """Show information about the linked account."""
    format_response(call(ctx, lambda c: c.account_info()))
