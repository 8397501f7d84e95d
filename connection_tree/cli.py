"""
Entry point for the 'connection-tree' command-line tool.

    connection-tree show entries.yaml --config settings.yaml
    connection-tree check "cn=x,ou=a,dc=example,dc=com" "dc=example,dc=com"
"""
import logging
from pathlib import Path
from typing import Optional

import typer
from rich import print as rich_print
from rich.markup import escape
from rich.tree import Tree

from common.app_setup import print_and_log, print_error, setup_logging
from dn.errors import MalformedNameError
from dn.filters import accept

from .entries import load_entries
from .models import ConnectionConfig
from .service import materialize
from .settings import load_settings
from .tree import ConnectionTree, FolderNode

app = typer.Typer(add_completion=False, help="Build connection folder trees from directory entries.")


@app.callback()
def main(
    logfile: Optional[Path] = typer.Option(None, help="Log file (default: ~/.connection-tree/log.txt)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log folder creation as well"),
):
    setup_logging(app_name="connection-tree", loglevel=logging.DEBUG if verbose else logging.INFO,
                  logfile=str(logfile) if logfile else None)


@app.command()
def show(
    entries_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="YAML/JSON file with directory entries"),
    config: Path = typer.Option(..., "--config", "-c", exists=True, dir_okay=False, help="YAML/JSON settings file"),
):
    """Print the folder tree built from ENTRIES_FILE, rooted at the configured base DN."""
    try:
        settings = load_settings(config)
        entries = load_entries(entries_file)
    except ValueError as e:
        print_error(escape(str(e)))
        raise typer.Exit(2)

    tree = materialize(entries, settings)
    rich_print(render_tree(tree))
    for skipped in tree.skipped:
        print_and_log(f"[yellow]Skipped[/yellow] {escape(skipped.identifier)}: {escape(skipped.reason)}")
    print_and_log(f"{len(tree.records)} connections in {len(tree.folders)} folders.")


@app.command()
def check(
    candidate: str = typer.Argument(..., help="DN to test"),
    base: str = typer.Argument(..., help="Base DN"),
):
    """Tell whether CANDIDATE is BASE or lies below it (exit code 1 when not)."""
    try:
        accepted = accept(candidate, base)
    except MalformedNameError as e:
        print_error(escape(str(e)))
        raise typer.Exit(2)
    if not accepted:
        print_and_log(f"{escape(candidate)} is not inside {escape(base)}")
        raise typer.Exit(1)
    print_and_log(f"{escape(candidate)} is inside {escape(base)}")


def render_tree(tree: ConnectionTree) -> Tree:
    """Rich rendering of the tree below the base DN folder."""
    root = tree.root_folder()
    rendered = Tree(f"[bold]{escape(str(tree.base_dn) or root.identifier)}[/bold]")
    _render_folder(tree, root, rendered)
    return rendered


def _render_folder(tree: ConnectionTree, folder: FolderNode, branch: Tree) -> None:
    for child_id in sorted(folder.child_folder_ids):
        child = tree.folders[child_id]
        _render_folder(tree, child, branch.add(f"[bold blue]{escape(child.name)}[/bold blue]"))
    for record_id in sorted(folder.child_record_ids):
        record = tree.records[record_id]
        label = escape(record.name)
        if isinstance(record.payload, ConnectionConfig):
            label += f" [dim]({escape(record.payload.protocol)})[/dim]"
        branch.add(label)


if __name__ == "__main__":
    app()
