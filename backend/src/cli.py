"""Command line interface for vault maintenance."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich import print
from rich.table import Table

from .services.config import get_config
from .services.errors import VaultNotFoundError
from .services.integrity import IntegrityChecker
from .services.vault import VaultService

logger = logging.getLogger(__name__)

APP_HELP = """
document-vault: maintain a Markdown vault and its JSON indexes.

The vault is a directory of Markdown files with YAML frontmatter. Document and
folder ids live in the frontmatter and in two index files inside the metadata
directory (default: .obsidian). These commands rescan the tree, repair
metadata and inspect links.
"""

app = typer.Typer(name="document-vault", help=APP_HELP, no_args_is_help=True)

state: dict = {"service": None}


@app.callback()
def main(
    vault: Optional[Path] = typer.Option(
        None, "--vault", help="Vault directory (defaults to VAULT_PATH)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """
    Vault maintenance commands.
    """
    load_dotenv()
    config = get_config()
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if vault is not None:
        config = config.model_copy(update={"vault_path": vault.expanduser().resolve()})
    state["service"] = VaultService(config)


def _service() -> VaultService:
    return state["service"] or VaultService()


@app.command()
def check(
    strict: bool = typer.Option(False, "--strict", help="Exit with status 1 when any fix was applied."),
):
    """
    Run the integrity checker and print what it repaired.
    """
    report = IntegrityChecker(_service()).check_and_fix()

    table = Table(title="Vault Integrity")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Documents checked", str(report.documents_checked))
    table.add_row("Folders checked", str(report.folders_checked))
    table.add_row("Compositions checked", str(report.compositions_checked))
    table.add_row("Duplicate ids fixed", str(report.duplicate_ids_fixed))
    table.add_row("Missing metadata fixed", str(report.missing_metadata_fixed))
    table.add_row("Invalid dates fixed", str(report.invalid_dates_fixed))
    table.add_row("Orphaned documents fixed", str(report.orphaned_documents_fixed))
    table.add_row("Orphaned folders fixed", str(report.orphaned_folders_fixed))
    table.add_row("Broken context references fixed", str(report.broken_context_references_fixed))
    table.add_row("Composition frontmatter fixed", str(report.composition_frontmatter_fixed))
    table.add_row("Total fixes", str(report.total_fixes))
    print(table)

    for line in report.details:
        print(f"[dim]- {line}[/dim]")

    if report.total_fixes == 0:
        print("[green]Vault is consistent.[/green]")
    elif strict:
        print(f"[yellow]Applied {report.total_fixes} fixes.[/yellow]")
        raise typer.Exit(code=1)


@app.command()
def scan():
    """
    Rescan the vault and rewrite the indexes.
    """
    result = _service().load_vault()
    print(f"[bold green]Scanned[/bold green] {len(result.documents)} documents, {len(result.folders)} folders")


@app.command()
def backlinks(document_id: str = typer.Argument(..., help="Id of the linked-to document.")):
    """
    List documents linking to a document.
    """
    try:
        links = _service().get_backlinks(document_id)
    except VaultNotFoundError as exc:
        print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=1)

    if not links:
        print("[dim]No backlinks.[/dim]")
        return
    table = Table(title=f"Backlinks to {document_id}")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    for link in links:
        table.add_row(link.id, link.name)
    print(table)


@app.command("migrate-links")
def migrate_links():
    """
    Rewrite name and path links as id tokens ([[id:<id>|text]]).
    """
    migrated = _service().migrate_links()
    print(f"[green]Migrated {migrated} links to id tokens[/green]")


__all__ = ["app"]
