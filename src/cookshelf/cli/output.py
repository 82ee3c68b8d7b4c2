"""Rich output formatting helpers for the cookshelf CLI.

Provides consistent terminal output for resolutions, resolution errors,
install order, dependency trees, and locked and outdated cookbooks, plus
the JSON forms used by ``--format json``.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from cookshelf.core.dependency.resolution import Resolution
from cookshelf.core.lockfile import LockedCookbook, OutdatedCookbook
from cookshelf.exceptions import CookshelfError

console = Console()


def print_resolution(resolution: Resolution) -> None:
    """Print the resolved cookbooks as a table."""
    if not resolution.has_errors():
        console.print(Panel("[bold green]Resolution successful[/bold green]", title="Dependency Resolution"))
    else:
        console.print(Panel("[bold red]Resolution failed[/bold red]", title="Dependency Resolution"))

    if resolution.cookbook_count() == 0:
        console.print("[dim]No cookbooks resolved.[/dim]")
    else:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Cookbook", style="bold")
        table.add_column("Version")
        table.add_column("Source", style="dim")
        for rc in resolution.all_cookbooks():
            table.add_row(escape(rc.name), str(rc.version), escape(rc.source_name or str(rc.source or "")))
        console.print(table)

    print_errors(resolution.errors)


def print_errors(errors: list[CookshelfError]) -> None:
    """Print per-package resolution errors, one per line."""
    for error in errors:
        console.print(f"  [red]- {escape(str(error))}[/red]", highlight=False)


def print_install_order(resolution: Resolution) -> None:
    """Print the install order, dependencies first."""
    order = resolution.install_order
    if not order:
        console.print("[dim]No install order available.[/dim]")
        return
    table = Table(title="Install Order", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Cookbook", style="bold")
    table.add_column("Version")
    table.add_column("Depends On", style="dim")
    for index, name in enumerate(order, start=1):
        rc = resolution.get_cookbook(name)
        if rc is None:
            continue
        deps = ", ".join(sorted(rc.dependencies)) or "-"
        table.add_row(str(index), escape(name), str(rc.version), escape(deps))
    console.print(table)


def print_dependency_tree(resolution: Resolution, roots: list[str]) -> None:
    """Print the dependency tree below each of *roots*.

    A cookbook already shown on the current branch is printed once more
    and not expanded, so cycles terminate.
    """
    tree = Tree("[bold]Dependencies[/bold]")

    def _add(parent: Tree, name: str, path: tuple[str, ...]) -> None:
        rc = resolution.get_cookbook(name)
        shown = escape(name)
        label = f"{shown} ({rc.version})" if rc is not None else f"{shown} [red](unresolved)[/red]"
        branch = parent.add(label)
        if rc is None or name in path:
            return
        for dep in sorted(rc.dependencies):
            _add(branch, dep, path + (name,))

    for root in roots:
        _add(tree, root, ())
    console.print(tree)


def resolution_to_json(resolution: Resolution) -> dict[str, Any]:
    """Machine-readable form of a resolution."""
    return {
        "success": not resolution.has_errors(),
        "cookbooks": {
            rc.name: {
                "version": str(rc.version),
                "source": rc.source_name,
                "dependencies": {
                    name: str(version) if version is not None else None
                    for name, version in sorted(rc.dependencies.items())
                },
            }
            for rc in resolution.all_cookbooks()
        },
        "install_order": resolution.install_order,
        "errors": [{"type": type(e).__name__, "message": str(e)} for e in resolution.errors],
    }


def print_locked(cookbooks: list[LockedCookbook]) -> None:
    """Print locked cookbooks as a table."""
    if not cookbooks:
        console.print("[dim]No cookbooks locked.[/dim]")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("Cookbook", style="bold")
    table.add_column("Version")
    table.add_column("Source", style="dim")
    table.add_column("Depends On", style="dim")
    for cb in cookbooks:
        deps = ", ".join(f"{name} ({version})" for name, version in sorted(cb.dependencies.items())) or "-"
        table.add_row(escape(cb.name), cb.version, escape(f"{cb.source_type} ({cb.source_key})"), escape(deps))
    console.print(table)


def locked_to_json(cookbooks: list[LockedCookbook]) -> list[dict[str, Any]]:
    return [
        {
            "name": cb.name,
            "version": cb.version,
            "source": cb.source_key,
            "dependencies": dict(sorted(cb.dependencies.items())),
        }
        for cb in cookbooks
    ]


def print_outdated(outdated: list[OutdatedCookbook]) -> None:
    """Print cookbooks with newer versions available."""
    if not outdated:
        console.print("[green]All cookbooks are up to date.[/green]")
        return
    table = Table(title=f"{len(outdated)} outdated cookbook(s)", show_header=True, header_style="bold")
    table.add_column("Cookbook", style="bold")
    table.add_column("Locked")
    table.add_column("Latest", style="green")
    table.add_column("Source", style="dim")
    for item in outdated:
        table.add_row(escape(item.name), item.current, item.latest, escape(item.source))
    console.print(table)
