"""Console output helpers shared by CLI commands."""

from __future__ import annotations

from rich.console import Console


class Output:
    """Thin wrapper around a rich console with message styles.

    Lines are printed with ``soft_wrap`` so paths are never folded.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def info(self, msg: str) -> None:
        self.console.print(msg, soft_wrap=True)

    def success(self, msg: str) -> None:
        self.console.print(f"[green]✓[/green] {msg}", soft_wrap=True)

    def warning(self, msg: str) -> None:
        self.console.print(f"[yellow]![/yellow] {msg}", soft_wrap=True)

    def error(self, msg: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {msg}", soft_wrap=True)

    def hint(self, msg: str) -> None:
        self.console.print(f"  [dim]{msg}[/dim]", soft_wrap=True)

    def dim(self, msg: str) -> None:
        self.console.print(f"[dim]{msg}[/dim]", soft_wrap=True)


out = Output()
