"""Rich console implementation of operator interaction."""

from collections.abc import Sequence

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from vksconnect.interfaces.operator import OperatorInteraction


class ConsoleOperator(OperatorInteraction):
    """Talks to the operator through a rich console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def prompt_secret(self, message: str) -> str:
        return Prompt.ask(message, password=True, console=self.console)

    def prompt_text(self, message: str, default: str | None = None) -> str:
        if default is None:
            return Prompt.ask(message, default="", show_default=False, console=self.console)
        return Prompt.ask(message, default=default, console=self.console)

    def confirm(self, message: str, default: bool = False) -> bool:
        return Confirm.ask(message, default=default, console=self.console)

    def info(self, message: str) -> None:
        self.console.print(f"[blue]\\[INFO][/blue] {message}", highlight=False)

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓ {message}[/green]", highlight=False)

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {message}[/yellow]", highlight=False)

    def show_table(
        self, title: str, columns: Sequence[str], rows: Sequence[Sequence[str]]
    ) -> None:
        table = Table(title=title)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*row)
        self.console.print(table)
