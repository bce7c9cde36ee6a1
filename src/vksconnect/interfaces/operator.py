"""Operator interaction interface.

Every prompt and status message the connect workflow shows goes through this
seam so the session and readiness state machines can be driven by a scripted
operator in tests.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence


class OperatorInteraction(ABC):
    """Abstract interface for talking to the operator."""

    @abstractmethod
    def prompt_secret(self, message: str) -> str:
        """Ask for a secret value without echoing it.

        Args:
            message: Prompt text

        Returns:
            The entered value (may be empty)
        """

    @abstractmethod
    def prompt_text(self, message: str, default: str | None = None) -> str:
        """Ask for a free-form value.

        Args:
            message: Prompt text
            default: Value returned when the operator just presses Enter

        Returns:
            The entered value, or the default
        """

    @abstractmethod
    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question.

        Args:
            message: Question text
            default: Answer used when the operator just presses Enter

        Returns:
            True for yes
        """

    @abstractmethod
    def info(self, message: str) -> None:
        """Show an informational message."""

    @abstractmethod
    def success(self, message: str) -> None:
        """Show a success message."""

    @abstractmethod
    def warning(self, message: str) -> None:
        """Show a warning message."""

    @abstractmethod
    def show_table(
        self, title: str, columns: Sequence[str], rows: Sequence[Sequence[str]]
    ) -> None:
        """Show tabular data.

        Args:
            title: Table title
            columns: Column headers
            rows: Row values, one sequence per row
        """
