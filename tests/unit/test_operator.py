"""Unit tests for the rich console operator."""

import io
from unittest.mock import patch

import pytest
from rich.console import Console

from vksconnect.cli.operator import ConsoleOperator


@pytest.fixture
def output() -> io.StringIO:
    """Buffer the console writes to."""
    return io.StringIO()


@pytest.fixture
def operator(output: io.StringIO) -> ConsoleOperator:
    """ConsoleOperator over a non-interactive console."""
    return ConsoleOperator(Console(file=output, width=120, color_system=None))


class TestMessages:
    """Tests for message output."""

    def test_levels_are_marked(self, operator: ConsoleOperator, output: io.StringIO) -> None:
        """Test each message level has its own marker."""
        operator.info("Checking clusters")
        operator.success("Context created")
        operator.warning("Cluster is not running")

        text = output.getvalue()
        assert "[INFO] Checking clusters" in text
        assert "✓ Context created" in text
        assert "⚠ Cluster is not running" in text

    def test_show_table(self, operator: ConsoleOperator, output: io.StringIO) -> None:
        """Test rows are rendered under the title."""
        operator.show_table("Clusters", ["Name", "Status"], [["vks-01", "running"]])

        text = output.getvalue()
        assert "Clusters" in text
        assert "vks-01" in text
        assert "running" in text


class TestPrompts:
    """Tests for prompts."""

    def test_secret_prompt_hides_input(self, operator: ConsoleOperator) -> None:
        """Test the token prompt asks for a password."""
        with patch("vksconnect.cli.operator.Prompt.ask", return_value="token-1") as ask:
            assert operator.prompt_secret("Enter API Token") == "token-1"

        assert ask.call_args.kwargs["password"] is True

    def test_text_prompt_with_default(self, operator: ConsoleOperator) -> None:
        """Test a default is offered to the operator."""
        with patch("vksconnect.cli.operator.Prompt.ask", return_value="vcfa") as ask:
            operator.prompt_text("Enter initial context name", default="vcfa")

        assert ask.call_args.kwargs["default"] == "vcfa"

    def test_text_prompt_without_default(self, operator: ConsoleOperator) -> None:
        """Test a prompt without default accepts empty input and shows no default."""
        with patch("vksconnect.cli.operator.Prompt.ask", return_value="") as ask:
            assert operator.prompt_text("Enter cluster name") == ""

        assert ask.call_args.kwargs["default"] == ""
        assert ask.call_args.kwargs["show_default"] is False

    def test_confirm(self, operator: ConsoleOperator) -> None:
        """Test confirmations pass their default through."""
        with patch("vksconnect.cli.operator.Confirm.ask", return_value=True) as ask:
            assert operator.confirm("Do you want to wait for the cluster to be ready?")

        assert ask.call_args.kwargs["default"] is False
