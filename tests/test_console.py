"""
Tests for the expressivo console: string commands, the line console and main()
"""

import io

import pytest

from expressivo import ExpressionSyntaxError
from expressivo_console import Console, differentiate, main, simplify


class TestCommands:
    """Tests for differentiate() and simplify() on strings"""

    def test_differentiate(self) -> None:
        assert differentiate("x*x", "x") == "x*1+1*x"
        assert differentiate("x+y", "y") == "0+1"

    def test_simplify(self) -> None:
        assert simplify("(1+2)*x") == "3*x"
        assert simplify("1 + 2*x") == "1+2*x"

    def test_invalid_expression(self) -> None:
        with pytest.raises(ExpressionSyntaxError):
            differentiate("x +", "x")
        with pytest.raises(ExpressionSyntaxError):
            simplify("(1")

    def test_invalid_variable(self) -> None:
        with pytest.raises(ValueError):
            differentiate("x*x", "x1")


class TestConsole:
    """Tests for Console.handle and Console.run"""

    def test_expression_then_commands(self) -> None:
        console = Console()
        assert console.handle("x * x") == "x*x"
        assert console.handle("!d/dx") == "x*1+1*x"
        assert console.handle("!simplify") == "x*1+1*x"

    def test_simplify_folds_numbers(self) -> None:
        console = Console()
        console.handle("2*3+x")
        assert console.handle("!simplify") == "6+x"

    def test_command_without_expression(self) -> None:
        assert Console().handle("!simplify") == "no expression"

    def test_unknown_command(self) -> None:
        console = Console()
        console.handle("x")
        assert console.handle("!expand") == "unknown command"

    def test_parse_error_keeps_current(self) -> None:
        console = Console()
        console.handle("x+1")
        assert console.handle("1 +").startswith("ParseError: ")
        assert console.handle("!d/dx") == "1+0"

    def test_invalid_variable(self) -> None:
        console = Console()
        console.handle("x")
        assert console.handle("!d/d1").startswith("ParseError: ")

    def test_run(self) -> None:
        stdin = io.StringIO("(1+2)*y\n\n!simplify\n!d/dy\n")
        stdout = io.StringIO()
        Console().run(stdin, stdout)
        assert stdout.getvalue().splitlines() == ["(1+2)*y", "3*y", "3*1+0*y"]


class TestMain:
    """Tests for main()"""

    def test_prints_expressions(self, capsys: pytest.CaptureFixture) -> None:
        assert main(["1 + 2", "(a+b) * c"]) == 0
        assert capsys.readouterr().out.splitlines() == ["1+2", "(a+b)*c"]

    def test_differentiate_and_simplify(self, capsys: pytest.CaptureFixture) -> None:
        assert main(["-d", "x", "-s", "3*x"]) == 0
        assert capsys.readouterr().out == "3+0*x\n"

    def test_parse_error(self, capsys: pytest.CaptureFixture) -> None:
        assert main(["1 +", "x"]) == 1
        captured = capsys.readouterr()
        assert captured.out == "x\n"
        assert "ParseError" in captured.err
