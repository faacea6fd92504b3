"""
End-to-end behaviour of CommandGate.execute: every outcome comes back as text,
and checks run in a fixed order.
"""

import asyncio
import sys
import time
from unittest.mock import AsyncMock, patch

import pytest

from cmd_gateway.core.config import ExecutionPolicy
from cmd_gateway.core.gate import CommandGate

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs /bin/sh")


class TestRejectionsBeforeExecution:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", " ", "\t\n", "   \r\n  "])
    async def test_whitespace_is_empty_command(self, gate, text):
        with patch("cmd_gateway.core.gate.resolve_command_path") as resolve:
            assert await gate.execute(text) == "Empty command"
        resolve.assert_not_called()

    @pytest.mark.asyncio
    async def test_too_many_arguments_touches_nothing(self, gate):
        with patch("cmd_gateway.core.gate.resolve_command_path") as resolve, \
                patch("cmd_gateway.core.gate.run_command", new_callable=AsyncMock) as run:
            reply = await gate.execute("echoer.sh " + " ".join(["x"] * 11))
        assert "too many arguments (max 10)" in reply
        resolve.assert_not_called()
        run.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("arg", ["a<b", "a>b", "a|b", "a&b", "a;b", "$HOME"])
    async def test_illegal_character_even_for_valid_program(self, gate, arg):
        with patch("cmd_gateway.core.gate.run_command", new_callable=AsyncMock) as run:
            reply = await gate.execute(f"echoer.sh {arg}")
        assert reply == f"Argument validation failed: argument contains illegal characters: {arg}"
        run.assert_not_called()

    @pytest.mark.asyncio
    async def test_argument_errors_precede_path_errors(self, gate):
        reply = await gate.execute("script.py a;b")
        assert "illegal characters" in reply

    @pytest.mark.asyncio
    async def test_disallowed_extension(self, gate):
        assert await gate.execute("script.py") == "Unsupported file type: .py"

    @pytest.mark.asyncio
    async def test_command_not_found(self, gate):
        assert await gate.execute("missing.sh arg") == "Command not found: missing.sh"

    @pytest.mark.asyncio
    async def test_traversal_never_executes(self, gate):
        with patch("cmd_gateway.core.gate.run_command", new_callable=AsyncMock) as run:
            reply = await gate.execute("../evil.sh")
        assert reply in (
            "Access to commands outside the command directory is forbidden",
            "Command not found: ../evil.sh",
        )
        run.assert_not_called()

    @pytest.mark.asyncio
    async def test_sibling_prefix_directory_is_rejected(self, gate):
        reply = await gate.execute("../cmd-evil/evil.sh")
        assert reply == "Access to commands outside the command directory is forbidden"

    @pytest.mark.asyncio
    async def test_unexpected_errors_become_replies(self, gate):
        with patch("cmd_gateway.core.gate.validate_args", side_effect=RuntimeError("boom")):
            reply = await gate.execute("echoer.sh a")
        assert reply == "Internal error: boom"


@posix_only
class TestExecution:

    @pytest.mark.asyncio
    async def test_round_trip(self, gate):
        reply = await gate.execute("echoer.sh a b")
        assert "a b" in reply
        assert "error" not in reply.lower()

    @pytest.mark.asyncio
    async def test_extra_whitespace_between_tokens(self, gate):
        assert await gate.execute("  echoer.sh\ta   b \n") == "a b\n"

    @pytest.mark.asyncio
    async def test_extensionless_program(self, gate):
        assert await gate.execute("hello") == "hello\n"

    @pytest.mark.asyncio
    async def test_execution_error_reply(self, gate):
        reply = await gate.execute("failer.sh")
        assert reply.startswith("Execution error: exit status 3\n")
        assert "partial" in reply

    @pytest.mark.asyncio
    async def test_timeout_reply_names_duration(self, command_root):
        gate = CommandGate(ExecutionPolicy(command_root=command_root, timeout=1))
        started = time.monotonic()
        reply = await gate.execute("sleeper.sh 10")
        assert reply == "Command execution timed out (exceeded 1s)"
        assert time.monotonic() - started < 5

    @pytest.mark.asyncio
    async def test_concurrent_commands_do_not_block_each_other(self, gate):
        started = time.monotonic()
        first, second = await asyncio.gather(
            gate.execute("sleeper.sh 1"),
            gate.execute("sleeper.sh 1"),
        )
        elapsed = time.monotonic() - started
        assert first == second == "done\n"
        assert elapsed < 1.9

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_next_call(self, gate):
        assert "Command not found" in await gate.execute("nope.sh")
        assert await gate.execute("echoer.sh again") == "again\n"
