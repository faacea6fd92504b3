# cmd_gateway/core/gate.py

from loguru import logger

from cmd_gateway.core.config import ExecutionPolicy
from cmd_gateway.core.errors import CommandGateError, EmptyCommand
from cmd_gateway.core.executor import run_command
from cmd_gateway.utils.security import resolve_command_path, validate_args


class CommandGate:
    """
    The single entry point between untrusted command text and a local process.

    A call tokenizes the text, validates the arguments, resolves the program
    inside the command root and runs it. Whatever happens, the result is text:
    either the process output or a description of why the command was refused
    or failed. Calls share no state besides the read-only policy.
    """

    def __init__(self, policy: ExecutionPolicy):
        self.policy = policy

    async def execute(self, command_text: str) -> str:
        try:
            return await self._run(command_text)
        except CommandGateError as e:
            logger.info(f"Command rejected: {e}")
            return str(e)
        except Exception as e:
            logger.exception(f"Unexpected error while handling command: {e}")
            return f"Internal error: {e}"

    async def _run(self, command_text: str) -> str:
        parts = command_text.split()
        if not parts:
            raise EmptyCommand()

        program, args = parts[0], parts[1:]
        validate_args(args, self.policy)
        path = resolve_command_path(program, self.policy)

        logger.info(f"Executing {path} with {len(args)} argument(s)")
        return await run_command(path, args, self.policy.timeout)
