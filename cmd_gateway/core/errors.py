# cmd_gateway/core/errors.py

"""
Errors raised while validating, resolving or running a command.

Every error carries the exact text sent back to the client; the CommandGate
turns them into replies and never lets them reach the connection handler.
"""


class CommandGateError(Exception):
    """Base class for all command rejections and execution failures."""


class EmptyCommand(CommandGateError):
    def __init__(self):
        super().__init__("Empty command")


class ArgumentValidationError(CommandGateError):
    """Base class for argument rejections."""

    def __init__(self, reason: str):
        super().__init__(f"Argument validation failed: {reason}")


class TooManyArguments(ArgumentValidationError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"too many arguments (max {limit})")


class ArgumentTooLong(ArgumentValidationError):
    def __init__(self, argument: str, limit: int):
        self.argument = argument
        self.limit = limit
        super().__init__(f"argument too long (max {limit} characters): {argument}")


class IllegalCharacter(ArgumentValidationError):
    def __init__(self, argument: str):
        self.argument = argument
        super().__init__(f"argument contains illegal characters: {argument}")


class DisallowedExtension(CommandGateError):
    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"Unsupported file type: {extension or '(none)'}")


class CommandNotFound(CommandGateError):
    def __init__(self, program: str):
        self.program = program
        super().__init__(f"Command not found: {program}")


class PathResolutionError(CommandGateError):
    def __init__(self, detail: str, *, root: bool = False):
        prefix = "Command directory path resolution error" if root else "Path resolution error"
        super().__init__(f"{prefix}: {detail}")


class PathEscapesRoot(CommandGateError):
    def __init__(self):
        super().__init__("Access to commands outside the command directory is forbidden")


class ExecutionTimeout(CommandGateError):
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Command execution timed out (exceeded {format_duration(timeout)})")


class ExecutionError(CommandGateError):
    def __init__(self, detail: str, output: str = ""):
        self.detail = detail
        self.output = output
        message = f"Execution error: {detail}\n"
        if output:
            message += output
        super().__init__(message)


def format_duration(seconds: float) -> str:
    """Renders a timeout as `30s` or `0.5s`."""
    if float(seconds).is_integer():
        return f"{int(seconds)}s"
    return f"{seconds:g}s"
