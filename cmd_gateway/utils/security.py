# cmd_gateway/utils/security.py

import os
from pathlib import Path
from typing import List

from loguru import logger

from cmd_gateway.core.config import ExecutionPolicy
from cmd_gateway.core.errors import (
    ArgumentTooLong,
    CommandNotFound,
    DisallowedExtension,
    IllegalCharacter,
    PathEscapesRoot,
    PathResolutionError,
    TooManyArguments,
)


def validate_args(args: List[str], policy: ExecutionPolicy) -> None:
    """
    Rejects argument lists that are structurally abusive.

    The count is checked first, then each argument in order for its length and
    then its characters. The first violation found is raised.

    Raises:
        TooManyArguments: More than policy.max_args arguments.
        ArgumentTooLong: An argument longer than policy.max_arg_length.
        IllegalCharacter: An argument containing a shell metacharacter.
    """
    if len(args) > policy.max_args:
        raise TooManyArguments(policy.max_args)

    for arg in args:
        if len(arg) > policy.max_arg_length:
            raise ArgumentTooLong(arg, policy.max_arg_length)
        # Commands never go through a shell, but metacharacters are still refused.
        if any(char in arg for char in policy.forbidden_chars):
            raise IllegalCharacter(arg)


def file_extension(path: Path) -> str:
    """Everything from the last '.' of the final segment, or '' if there is none."""
    name = path.name
    index = name.rfind(".")
    return name[index:] if index >= 0 else ""


def join_under_root(root: Path, program: str) -> Path:
    """
    Lexically joins the program name onto the command root.

    An absolute program name is appended under the root rather than replacing it.
    '..' segments are collapsed here but the result is still subject to the
    containment check in resolve_command_path.
    """
    return Path(os.path.normpath(f"{root}{os.sep}{program}"))


def resolve_command_path(program: str, policy: ExecutionPolicy) -> Path:
    """
    Maps a program name to a containment-checked, extension-checked path.

    Args:
        program: The first token of the command.
        policy: The execution policy holding the command root and allowed extensions.

    Returns:
        The canonical absolute path of the executable.

    Raises:
        DisallowedExtension: The extension is not on the allow-list.
        CommandNotFound: Nothing exists at the joined path.
        PathResolutionError: The candidate or the root cannot be canonicalized.
        PathEscapesRoot: The canonical path is not inside the canonical root.
    """
    candidate = join_under_root(policy.command_root, program)

    extension = file_extension(candidate)
    if extension not in policy.allowed_extensions:
        raise DisallowedExtension(extension)

    if not os.path.lexists(candidate):
        raise CommandNotFound(program)

    try:
        resolved = candidate.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise PathResolutionError(str(e)) from e
    try:
        root = policy.command_root.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise PathResolutionError(str(e), root=True) from e

    # Segment-wise ancestry, so a sibling like "cmd-evil" does not match "cmd".
    if resolved == root or not resolved.is_relative_to(root):
        logger.warning(f"Rejected '{program}': {resolved} is outside {root}")
        raise PathEscapesRoot()

    return resolved
