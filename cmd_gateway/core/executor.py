# cmd_gateway/core/executor.py

import asyncio
import os
import signal
from pathlib import Path
from typing import List

from loguru import logger

from cmd_gateway.core.errors import ExecutionError, ExecutionTimeout


def decode_output(data: bytes) -> str:
    """Decodes process output as UTF-8, replacing any undecodable bytes."""
    return data.decode('utf-8', errors='replace')


def _kill_process_tree(process: asyncio.subprocess.Process):
    """
    Kills everything in the child's process group.

    Runs even when the child itself has already exited: background
    descendants it left behind are still members of the group.
    """
    if hasattr(os, "killpg"):
        try:
            # The child leads its own session, so its pid is the group id.
            os.killpg(process.pid, signal.SIGKILL)
            return
        except ProcessLookupError:
            return
        except PermissionError:
            pass
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass


async def run_command(path: Path, args: List[str], timeout: float) -> str:
    """
    Runs an executable directly (never through a shell) and captures its output.

    stderr is merged into stdout so the caller gets a single stream in the order
    the OS delivered it.

    Args:
        path: The validated absolute path of the executable.
        args: The validated arguments, each passed as its own argv entry.
        timeout: Wall-clock limit in seconds.

    Returns:
        The combined output, verbatim.

    Raises:
        ExecutionTimeout: The child was still running after `timeout` seconds.
        ExecutionError: The child could not be started or exited non-zero.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            str(path),
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            start_new_session=True,
        )
    except OSError as e:
        logger.error(f"Failed to start {path}: {e}")
        raise ExecutionError(str(e)) from e

    try:
        try:
            stdout_bytes, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{path} exceeded the {timeout}s timeout, killing process group {process.pid}")
            raise ExecutionTimeout(timeout)
    finally:
        # Any exit path, including task cancellation, takes the whole group down.
        _kill_process_tree(process)
        await process.wait()

    output = decode_output(stdout_bytes or b"")
    if process.returncode != 0:
        logger.info(f"{path} exited with status {process.returncode}")
        raise ExecutionError(f"exit status {process.returncode}", output)

    return output
