"""Shared fixtures: a throwaway command root populated with small shell scripts."""

import os
import stat
from pathlib import Path

import pytest

from cmd_gateway.core.config import ExecutionPolicy
from cmd_gateway.core.gate import CommandGate


def write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def command_root(tmp_path: Path) -> Path:
    """
    Layout:
        tmp/cmd/echoer.sh      echoes its arguments
        tmp/cmd/hello          extension-less executable
        tmp/cmd/mixed.sh       writes to stdout and stderr
        tmp/cmd/failer.sh      prints then exits 3
        tmp/cmd/sleeper.sh     sleeps for $1 seconds then prints "done"
        tmp/cmd/script.py      exists but has a disallowed extension
        tmp/cmd/plain.sh       not executable
        tmp/evil.sh            outside the root
        tmp/cmd-evil/evil.sh   sibling directory sharing the root's name as a prefix
    """
    root = tmp_path / "cmd"
    write_script(root / "echoer.sh", 'echo "$@"')
    write_script(root / "hello", "echo hello")
    write_script(root / "mixed.sh", "echo out\necho err >&2")
    write_script(root / "failer.sh", "echo partial\nexit 3")
    write_script(root / "sleeper.sh", 'sleep "$1"\necho done')
    write_script(root / "script.py", "print('hi')")
    (root / "plain.sh").write_text("#!/bin/sh\necho nope\n")
    write_script(tmp_path / "evil.sh", "echo pwned")
    write_script(tmp_path / "cmd-evil" / "evil.sh", "echo pwned")
    return root


@pytest.fixture
def policy(command_root: Path) -> ExecutionPolicy:
    return ExecutionPolicy(command_root=command_root, timeout=5)


@pytest.fixture
def gate(policy: ExecutionPolicy) -> CommandGate:
    return CommandGate(policy)


@pytest.fixture
def in_tmp_cwd(tmp_path: Path):
    """Runs the test from tmp_path so relative command roots resolve there."""
    previous = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(previous)
