# node_agent/command.py
"""
External command execution

Every component that shells out to OS tooling (wg, wg-quick, iptables)
receives a runner with the signature of run_command, so tests can swap
in a recorder without touching the decision logic.
"""

import subprocess
import logging
from typing import Callable, List, Optional

logger = logging.getLogger('relay-agent.command')

CommandRunner = Callable[..., str]


class CommandError(Exception):
    """External command exited with an error"""

    def __init__(self, cmd: List[str], returncode: int, output: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.output = output.strip()
        super().__init__(f"command {' '.join(cmd)!r} failed ({returncode}): {self.output}")


def run_command(name: str, *args: str, input: Optional[str] = None) -> str:
    """
    Run an external program and return its stdout

    Raises:
        CommandError: non-zero exit or missing binary
    """
    cmd = [name, *args]
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, input=input)
    except FileNotFoundError as e:
        raise CommandError(cmd, 127, str(e)) from e

    if result.returncode != 0:
        raise CommandError(cmd, result.returncode, result.stderr or result.stdout)

    return result.stdout
