# =============================================================================
# utils/commands.py - External command execution
# =============================================================================

import logging
import subprocess
from dataclasses import dataclass
from typing import List


class CommandError(Exception):
    """Raised when an external command exits non-zero"""

    def __init__(self, result: "CommandResult"):
        self.result = result
        super().__init__(
            f"{' '.join(result.args)} exited with {result.returncode}: {result.stderr.strip()}"
        )


@dataclass
class CommandResult:
    """Outcome of a single external command"""
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Thin wrapper around subprocess for the macOS directory tools"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def run(self, args: List[str], check: bool = False) -> CommandResult:
        """Run a command and capture its output"""
        self.logger.debug(f"Running: {' '.join(args)}")

        try:
            completed = subprocess.run(args, capture_output=True,
                                       encoding="utf-8", errors="replace")
        except OSError as e:
            self.logger.error(f"Could not execute {args[0]}: {e}")
            result = CommandResult(list(args), 127, "", str(e))
        else:
            result = CommandResult(list(args), completed.returncode,
                                   completed.stdout, completed.stderr)

        if not result.ok:
            self.logger.debug(f"{args[0]} exited with {result.returncode}: {result.stderr.strip()}")
            if check:
                raise CommandError(result)

        return result
