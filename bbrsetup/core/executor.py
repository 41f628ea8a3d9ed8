"""
Command execution engine.
"""

import subprocess
import time
from typing import List

from pydantic import BaseModel
from loguru import logger


class CommandResult(BaseModel):
    """Result of a command execution."""

    command: str
    return_code: int
    stdout: str
    stderr: str
    duration: float
    success: bool


class CommandRunner:
    """Execute system commands without a shell."""

    def __init__(self, timeout: int = 30):
        self.timeout = timeout

    def run_command(self, command: List[str], timeout: int = None) -> CommandResult:
        """
        Execute a system command.

        Timeouts and launch failures (for example a missing binary) are
        reported as a failed result with return code -1, never raised.

        Args:
            command: Command and arguments as a list
            timeout: Timeout in seconds, defaults to the runner's timeout

        Returns:
            CommandResult object
        """
        timeout = timeout or self.timeout
        start_time = time.time()
        cmd_str = " ".join(command)

        logger.debug(f"Executing command: {cmd_str}")

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
            )

            duration = time.time() - start_time

            logger.debug(
                f"Command completed: {cmd_str} "
                f"(return code: {result.returncode}, duration: {duration:.2f}s)"
            )

            return CommandResult(
                command=cmd_str,
                return_code=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
                duration=duration,
                success=(result.returncode == 0),
            )

        except subprocess.TimeoutExpired:
            duration = time.time() - start_time
            logger.warning(f"Command timed out after {timeout}s: {cmd_str}")

            return CommandResult(
                command=cmd_str,
                return_code=-1,
                stdout="",
                stderr=f"Command timed out after {timeout} seconds",
                duration=duration,
                success=False,
            )

        except OSError as e:
            duration = time.time() - start_time
            logger.debug(f"Command failed to start: {cmd_str} - {e}")

            return CommandResult(
                command=cmd_str,
                return_code=-1,
                stdout="",
                stderr=str(e),
                duration=duration,
                success=False,
            )
