"""
Runs external commands to completion and classifies their outcome.
"""
import asyncio
import functools
import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = -1
NOT_FOUND_EXIT_CODE = 127


@dataclass
class CommandResult:
    """Output of one finished command."""
    stdout: str
    stderr: str
    exit_code: int
    failed: bool


class ProcessRunner:
    """Runs one command at a time, without a shell, off the event loop."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    async def exec(
        self,
        command: Sequence[str],
        label: Optional[str] = None,
        allowed_exit_codes: Iterable[int] = (),
        cwd: Optional[Union[str, Path]] = None,
    ) -> CommandResult:
        """
        Run `command` and wait for it to exit.

        Args:
            command: Program and arguments
            label: Logged instead of the raw command
            allowed_exit_codes: Non-zero codes that still count as success
            cwd: Working directory for the process

        Returns:
            CommandResult; `failed` is set iff the exit code is non-zero and
            not in `allowed_exit_codes`
        """
        argv = list(command)
        allowed = set(allowed_exit_codes)
        logger.info(label or shlex.join(argv))

        try:
            completed = await asyncio.get_event_loop().run_in_executor(
                None,
                functools.partial(
                    subprocess.run,
                    argv,
                    cwd=cwd,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            )
            stdout, stderr, code = completed.stdout, completed.stderr, completed.returncode
        except subprocess.TimeoutExpired as e:
            stdout = _decode(e.stdout)
            stderr = f"{_decode(e.stderr)}\nCommand timed out after {self.timeout} seconds".strip()
            code = TIMEOUT_EXIT_CODE
        except OSError as e:
            # Missing executable or working directory
            stdout, stderr, code = "", str(e), NOT_FOUND_EXIT_CODE

        failed = code != 0 and code not in allowed
        if failed:
            logger.warning(f"Command failed; exit code {code}")
            if stderr.strip():
                logger.warning(f"stderr: {stderr.strip()}")
        elif code != 0:
            logger.info(f"Command finished with allowed failure code {code}")

        return CommandResult(stdout=stdout, stderr=stderr, exit_code=code, failed=failed)


def _decode(output) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output
