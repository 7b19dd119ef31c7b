"""
Command Executor - runs an allowlisted command sequence.

Each command string is split on whitespace into a program and its
arguments and spawned directly with asyncio. It is never handed to a
shell, so pipes, `&&`, redirects, globbing and variable expansion do not
apply. Catalog entries must be written accordingly.

Continue-on-error: a failing step (non-zero exit or spawn failure) is
recorded in the transcript and the remaining steps still run. The batch
succeeds only if every step did.
"""

import asyncio
from typing import List, Optional, Sequence, Tuple
import structlog

from .models import CommandStep

log = structlog.get_logger()


def split_command(command: str) -> List[str]:
    """Whitespace split. Quotes and escapes carry no meaning."""
    return command.split()


class CommandExecutor:
    """Spawns each command as a child process, strictly in order."""

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Per-command limit in seconds. None waits indefinitely.
        """
        self.timeout = timeout

    async def run(self, commands: Sequence[str]) -> Tuple[bool, str]:
        """
        Run a command sequence.

        Returns:
            (success, transcript)
        """
        success, transcript, _ = await self.run_steps(commands)
        return success, transcript

    async def run_steps(self, commands: Sequence[str]) -> Tuple[bool, str, List[CommandStep]]:
        """Run a command sequence, also returning the per-step records."""
        all_success = True
        transcript = ""
        steps: List[CommandStep] = []

        for command in commands:
            argv = split_command(command)
            if not argv:
                continue

            step = await self._run_one(command, argv)
            steps.append(step)
            transcript += step.transcript()

            if not step.success:
                all_success = False

        return all_success, transcript, steps

    async def _run_one(self, command: str, argv: List[str]) -> CommandStep:
        program, args = argv[0], argv[1:]
        step = CommandStep(command=command, program=program, args=args)

        log.info("Executing command", command=command)

        try:
            process = await asyncio.create_subprocess_exec(
                program,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            step.error = str(e)
            log.error("Failed to spawn command", command=command, error=str(e))
            return step

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.CancelledError:
            _kill(process)
            log.warning("Command cancelled", command=command)
            raise
        except asyncio.TimeoutError:
            _kill(process)
            stdout, stderr = await process.communicate()
            step.stdout = _decode(stdout)
            step.stderr = _decode(stderr) + f"Command timed out after {self.timeout} seconds"
            step.exit_code = process.returncode
            log.error("Command timed out", command=command, timeout=self.timeout)
            return step

        step.stdout = _decode(stdout)
        step.stderr = _decode(stderr)
        step.exit_code = process.returncode
        step.success = process.returncode == 0

        if not step.success:
            log.error("Command failed", command=command, exit_code=process.returncode)

        return step


def _kill(process: asyncio.subprocess.Process):
    try:
        process.kill()
    except ProcessLookupError:
        # Exited on its own in the meantime.
        pass


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
