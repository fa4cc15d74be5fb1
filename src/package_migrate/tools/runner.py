"""Async execution of external command-line tools."""

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from loguru import logger

from ..api.exceptions import PrerequisiteError, ToolError
from ..utils.logging import redact_command


@dataclass
class ToolResult:
    """Result of an external command."""

    command: List[str]
    exit_code: int
    stdout: str = ''
    stderr: str = ''

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ToolRunner:
    """Runs external tools and captures their output."""

    def __init__(self, secrets: Sequence[str] = ()):
        """Initialize tool runner.

        Args:
            secrets: Values masked whenever a command line is logged
        """
        self.secrets = [s for s in secrets if s]
        self.logger = logger.bind(component='ToolRunner')

    def describe(self, command: Sequence[str]) -> str:
        return redact_command(command, self.secrets)

    async def run(
        self,
        command: Sequence[str],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        check: bool = True,
    ) -> ToolResult:
        """Run a command to completion.

        Args:
            command: Executable and arguments
            cwd: Working directory
            env: Extra environment variables
            check: Raise ToolError on a non-zero exit

        Returns:
            Captured result

        Raises:
            ToolError: If the command cannot be started, or exits non-zero
                and ``check`` is set
        """
        command = [str(part) for part in command]
        self.logger.debug(f'Running: {self.describe(command)}')

        process_env = None
        if env:
            process_env = {**os.environ, **env}

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
                env=process_env,
            )
        except OSError as e:
            raise ToolError(
                f'Failed to start {command[0]}: {e}', command=command
            ) from e

        stdout, stderr = await process.communicate()

        result = ToolResult(
            command=command,
            exit_code=process.returncode,
            stdout=stdout.decode(errors='replace') if stdout else '',
            stderr=stderr.decode(errors='replace') if stderr else '',
        )

        self.logger.debug(f'{command[0]} exited with {result.exit_code}')
        if result.stderr:
            self.logger.debug(f'{command[0]} stderr: {self.mask(result.stderr)}')

        if check and not result.success:
            raise ToolError(
                f'{Path(command[0]).name} exited with status {result.exit_code}: '
                f'{self.mask(result.stderr or result.stdout).strip()}',
                command=command,
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        return result

    async def require(self, command: Sequence[str], description: str) -> ToolResult:
        """Verify a required tool is installed.

        Raises:
            PrerequisiteError: If the command fails or is missing
        """
        try:
            result = await self.run(command)
        except ToolError as e:
            self.logger.error(f'{description} is not installed or not accessible')
            raise PrerequisiteError(
                f'{description} is not installed or not accessible: {e}'
            ) from e

        self.logger.info(f'{description} is installed')
        return result

    def mask(self, text: str) -> str:
        for secret in self.secrets:
            text = text.replace(secret, '***')
        return text
