"""Installation and invocation of the gpr NuGet push tool."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from ..api.exceptions import PrerequisiteError, ToolError
from .runner import ToolResult, ToolRunner


async def check_dotnet(runner: ToolRunner) -> None:
    await runner.require(['dotnet', '--version'], 'dotnet')


async def install_gpr(runner: ToolRunner, tools_dir: Path) -> Path:
    """Install gpr as a local dotnet tool.

    Args:
        runner: Tool runner
        tools_dir: Directory the tool is installed into

    Returns:
        Path of the gpr executable

    Raises:
        PrerequisiteError: If installation fails
    """
    tools_dir.mkdir(parents=True, exist_ok=True)
    logger.info('Installing gpr tool...')

    try:
        await runner.run(
            ['dotnet', 'tool', 'install', 'gpr', '--tool-path', str(tools_dir)]
        )
    except ToolError as e:
        logger.error('Failed to install gpr tool')
        raise PrerequisiteError(f'Failed to install gpr: {e}') from e

    extension = '.exe' if sys.platform == 'win32' else ''
    gpr_path = tools_dir / f'gpr{extension}'

    if not gpr_path.exists():
        logger.error('Could not find gpr after installation')
        raise PrerequisiteError('gpr not found after installation')

    logger.info(f'Successfully installed gpr at {gpr_path}')
    return gpr_path


async def gpr_push(
    runner: ToolRunner,
    gpr_path: Path,
    package_path: Path,
    token: str,
    repository_url: Optional[str] = None,
) -> ToolResult:
    """Push a ``.nupkg`` to the target registry.

    Args:
        runner: Tool runner
        gpr_path: gpr executable
        package_path: Package file to push
        token: Target token
        repository_url: Repository the package is linked to, if any
    """
    command = [str(gpr_path), 'push', str(package_path), '-k', token]
    if repository_url:
        command.extend(['--repository', repository_url])
    return await runner.run(command)
