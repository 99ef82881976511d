"""
Project build step.

Runs the configured build commands (``npm install`` then ``npm run build`` by
default) inside the materialised source tree. Output is streamed to the log
line by line.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from pathlib import Path

from shipflow.exceptions import BuildError
from shipflow.pipeline.process import run_streaming
from shipflow.utils.logging import get_logger

logger = get_logger("shipflow.pipeline.build")

DEFAULT_BUILD_COMMANDS: tuple[tuple[str, ...], ...] = (("npm", "install"), ("npm", "run", "build"))


class BuildRunner:
    """
    Runs build commands in order and stops at the first non-zero exit.

    Args:
        commands: Argument lists, each run without a shell
        env: Extra environment variables layered over the worker's environment
    """

    def __init__(
        self,
        commands: Sequence[Sequence[str]] = DEFAULT_BUILD_COMMANDS,
        env: Mapping[str, str] | None = None,
    ):
        if not commands:
            raise ValueError("at least one build command is required")
        self.commands = [list(c) for c in commands]
        self.env = dict(env or {})

    async def run(self, project_dir: Path, *, job_id: str = "") -> int:
        """
        Run every command in ``project_dir``.

        Returns:
            0 when all commands succeeded, otherwise the failing exit code

        Raises:
            BuildError: A command could not be started
        """
        env = {**os.environ, **self.env} if self.env else None
        for command in self.commands:
            logger.info(f"Running '{' '.join(command)}' in {project_dir}")
            try:
                exit_code, _tail = await run_streaming(
                    command, cwd=project_dir, env=env, log=logger, label=Path(command[0]).name
                )
            except FileNotFoundError as e:
                raise BuildError(job_id, f"command not found: {command[0]}") from e
            if exit_code != 0:
                logger.error(f"'{' '.join(command)}' exited with code {exit_code}")
                return exit_code
        return 0
