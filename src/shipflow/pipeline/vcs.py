"""
Repository cloning through the ``git`` command line client.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from shipflow.exceptions import CloneError
from shipflow.pipeline.process import run_streaming
from shipflow.utils.logging import get_logger

logger = get_logger("shipflow.pipeline.vcs")


class RepositoryCloner(Protocol):
    async def clone(self, url: str, destination: Path) -> None: ...


class GitCloner:
    """
    Clone with ``git clone -- <url> <destination>``.

    Args:
        git: Path or name of the git executable
        extra_args: Additional ``git clone`` arguments (e.g. ``["--depth", "1"]``)
    """

    def __init__(self, git: str = "git", extra_args: Sequence[str] = ()):
        self.git = git
        self.extra_args = list(extra_args)

    async def clone(self, url: str, destination: Path) -> None:
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        # "--" keeps a URL starting with "-" from being read as an option
        args = [self.git, "clone", *self.extra_args, "--", url, str(destination)]
        logger.info(f"Cloning repository {url} to {destination}...")
        try:
            exit_code, tail = await run_streaming(args, log=logger, label="git")
        except FileNotFoundError as e:
            raise CloneError(url, f"git executable not found: {self.git}") from e
        if exit_code != 0:
            detail = tail[-1] if tail else f"git exited with code {exit_code}"
            raise CloneError(url, detail, exit_code=exit_code)
